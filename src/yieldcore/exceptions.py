"""Exception types for the rate cache, conversion and accrual engines.

All exceptions live here to avoid circular imports between the models,
the engines and the rate cache.
"""


class YieldCoreError(Exception):
    """Base exception for all rate and accrual errors."""


class RateUnavailable(YieldCoreError):
    """Raised when a symbol is not supported or missing from a rate table."""


class UpstreamError(YieldCoreError):
    """Raised by a rate provider when it cannot return a complete batch.

    RateCache absorbs these; callers only ever see them through is_stale().
    """


class UpstreamTimeout(UpstreamError):
    """Raised when the upstream provider does not answer within the refresh timeout."""


class InvalidAmount(YieldCoreError):
    """Raised for non-finite, negative or out-of-bounds monetary input."""


class InvalidSubscription(YieldCoreError):
    """Raised for a malformed subscription (date range, APY) or an illegal transition."""
