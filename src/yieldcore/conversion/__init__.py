"""Cross-asset conversion and display formatting."""

from yieldcore.conversion.engine import (
    ExchangeQuote,
    convert,
    cross_rate,
    portfolio_value,
    quote_exchange,
    reference_value,
)
from yieldcore.conversion.formatting import (
    format_asset,
    format_percent,
    format_reference,
    round_for_display,
)

__all__ = [
    "ExchangeQuote",
    "convert",
    "cross_rate",
    "format_asset",
    "format_percent",
    "format_reference",
    "portfolio_value",
    "quote_exchange",
    "reference_value",
    "round_for_display",
]
