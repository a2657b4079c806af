"""Abstract upstream rate provider interface.

Defines the contract for every source of market prices. RateCache depends
only on this interface; where the prices come from (a public exchange
ticker, a random walk, a chain of both) is chosen at construction time.
"""

from abc import ABC, abstractmethod

from yieldcore.exceptions import UpstreamError
from yieldcore.models import AssetSymbol, ProviderQuote


class RateProvider(ABC):
    """Abstract base class for upstream rate sources."""

    name: str = "provider"

    @abstractmethod
    async def fetch_rates(
        self, symbols: frozenset[AssetSymbol]
    ) -> dict[AssetSymbol, ProviderQuote]:
        """Fetch current price and 24h change for all requested symbols.

        Must return a quote for every requested symbol or raise. A partial
        batch is an error.

        Raises:
            UpstreamError: If any symbol cannot be priced.
        """
        ...

    async def close(self) -> None:
        """Release network resources. No-op for in-process providers."""
        return None


def ensure_complete(
    provider_name: str,
    symbols: frozenset[AssetSymbol],
    quotes: dict[AssetSymbol, ProviderQuote],
) -> dict[AssetSymbol, ProviderQuote]:
    """Reject a batch that does not cover every requested symbol.

    Raises:
        UpstreamError: Listing the symbols the provider left out.
    """
    missing = symbols - set(quotes)
    if missing:
        names = ", ".join(sorted(s.value for s in missing))
        raise UpstreamError(f"{provider_name} returned no rate for: {names}")
    return {symbol: quotes[symbol] for symbol in symbols}
