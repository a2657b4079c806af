"""Provider chain: ask each provider in order, return the first complete batch."""

from yieldcore.exceptions import UpstreamError
from yieldcore.logging import get_logger
from yieldcore.models import AssetSymbol, ProviderQuote
from yieldcore.rates.provider import RateProvider, ensure_complete

logger = get_logger(__name__)


class FallbackProvider(RateProvider):
    """Tries providers in priority order until one returns every symbol.

    Typical wiring is LiveProvider first and SimulatedProvider second, so the
    dashboard keeps moving when the exchange is unreachable.

    Args:
        providers: Providers in priority order. Must not be empty.
    """

    name = "fallback"

    def __init__(self, providers: list[RateProvider]) -> None:
        if not providers:
            raise ValueError("FallbackProvider needs at least one provider")
        self._providers = list(providers)

    @property
    def providers(self) -> list[RateProvider]:
        return list(self._providers)

    async def fetch_rates(
        self, symbols: frozenset[AssetSymbol]
    ) -> dict[AssetSymbol, ProviderQuote]:
        errors: list[str] = []
        for provider in self._providers:
            try:
                quotes = await provider.fetch_rates(symbols)
                return ensure_complete(provider.name, symbols, quotes)
            except UpstreamError as exc:
                errors.append(f"{provider.name}: {exc}")
                logger.warning(
                    "provider_failed_trying_next",
                    provider=provider.name,
                    error=str(exc),
                )
        raise UpstreamError("All rate providers failed: " + "; ".join(errors))

    async def close(self) -> None:
        for provider in self._providers:
            await provider.close()
