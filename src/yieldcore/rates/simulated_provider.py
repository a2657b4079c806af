"""Simulated rate provider: a bounded random walk around the last prices.

Used when no live upstream is configured so the dashboard still shows
moving prices. Each call moves BTC by up to +/-50 (floored at 1000),
ETH by up to +/-25 (floored at 100) and keeps both stablecoins within a
hair of their peg. The 24h change is drawn fresh every call.
"""

import random
from dataclasses import dataclass
from decimal import Decimal

from yieldcore.models import FALLBACK_PRICES, AssetSymbol, ProviderQuote
from yieldcore.rates.provider import RateProvider


@dataclass(frozen=True)
class _WalkParams:
    step: Decimal  # max absolute move per call
    floor: Decimal | None  # walk never goes below this
    peg: Decimal | None  # stables re-center on the peg instead of walking
    change_span: Decimal  # 24h change drawn from +/- span / 2


_WALKS: dict[AssetSymbol, _WalkParams] = {
    AssetSymbol.BTC: _WalkParams(Decimal("100"), Decimal("1000"), None, Decimal("10")),
    AssetSymbol.ETH: _WalkParams(Decimal("50"), Decimal("100"), None, Decimal("8")),
    AssetSymbol.USDT: _WalkParams(Decimal("0.001"), None, Decimal("1.0001"), Decimal("0.1")),
    AssetSymbol.USDC: _WalkParams(Decimal("0.001"), None, Decimal("0.9999"), Decimal("0.1")),
}

_QUANT = Decimal("0.00000001")


class SimulatedProvider(RateProvider):
    """Random-walk price source. Deterministic when given a seed."""

    name = "simulated"

    def __init__(
        self,
        seed: int | None = None,
        initial_prices: dict[AssetSymbol, Decimal] | None = None,
    ) -> None:
        self._rng = random.Random(seed)
        self._prices: dict[AssetSymbol, Decimal] = dict(initial_prices or FALLBACK_PRICES)

    def _jitter(self, span: Decimal) -> Decimal:
        """Uniform draw in [-span/2, +span/2]."""
        return (Decimal(str(self._rng.random())) - Decimal("0.5")) * span

    async def fetch_rates(
        self, symbols: frozenset[AssetSymbol]
    ) -> dict[AssetSymbol, ProviderQuote]:
        quotes: dict[AssetSymbol, ProviderQuote] = {}
        for symbol in sorted(symbols, key=lambda s: s.value):
            walk = _WALKS[symbol]
            if walk.peg is not None:
                price = walk.peg + self._jitter(walk.step)
            else:
                price = self._prices[symbol] + self._jitter(walk.step)
                if walk.floor is not None:
                    price = max(walk.floor, price)
            price = price.quantize(_QUANT)
            self._prices[symbol] = price
            quotes[symbol] = ProviderQuote(
                price=price,
                change_24h=self._jitter(walk.change_span).quantize(Decimal("0.01")),
            )
        return quotes
