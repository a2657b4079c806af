"""Tests for the simulated, live (ccxt) and fallback rate providers.

The live provider gets a mocked ccxt exchange; no network calls are made.
"""

from decimal import Decimal
from unittest.mock import AsyncMock

import ccxt.async_support as ccxt_async
import pytest

from yieldcore.config import AppSettings, LiveProviderSettings, RateCacheSettings
from yieldcore.exceptions import UpstreamError
from yieldcore.models import FALLBACK_PRICES, SUPPORTED_SYMBOLS, AssetSymbol, ProviderQuote
from yieldcore.rates.factory import make_rate_provider
from yieldcore.rates.fallback_provider import FallbackProvider
from yieldcore.rates.live_provider import LiveProvider
from yieldcore.rates.provider import RateProvider
from yieldcore.rates.simulated_provider import SimulatedProvider

# ---------------------------------------------------------------------------
# Sample ticker data (mimics ccxt fetch_tickers response for Kraken spot)
# ---------------------------------------------------------------------------

MOCK_TICKERS = {
    "BTC/USD": {"symbol": "BTC/USD", "last": 43250.75, "percentage": 2.34},
    "ETH/USD": {"symbol": "ETH/USD", "last": 2650.5, "percentage": -0.87},
    "USDT/USD": {"symbol": "USDT/USD", "last": None, "close": 1.0001, "percentage": None},
    "USDC/USD": {"symbol": "USDC/USD", "last": "0.9999", "percentage": "0.01"},
}


@pytest.fixture
def mock_exchange() -> AsyncMock:
    """Mock ccxt exchange returning sample tickers."""
    exchange = AsyncMock()
    exchange.fetch_tickers = AsyncMock(return_value=dict(MOCK_TICKERS))
    return exchange


@pytest.fixture
def live(mock_exchange) -> LiveProvider:
    return LiveProvider(LiveProviderSettings(), exchange=mock_exchange)


class _StaticProvider(RateProvider):
    """Returns fixed quotes, or raises when given an exception."""

    def __init__(self, name: str, result) -> None:  # type: ignore[no-untyped-def]
        self.name = name
        self._result = result
        self.close = AsyncMock()  # type: ignore[method-assign]

    async def fetch_rates(self, symbols):  # type: ignore[no-untyped-def]
        if isinstance(self._result, Exception):
            raise self._result
        return self._result


class TestSimulatedProvider:
    @pytest.mark.asyncio
    async def test_returns_every_symbol(self) -> None:
        quotes = await SimulatedProvider(seed=1).fetch_rates(SUPPORTED_SYMBOLS)
        assert set(quotes) == SUPPORTED_SYMBOLS
        assert all(q.price > 0 for q in quotes.values())

    @pytest.mark.asyncio
    async def test_seeded_walk_is_deterministic(self) -> None:
        a = await SimulatedProvider(seed=7).fetch_rates(SUPPORTED_SYMBOLS)
        b = await SimulatedProvider(seed=7).fetch_rates(SUPPORTED_SYMBOLS)
        assert a == b

    @pytest.mark.asyncio
    async def test_step_bounds(self) -> None:
        quotes = await SimulatedProvider(seed=3).fetch_rates(SUPPORTED_SYMBOLS)
        btc = quotes[AssetSymbol.BTC].price
        eth = quotes[AssetSymbol.ETH].price
        assert abs(btc - FALLBACK_PRICES[AssetSymbol.BTC]) <= Decimal("50")
        assert abs(eth - FALLBACK_PRICES[AssetSymbol.ETH]) <= Decimal("25")
        assert abs(quotes[AssetSymbol.USDT].price - Decimal("1.0001")) <= Decimal("0.0005")
        assert abs(quotes[AssetSymbol.USDC].price - Decimal("0.9999")) <= Decimal("0.0005")
        assert abs(quotes[AssetSymbol.BTC].change_24h) <= Decimal("5")

    @pytest.mark.asyncio
    async def test_walk_respects_floor(self) -> None:
        provider = SimulatedProvider(
            seed=11, initial_prices={**FALLBACK_PRICES, AssetSymbol.BTC: Decimal("1000")}
        )
        for _ in range(50):
            quotes = await provider.fetch_rates(SUPPORTED_SYMBOLS)
            assert quotes[AssetSymbol.BTC].price >= Decimal("1000")

    @pytest.mark.asyncio
    async def test_subset_of_symbols(self) -> None:
        quotes = await SimulatedProvider(seed=1).fetch_rates(frozenset({AssetSymbol.ETH}))
        assert list(quotes) == [AssetSymbol.ETH]


class TestLiveProvider:
    def test_market_for(self, live: LiveProvider) -> None:
        assert live.market_for(AssetSymbol.USDC) == "USDC/USD"

    @pytest.mark.asyncio
    async def test_parses_tickers(self, live, mock_exchange) -> None:
        quotes = await live.fetch_rates(SUPPORTED_SYMBOLS)

        assert quotes[AssetSymbol.BTC] == ProviderQuote(Decimal("43250.75"), Decimal("2.34"))
        assert quotes[AssetSymbol.ETH].change_24h == Decimal("-0.87")
        # Falls back to close when last is missing, 0 when percentage is missing
        assert quotes[AssetSymbol.USDT] == ProviderQuote(Decimal("1.0001"), Decimal("0"))
        assert quotes[AssetSymbol.USDC].price == Decimal("0.9999")

        requested = mock_exchange.fetch_tickers.await_args.args[0]
        assert sorted(requested) == ["BTC/USD", "ETH/USD", "USDC/USD", "USDT/USD"]

    @pytest.mark.asyncio
    async def test_missing_ticker_fails_batch(self, live, mock_exchange) -> None:
        tickers = dict(MOCK_TICKERS)
        del tickers["ETH/USD"]
        mock_exchange.fetch_tickers.return_value = tickers
        with pytest.raises(UpstreamError, match="ETH"):
            await live.fetch_rates(SUPPORTED_SYMBOLS)

    @pytest.mark.asyncio
    async def test_invalid_price_fails_batch(self, live, mock_exchange) -> None:
        tickers = dict(MOCK_TICKERS)
        tickers["BTC/USD"] = {"symbol": "BTC/USD", "last": 0, "percentage": 1}
        mock_exchange.fetch_tickers.return_value = tickers
        with pytest.raises(UpstreamError, match="BTC"):
            await live.fetch_rates(SUPPORTED_SYMBOLS)

    @pytest.mark.asyncio
    async def test_ccxt_error_wrapped(self, live, mock_exchange) -> None:
        mock_exchange.fetch_tickers.side_effect = ccxt_async.NetworkError("timeout")
        with pytest.raises(UpstreamError, match="kraken"):
            await live.fetch_rates(SUPPORTED_SYMBOLS)

    @pytest.mark.asyncio
    async def test_close(self, live, mock_exchange) -> None:
        await live.close()
        mock_exchange.close.assert_awaited_once()


class TestFallbackProvider:
    def test_requires_providers(self) -> None:
        with pytest.raises(ValueError):
            FallbackProvider([])

    @pytest.mark.asyncio
    async def test_first_success_wins(self, sample_quotes) -> None:
        primary = _StaticProvider("primary", sample_quotes)
        backup = _StaticProvider("backup", UpstreamError("unused"))
        quotes = await FallbackProvider([primary, backup]).fetch_rates(SUPPORTED_SYMBOLS)
        assert quotes == sample_quotes

    @pytest.mark.asyncio
    async def test_falls_through_on_error(self, sample_quotes) -> None:
        primary = _StaticProvider("primary", UpstreamError("down"))
        backup = _StaticProvider("backup", sample_quotes)
        quotes = await FallbackProvider([primary, backup]).fetch_rates(SUPPORTED_SYMBOLS)
        assert quotes == sample_quotes

    @pytest.mark.asyncio
    async def test_falls_through_on_partial_batch(self, sample_quotes) -> None:
        partial = {AssetSymbol.BTC: sample_quotes[AssetSymbol.BTC]}
        chain = FallbackProvider(
            [_StaticProvider("primary", partial), _StaticProvider("backup", sample_quotes)]
        )
        assert await chain.fetch_rates(SUPPORTED_SYMBOLS) == sample_quotes

    @pytest.mark.asyncio
    async def test_all_fail(self) -> None:
        chain = FallbackProvider(
            [
                _StaticProvider("a", UpstreamError("one")),
                _StaticProvider("b", UpstreamError("two")),
            ]
        )
        with pytest.raises(UpstreamError, match="All rate providers failed: a: one; b: two"):
            await chain.fetch_rates(SUPPORTED_SYMBOLS)

    @pytest.mark.asyncio
    async def test_close_closes_all(self, sample_quotes) -> None:
        providers = [_StaticProvider("a", sample_quotes), _StaticProvider("b", sample_quotes)]
        await FallbackProvider(providers).close()
        for provider in providers:
            provider.close.assert_awaited_once()


class TestFactory:
    def test_simulated(self, mock_settings: AppSettings) -> None:
        assert isinstance(make_rate_provider(mock_settings), SimulatedProvider)

    @pytest.mark.asyncio
    async def test_fallback_chain(self) -> None:
        settings = AppSettings(rates=RateCacheSettings(provider="fallback", persist=False))
        provider = make_rate_provider(settings)
        try:
            assert isinstance(provider, FallbackProvider)
            kinds = [type(p) for p in provider.providers]
            assert kinds == [LiveProvider, SimulatedProvider]
        finally:
            await provider.close()
