"""Live rate provider reading public tickers via ccxt async.

Only public market-data endpoints are used: no API keys, no orders.
Each supported asset maps to a "<ASSET>/<QUOTE>" spot market on the
configured exchange (Kraken lists USD pairs for all four assets).
"""

from decimal import Decimal, InvalidOperation

import ccxt.async_support as ccxt_async

from yieldcore.config import LiveProviderSettings
from yieldcore.exceptions import UpstreamError
from yieldcore.logging import get_logger
from yieldcore.models import AssetSymbol, ProviderQuote
from yieldcore.rates.provider import RateProvider, ensure_complete

logger = get_logger(__name__)


class LiveProvider(RateProvider):
    """Rate provider backed by a ccxt exchange's public ticker endpoint."""

    name = "live"

    def __init__(self, settings: LiveProviderSettings, exchange=None) -> None:  # type: ignore[no-untyped-def]
        self._settings = settings
        if exchange is None:
            exchange_cls = getattr(ccxt_async, settings.exchange_id)
            exchange = exchange_cls({"enableRateLimit": True})
        self._exchange = exchange

    def market_for(self, symbol: AssetSymbol) -> str:
        """Spot market used to price an asset, e.g. "BTC/USD"."""
        return f"{symbol.value}/{self._settings.quote_currency}"

    async def fetch_rates(
        self, symbols: frozenset[AssetSymbol]
    ) -> dict[AssetSymbol, ProviderQuote]:
        """Fetch all requested tickers in one batch call."""
        markets = {self.market_for(symbol): symbol for symbol in symbols}
        try:
            tickers = await self._exchange.fetch_tickers(list(markets))
        except ccxt_async.BaseError as exc:
            raise UpstreamError(
                f"{self._settings.exchange_id} ticker request failed: {exc}"
            ) from exc

        quotes: dict[AssetSymbol, ProviderQuote] = {}
        for market, symbol in markets.items():
            ticker = tickers.get(market)
            if ticker is None:
                continue
            quote = self._parse_ticker(market, ticker)
            if quote is not None:
                quotes[symbol] = quote

        logger.debug(
            "live_rates_fetched",
            exchange=self._settings.exchange_id,
            count=len(quotes),
        )
        return ensure_complete(self.name, symbols, quotes)

    @staticmethod
    def _parse_ticker(market: str, ticker: dict) -> ProviderQuote | None:
        """Extract last price and 24h percentage change from a unified ticker."""
        raw_price = ticker.get("last")
        if raw_price is None:
            raw_price = ticker.get("close")
        if raw_price is None:
            logger.warning("ticker_missing_price", market=market)
            return None

        try:
            price = Decimal(str(raw_price))
        except InvalidOperation:
            logger.warning("invalid_ticker_price", market=market, raw=raw_price)
            return None
        if not price.is_finite() or price <= 0:
            logger.warning("invalid_ticker_price", market=market, raw=raw_price)
            return None

        raw_change = ticker.get("percentage")
        try:
            change = Decimal(str(raw_change)) if raw_change is not None else Decimal("0")
        except InvalidOperation:
            change = Decimal("0")
        if not change.is_finite():
            change = Decimal("0")

        return ProviderQuote(price=price, change_24h=change)

    async def close(self) -> None:
        """Clean up ccxt async resources. Must be called to avoid leaked sessions."""
        logger.info("closing_live_provider", exchange=self._settings.exchange_id)
        await self._exchange.close()
