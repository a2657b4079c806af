"""Shared data models for the rate cache and accrual engine.

CRITICAL: All monetary values use Decimal. Floats coming from upstream APIs are
converted through str() at the edge, never used for arithmetic.
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from yieldcore.exceptions import InvalidAmount, RateUnavailable


class AssetClass(str, Enum):
    """How an asset is displayed: volatile crypto or fiat-pegged stablecoin."""

    CRYPTO = "crypto"
    STABLE = "stable"


class AssetSymbol(str, Enum):
    """Supported assets. Closed set, not extensible at runtime."""

    BTC = "BTC"
    ETH = "ETH"
    USDT = "USDT"
    USDC = "USDC"

    @classmethod
    def parse(cls, value: "str | AssetSymbol") -> "AssetSymbol":
        """Resolve a user-supplied symbol, case-insensitively.

        Raises:
            RateUnavailable: If the symbol is not one of the supported assets.
        """
        if isinstance(value, AssetSymbol):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise RateUnavailable(f"Unsupported asset symbol: {value!r}") from None

    @property
    def asset_class(self) -> AssetClass:
        if self in (AssetSymbol.USDT, AssetSymbol.USDC):
            return AssetClass.STABLE
        return AssetClass.CRYPTO

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]

    @property
    def display_decimals(self) -> int:
        """8 decimals for crypto-denominated assets, 2 for fiat-pegged ones."""
        return 8 if self.asset_class is AssetClass.CRYPTO else 2


_DISPLAY_NAMES = {
    AssetSymbol.BTC: "Bitcoin",
    AssetSymbol.ETH: "Ethereum",
    AssetSymbol.USDT: "Tether",
    AssetSymbol.USDC: "USD Coin",
}

SUPPORTED_SYMBOLS: frozenset[AssetSymbol] = frozenset(AssetSymbol)

# Reference currency all prices are quoted in.
REFERENCE_CURRENCY = "USD"

# Served before the first successful fetch when the durable store is empty.
FALLBACK_PRICES: Mapping[AssetSymbol, Decimal] = MappingProxyType({
    AssetSymbol.BTC: Decimal("39875.50"),
    AssetSymbol.ETH: Decimal("2450.75"),
    AssetSymbol.USDT: Decimal("1.00"),
    AssetSymbol.USDC: Decimal("1.00"),
})

FALLBACK_CHANGES: Mapping[AssetSymbol, Decimal] = MappingProxyType({
    AssetSymbol.BTC: Decimal("2.34"),
    AssetSymbol.ETH: Decimal("-0.87"),
    AssetSymbol.USDT: Decimal("0.01"),
    AssetSymbol.USDC: Decimal("-0.01"),
})


class SubscriptionStatus(str, Enum):
    """Lifecycle of an investment subscription. COMPLETED and CANCELLED are terminal."""

    ACTIVE = "ACTIVE"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class ProviderQuote:
    """Price and 24h change for one asset as returned by an upstream provider."""

    price: Decimal
    change_24h: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        # Upstream payloads often carry floats or strings
        for name in ("price", "change_24h"):
            value = getattr(self, name)
            if not isinstance(value, Decimal):
                object.__setattr__(self, name, Decimal(str(value)))


@dataclass(frozen=True)
class RateSnapshot:
    """Latest known price of a single asset in the reference currency."""

    symbol: AssetSymbol
    price: Decimal
    change_24h: Decimal  # signed percentage, e.g. Decimal("-0.87")
    last_updated: float  # Unix seconds

    def __post_init__(self) -> None:
        if not self.price.is_finite() or self.price <= 0:
            raise InvalidAmount(
                f"Price for {self.symbol.value} must be positive, got {self.price}"
            )
        if not self.change_24h.is_finite():
            raise InvalidAmount(
                f"24h change for {self.symbol.value} must be finite, got {self.change_24h}"
            )


@dataclass(frozen=True)
class RateTable:
    """Immutable set of snapshots covering every supported asset.

    A table is never partially populated: construction fails unless all
    supported symbols are present. Updates build a new table; RateCache
    swaps the whole reference so readers never see a mix of old and new prices.
    """

    snapshots: Mapping[AssetSymbol, RateSnapshot]
    last_fetch: float  # Unix seconds of the last successful upstream fetch

    def __post_init__(self) -> None:
        missing = SUPPORTED_SYMBOLS - set(self.snapshots)
        if missing:
            names = ", ".join(sorted(s.value for s in missing))
            raise RateUnavailable(f"Rate table is missing symbols: {names}")
        for symbol, snapshot in self.snapshots.items():
            if snapshot.symbol is not symbol:
                raise RateUnavailable(
                    f"Snapshot for {snapshot.symbol.value} stored under {symbol.value}"
                )
        object.__setattr__(self, "snapshots", MappingProxyType(dict(self.snapshots)))

    @classmethod
    def fallback(cls) -> "RateTable":
        """Documented defaults used before any successful fetch.

        last_fetch is 0.0 ("never fetched"), so the table reads as stale and
        is due for refresh immediately.
        """
        return cls(
            snapshots={
                symbol: RateSnapshot(
                    symbol=symbol,
                    price=price,
                    change_24h=FALLBACK_CHANGES[symbol],
                    last_updated=0.0,
                )
                for symbol, price in FALLBACK_PRICES.items()
            },
            last_fetch=0.0,
        )

    @classmethod
    def from_quotes(
        cls, quotes: Mapping[AssetSymbol, ProviderQuote], fetched_at: float
    ) -> "RateTable":
        """Build a complete table from a provider batch."""
        return cls(
            snapshots={
                symbol: RateSnapshot(
                    symbol=symbol,
                    price=quote.price,
                    change_24h=quote.change_24h,
                    last_updated=fetched_at,
                )
                for symbol, quote in quotes.items()
            },
            last_fetch=fetched_at,
        )

    def get(self, symbol: "AssetSymbol | str") -> RateSnapshot:
        """Return the snapshot for a symbol.

        Raises:
            RateUnavailable: If the symbol is unsupported.
        """
        resolved = AssetSymbol.parse(symbol)
        snapshot = self.snapshots.get(resolved)
        if snapshot is None:
            raise RateUnavailable(f"No rate for {resolved.value}")
        return snapshot

    def price(self, symbol: "AssetSymbol | str") -> Decimal:
        return self.get(symbol).price

    def with_snapshot(self, snapshot: RateSnapshot) -> "RateTable":
        """Return a new table with one snapshot replaced and last_fetch kept."""
        snapshots = dict(self.snapshots)
        snapshots[snapshot.symbol] = snapshot
        return RateTable(snapshots=snapshots, last_fetch=self.last_fetch)


def parse_decimal(
    value: Decimal | int | float | str,
    field_name: str = "amount",
    *,
    allow_negative: bool = False,
) -> Decimal:
    """Coerce user or upstream input to a finite Decimal.

    Floats go through str() so 0.1 becomes Decimal("0.1"), not its binary
    expansion.

    Raises:
        InvalidAmount: For NaN, infinity, unparseable input, booleans, or a
            negative value when allow_negative is False.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"{field_name} must be a number, got {value!r}")
    if isinstance(value, Decimal):
        amount = value
    else:
        try:
            amount = Decimal(str(value).strip())
        except InvalidOperation:
            raise InvalidAmount(f"{field_name} is not a number: {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"{field_name} must be finite, got {amount}")
    if not allow_negative and amount < 0:
        raise InvalidAmount(f"{field_name} must be >= 0, got {amount}")
    return amount
