"""Cross-asset conversion over a RateTable.

All prices are quotes in the same reference currency (USD), so converting
A to B is amount * price(A) / price(B). Arithmetic runs in a dedicated
28-digit decimal context and is never rounded here: rounding for display
happens only in yieldcore.conversion.formatting.
"""

from dataclasses import dataclass
from decimal import Context, Decimal, ROUND_HALF_EVEN
from typing import Mapping

from yieldcore.exceptions import InvalidAmount
from yieldcore.models import AssetSymbol, RateTable, parse_decimal

# Wide enough that chained conversions do not drift at 8 displayed decimals.
CONVERSION_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)


def convert(
    amount: Decimal | int | float | str,
    from_symbol: AssetSymbol | str,
    to_symbol: AssetSymbol | str,
    table: RateTable,
) -> Decimal:
    """Convert an amount of one asset into another.

    Identity conversions return the amount unchanged.

    Raises:
        InvalidAmount: Amount is negative or not finite.
        RateUnavailable: Either symbol is unsupported.
    """
    value = parse_decimal(amount)
    source = AssetSymbol.parse(from_symbol)
    target = AssetSymbol.parse(to_symbol)
    if source is target:
        return value
    return CONVERSION_CONTEXT.divide(
        CONVERSION_CONTEXT.multiply(value, table.price(source)),
        table.price(target),
    )


def cross_rate(
    from_symbol: AssetSymbol | str, to_symbol: AssetSymbol | str, table: RateTable
) -> Decimal:
    """Units of to_symbol worth one unit of from_symbol ("1 BTC = x ETH")."""
    return convert(Decimal("1"), from_symbol, to_symbol, table)


def reference_value(
    amount: Decimal | int | float | str, symbol: AssetSymbol | str, table: RateTable
) -> Decimal:
    """Value of an asset amount in the reference currency."""
    return CONVERSION_CONTEXT.multiply(parse_decimal(amount), table.price(symbol))


def portfolio_value(
    balances: Mapping[AssetSymbol | str, Decimal | int | float | str], table: RateTable
) -> Decimal:
    """Total reference-currency value of a wallet."""
    total = Decimal("0")
    for symbol, amount in balances.items():
        total = CONVERSION_CONTEXT.add(total, reference_value(amount, symbol, table))
    return total


@dataclass(frozen=True)
class ExchangeQuote:
    """Preview of an asset exchange, computed from one table."""

    from_symbol: AssetSymbol
    to_symbol: AssetSymbol
    amount: Decimal
    converted: Decimal
    rate: Decimal  # to_symbol units per from_symbol unit
    reference_value: Decimal
    last_fetch: float


def quote_exchange(
    amount: Decimal | int | float | str,
    from_symbol: AssetSymbol | str,
    to_symbol: AssetSymbol | str,
    table: RateTable,
    min_reference_value: Decimal = Decimal("0"),
) -> ExchangeQuote:
    """Price an exchange between two assets.

    Raises:
        InvalidAmount: Invalid amount, same asset on both sides, or a value
            below min_reference_value.
        RateUnavailable: Either symbol is unsupported.
    """
    value = parse_decimal(amount)
    source = AssetSymbol.parse(from_symbol)
    target = AssetSymbol.parse(to_symbol)
    if source is target:
        raise InvalidAmount(f"Cannot exchange {source.value} for itself")

    worth = reference_value(value, source, table)
    if worth < min_reference_value:
        raise InvalidAmount(
            f"Minimum exchange is {min_reference_value} equivalent, got {worth}"
        )

    return ExchangeQuote(
        from_symbol=source,
        to_symbol=target,
        amount=value,
        converted=convert(value, source, target, table),
        rate=cross_rate(source, target, table),
        reference_value=worth,
        last_fetch=table.last_fetch,
    )
