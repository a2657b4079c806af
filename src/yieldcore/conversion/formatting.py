"""Presentation-boundary rounding and formatting.

The only place amounts are rounded. Crypto-denominated assets show 8
decimals, fiat-pegged stablecoins 2, both rounded half-up.
"""

from decimal import ROUND_HALF_UP, Decimal

from yieldcore.models import AssetSymbol


def round_for_display(amount: Decimal, symbol: AssetSymbol | str) -> Decimal:
    """Quantize an amount to the asset's display precision."""
    decimals = AssetSymbol.parse(symbol).display_decimals
    return amount.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_HALF_UP)


def format_asset(amount: Decimal, symbol: AssetSymbol | str) -> str:
    """e.g. "0.15432000 BTC", "15,420.50 USDT"."""
    resolved = AssetSymbol.parse(symbol)
    return f"{round_for_display(amount, resolved):,f} {resolved.value}"


def format_reference(amount: Decimal) -> str:
    """Reference-currency amount, e.g. "$1,234.56" or "-$12.00"."""
    rounded = amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if rounded < 0 else ""
    return f"{sign}${abs(rounded):,f}"


def format_percent(value: Decimal) -> str:
    """Signed percentage with two decimals, e.g. "+2.34%", "-0.87%"."""
    rounded = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    if rounded.is_zero():
        rounded = rounded.copy_abs()  # no "+-0.00%"
    sign = "+" if rounded >= 0 else ""
    return f"{sign}{rounded}%"
