"""Daily-compounding interest accrual for investment subscriptions.

All calculations use Decimal arithmetic in a 28-digit context -- no float
conversions and no rounding; display rounding is the caller's concern.

Core formulas:
  daily_rate     = apy_percent / 365 / 100
  earned(d)      = principal * (1 + daily_rate) ** d - principal
  d              = min(elapsed_days, total_days)   # frozen once the term ends
  daily_run_rate = principal * daily_rate
  progress       = clamp((now - start) / (end - start), 0, 1)
"""

import math
from datetime import date, datetime, time
from decimal import Context, Decimal, ROUND_HALF_EVEN

from yieldcore.exceptions import InvalidSubscription
from yieldcore.models import parse_decimal

ACCRUAL_CONTEXT = Context(prec=28, rounding=ROUND_HALF_EVEN)

DAYS_PER_YEAR = Decimal("365")
SECONDS_PER_DAY = Decimal("86400")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def daily_rate(apy_percent: Decimal | int | float | str) -> Decimal:
    """Per-day compounding rate for an APY given in percent (12.5 -> 0.000342...)."""
    apy = parse_decimal(apy_percent, "apy_percent")
    return ACCRUAL_CONTEXT.divide(ACCRUAL_CONTEXT.divide(apy, DAYS_PER_YEAR), _HUNDRED)


def compute_accrued(
    principal: Decimal | int | float | str,
    apy_percent: Decimal | int | float | str,
    elapsed_days: Decimal | int | float | str,
    total_days: Decimal | int | float | str | None = None,
) -> Decimal:
    """Interest earned after elapsed_days of daily compounding.

    Once elapsed_days reaches total_days the result stops growing. Without
    total_days there is no cap.

    Args:
        principal: Invested amount (>= 0).
        apy_percent: Annual percentage yield, e.g. 12.5 for 12.5%.
        elapsed_days: Days since the start of the term (>= 0, may be fractional).
        total_days: Length of the term in days, or None.

    Returns:
        Earned amount (not including principal).

    Raises:
        InvalidAmount: Any input negative or not finite.
    """
    amount = parse_decimal(principal, "principal")
    rate = daily_rate(apy_percent)
    days = parse_decimal(elapsed_days, "elapsed_days")
    if total_days is not None:
        days = min(days, parse_decimal(total_days, "total_days"))

    if amount.is_zero() or rate.is_zero() or days.is_zero():
        return _ZERO

    growth = ACCRUAL_CONTEXT.power(ACCRUAL_CONTEXT.add(_ONE, rate), days)
    return ACCRUAL_CONTEXT.subtract(ACCRUAL_CONTEXT.multiply(amount, growth), amount)


def daily_run_rate(
    principal: Decimal | int | float | str, apy_percent: Decimal | int | float | str
) -> Decimal:
    """Simple per-day earning used for "earning per day" display.

    Independent of elapsed time: principal * apy / 365 / 100.
    """
    amount = parse_decimal(principal, "principal")
    return ACCRUAL_CONTEXT.multiply(amount, daily_rate(apy_percent))


def projected_return(
    principal: Decimal | int | float | str,
    apy_percent: Decimal | int | float | str,
    duration_days: Decimal | int | float | str,
) -> Decimal:
    """Interest expected at the end of a full term (plan preview)."""
    return compute_accrued(principal, apy_percent, duration_days, duration_days)


def projected_total(
    principal: Decimal | int | float | str,
    apy_percent: Decimal | int | float | str,
    duration_days: Decimal | int | float | str,
) -> Decimal:
    """Principal plus projected_return ("total after N days")."""
    amount = parse_decimal(principal, "principal")
    return ACCRUAL_CONTEXT.add(amount, projected_return(amount, apy_percent, duration_days))


def to_datetime(value: datetime | date | str, field_name: str = "date") -> datetime:
    """Normalize a date, datetime or ISO-8601 string to a datetime.

    Plain dates become midnight of that day.

    Raises:
        InvalidSubscription: For strings that are not ISO-8601.
    """
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        raise InvalidSubscription(f"{field_name} is not an ISO date: {value!r}") from None


def _seconds_between(start: datetime, end: datetime) -> Decimal:
    try:
        delta = end - start
    except TypeError:
        raise InvalidSubscription(
            "Cannot mix timezone-aware and naive datetimes"
        ) from None
    return Decimal(str(delta.total_seconds()))


def term_days(start_date: datetime | date | str, end_date: datetime | date | str) -> Decimal:
    """Length of a term in (possibly fractional) days.

    Raises:
        InvalidSubscription: If end_date is not after start_date.
    """
    start = to_datetime(start_date, "start_date")
    end = to_datetime(end_date, "end_date")
    seconds = _seconds_between(start, end)
    if seconds <= 0:
        raise InvalidSubscription(f"end_date {end} must be after start_date {start}")
    return ACCRUAL_CONTEXT.divide(seconds, SECONDS_PER_DAY)


def elapsed_days(start_date: datetime | date | str, now: datetime | date | str) -> Decimal:
    """Days since start_date, never negative."""
    seconds = _seconds_between(to_datetime(start_date, "start_date"), to_datetime(now, "now"))
    return max(_ZERO, ACCRUAL_CONTEXT.divide(seconds, SECONDS_PER_DAY))


def progress(
    start_date: datetime | date | str,
    end_date: datetime | date | str,
    now: datetime | date | str,
) -> Decimal:
    """Fraction of the term elapsed, clamped to [0, 1].

    Raises:
        InvalidSubscription: If end_date is not after start_date.
    """
    total = term_days(start_date, end_date)
    fraction = ACCRUAL_CONTEXT.divide(elapsed_days(start_date, now), total)
    return min(_ONE, max(_ZERO, fraction))


def days_remaining(end_date: datetime | date | str, now: datetime | date | str) -> int:
    """Whole days left in the term, rounded up, never negative."""
    seconds = _seconds_between(to_datetime(now, "now"), to_datetime(end_date, "end_date"))
    if seconds <= 0:
        return 0
    return math.ceil(ACCRUAL_CONTEXT.divide(seconds, SECONDS_PER_DAY))
