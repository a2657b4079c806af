"""Investment subscription lifecycle.

A Subscription is created ACTIVE when a user commits capital to a plan.
COMPLETED is derived from the clock (now >= end_date), so nothing has to
schedule the transition; accrue() merely records it. CANCELLED is reached
only through cancel() and freezes the earned amount. Both are terminal.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import ROUND_FLOOR, Decimal
from uuid import uuid4

from yieldcore.accrual import engine
from yieldcore.exceptions import InvalidAmount, InvalidSubscription
from yieldcore.logging import get_logger
from yieldcore.models import SubscriptionStatus, parse_decimal

logger = get_logger(__name__)


@dataclass
class Subscription:
    """Capital committed to a fixed-term, daily-compounding plan.

    Raises at construction:
        InvalidAmount: principal not finite or not > 0.
        InvalidSubscription: negative/non-finite APY or end_date <= start_date.
    """

    principal: Decimal
    apy_percent: Decimal
    start_date: datetime
    end_date: datetime
    plan_name: str | None = None
    id: str = field(default_factory=lambda: uuid4().hex)
    status: SubscriptionStatus = field(default=SubscriptionStatus.ACTIVE, init=False)
    total_earned_so_far: Decimal = field(default=Decimal("0"), init=False)
    cancelled_at: datetime | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        self.principal = parse_decimal(self.principal, "principal")
        if self.principal <= 0:
            raise InvalidAmount(f"principal must be > 0, got {self.principal}")
        try:
            self.apy_percent = parse_decimal(self.apy_percent, "apy_percent")
        except InvalidAmount as exc:
            raise InvalidSubscription(str(exc)) from None
        self.start_date = engine.to_datetime(self.start_date, "start_date")
        self.end_date = engine.to_datetime(self.end_date, "end_date")
        # Validates end_date > start_date and comparable timezones
        self._duration_days = engine.term_days(self.start_date, self.end_date)

    @property
    def duration_days(self) -> Decimal:
        return self._duration_days

    @property
    def is_terminal(self) -> bool:
        return self.status is not SubscriptionStatus.ACTIVE

    def _matured(self, now: datetime | date | str) -> bool:
        return engine.elapsed_days(self.start_date, now) >= self._duration_days

    def status_at(self, now: datetime | date | str) -> SubscriptionStatus:
        """Status as of now, without mutating the subscription."""
        if self.status is not SubscriptionStatus.ACTIVE:
            return self.status
        if self._matured(now):
            return SubscriptionStatus.COMPLETED
        return SubscriptionStatus.ACTIVE

    def earned_at(self, now: datetime | date | str) -> Decimal:
        """Interest earned as of now.

        Compounds over completed days while the term runs, over the exact
        full term once it has ended, and returns the frozen amount after
        cancellation.
        """
        if self.status is SubscriptionStatus.CANCELLED:
            return self.total_earned_so_far
        elapsed = engine.elapsed_days(self.start_date, now)
        if elapsed >= self._duration_days:
            days = self._duration_days
        else:
            days = elapsed.to_integral_value(rounding=ROUND_FLOOR)
        return engine.compute_accrued(
            self.principal, self.apy_percent, days, self._duration_days
        )

    def accrue(self, now: datetime | date | str) -> Decimal:
        """Record earnings up to now and complete the subscription at term end.

        No-op on COMPLETED or CANCELLED subscriptions.

        Returns:
            total_earned_so_far after the update.
        """
        if self.is_terminal:
            return self.total_earned_so_far
        self.total_earned_so_far = self.earned_at(now)
        if self._matured(now):
            self.status = SubscriptionStatus.COMPLETED
            logger.info(
                "subscription_completed",
                subscription_id=self.id,
                total_earned=str(self.total_earned_so_far),
            )
        return self.total_earned_so_far

    def cancel(self, now: datetime | date | str) -> Decimal:
        """Cancel an active subscription, freezing what it has earned so far.

        Raises:
            InvalidSubscription: If the subscription is already COMPLETED
                (including one whose term has ended) or CANCELLED.
        """
        current = self.status_at(now)
        if current is not SubscriptionStatus.ACTIVE:
            raise InvalidSubscription(
                f"Cannot cancel subscription {self.id}: status is {current.value}"
            )
        self.total_earned_so_far = self.earned_at(now)
        self.status = SubscriptionStatus.CANCELLED
        self.cancelled_at = engine.to_datetime(now, "now")
        logger.info(
            "subscription_cancelled",
            subscription_id=self.id,
            total_earned=str(self.total_earned_so_far),
        )
        return self.total_earned_so_far

    def progress_at(self, now: datetime | date | str) -> Decimal:
        """Fraction of the term elapsed; frozen at the cancellation time."""
        as_of = self.cancelled_at if self.cancelled_at is not None else now
        return engine.progress(self.start_date, self.end_date, as_of)

    def daily_earning(self) -> Decimal:
        return engine.daily_run_rate(self.principal, self.apy_percent)

    def days_remaining(self, now: datetime | date | str) -> int:
        if self.status is SubscriptionStatus.CANCELLED:
            return 0
        return engine.days_remaining(self.end_date, now)

    def maturity_value(self) -> Decimal:
        """Principal plus interest at the end of the full term."""
        return engine.projected_total(self.principal, self.apy_percent, self._duration_days)
