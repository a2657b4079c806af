"""Investment plans offered to clients and their subscription rules."""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from decimal import Decimal

from yieldcore.accrual import engine
from yieldcore.accrual.subscription import Subscription
from yieldcore.exceptions import InvalidAmount, InvalidSubscription
from yieldcore.models import parse_decimal


@dataclass(frozen=True)
class InvestmentPlan:
    """A fixed-term product: APY, duration and accepted amount range."""

    name: str
    apy_percent: Decimal
    duration_days: int
    min_amount: Decimal
    max_amount: Decimal | None = None  # None = no upper bound
    is_active: bool = True
    description: str = ""

    def __post_init__(self) -> None:
        if self.apy_percent < 0:
            raise InvalidSubscription(f"Plan {self.name}: APY must be >= 0")
        if self.duration_days <= 0:
            raise InvalidSubscription(f"Plan {self.name}: duration must be positive")
        if self.max_amount is not None and self.max_amount < self.min_amount:
            raise InvalidSubscription(f"Plan {self.name}: max_amount below min_amount")

    def validate_amount(self, amount: Decimal | int | float | str) -> Decimal:
        """Check an investment amount against the plan bounds.

        Raises:
            InvalidAmount: Outside [min_amount, max_amount] or not a valid number.
        """
        value = parse_decimal(amount, "amount")
        too_high = self.max_amount is not None and value > self.max_amount
        if value < self.min_amount or too_high:
            upper = str(self.max_amount) if self.max_amount is not None else "unlimited"
            raise InvalidAmount(
                f"Investment in {self.name} must be between {self.min_amount} and {upper}"
            )
        return value

    def subscribe(
        self,
        principal: Decimal | int | float | str,
        start_date: datetime | date | str,
    ) -> Subscription:
        """Open an ACTIVE subscription ending duration_days after start_date.

        Raises:
            InvalidSubscription: The plan is not accepting subscriptions.
            InvalidAmount: The principal is outside the plan bounds.
        """
        if not self.is_active:
            raise InvalidSubscription(f"Plan {self.name} is not active")
        amount = self.validate_amount(principal)
        start = engine.to_datetime(start_date, "start_date")
        return Subscription(
            principal=amount,
            apy_percent=self.apy_percent,
            start_date=start,
            end_date=start + timedelta(days=self.duration_days),
            plan_name=self.name,
        )

    def projected_return(self, principal: Decimal | int | float | str) -> Decimal:
        return engine.projected_return(principal, self.apy_percent, self.duration_days)

    def projected_total(self, principal: Decimal | int | float | str) -> Decimal:
        return engine.projected_total(principal, self.apy_percent, self.duration_days)


DEFAULT_PLANS: tuple[InvestmentPlan, ...] = (
    InvestmentPlan(
        name="Starter",
        apy_percent=Decimal("8.5"),
        duration_days=30,
        min_amount=Decimal("100"),
        max_amount=Decimal("5000"),
        description="Entry plan for a first crypto investment",
    ),
    InvestmentPlan(
        name="Growth",
        apy_percent=Decimal("12.5"),
        duration_days=90,
        min_amount=Decimal("1000"),
        max_amount=Decimal("25000"),
        description="Higher yield for growing a portfolio",
    ),
    InvestmentPlan(
        name="Premium",
        apy_percent=Decimal("15.0"),
        duration_days=180,
        min_amount=Decimal("5000"),
        max_amount=Decimal("100000"),
        description="Maximum yield for a longer commitment",
    ),
)


def get_plan(name: str, plans: tuple[InvestmentPlan, ...] = DEFAULT_PLANS) -> InvestmentPlan:
    """Look up a plan by name, case-insensitively.

    Raises:
        InvalidSubscription: No plan has that name.
    """
    for plan in plans:
        if plan.name.lower() == name.strip().lower():
            return plan
    raise InvalidSubscription(f"Unknown plan: {name!r}")
