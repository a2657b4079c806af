"""Accrual layer -- daily-compounding interest, subscriptions and plans."""

from yieldcore.accrual.engine import (
    compute_accrued,
    daily_run_rate,
    days_remaining,
    progress,
    projected_return,
    projected_total,
)
from yieldcore.accrual.plans import DEFAULT_PLANS, InvestmentPlan, get_plan
from yieldcore.accrual.subscription import Subscription

__all__ = [
    "DEFAULT_PLANS",
    "InvestmentPlan",
    "Subscription",
    "compute_accrued",
    "daily_run_rate",
    "days_remaining",
    "get_plan",
    "progress",
    "projected_return",
    "projected_total",
]
