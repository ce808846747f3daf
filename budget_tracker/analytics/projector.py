"""
Trend Projector

Extrapolates a few future months from recent history.

DESIGN DECISION: This is a deterministic extrapolation, NOT a statistical
forecast. It takes the means of the most recent months with data and applies
fixed multipliers:

    income       mean * 1.02
    expenses     mean * 1.01
    savings      mean (unchanged)
    subscriptions  current monthly recurring cost (held constant)

The current date is always passed in. Nothing here reads the clock.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from pydantic import BaseModel, Field

from budget_tracker.analytics.aggregator import month_key, monthly_buckets
from budget_tracker.config.settings import ProjectionSettings
from budget_tracker.models.ledger import LedgerEntry, ProjectionPoint


ZERO = Decimal("0")


class ProjectionPolicy(BaseModel):
    """Growth assumptions used by project(). Defaults are the frozen policy."""

    income_growth: Decimal = Field(default=Decimal("1.02"), gt=0)
    expense_inflation: Decimal = Field(default=Decimal("1.01"), gt=0)
    history_months: int = Field(default=3, ge=1)

    @classmethod
    def from_settings(cls, settings: ProjectionSettings) -> "ProjectionPolicy":
        return cls(
            income_growth=settings.income_growth,
            expense_inflation=settings.expense_inflation,
            history_months=settings.history_months,
        )


def add_months(year: int, month: int, offset: int) -> tuple[int, int]:
    """Shift a (year, month) pair by a number of calendar months."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def _mean(values: list[Decimal]) -> Decimal:
    if not values:
        return ZERO
    return sum(values, ZERO) / len(values)


def project(
    entries: Iterable[LedgerEntry],
    monthly_recurring_cost: Decimal,
    current_date: date,
    horizon_months: int = 3,
    policy: Optional[ProjectionPolicy] = None,
) -> list[ProjectionPoint]:
    """
    Historical months followed by projected months.

    Args:
        entries: Ledger snapshot
        monthly_recurring_cost: Normalized subscription cost per month
        current_date: "Today"; projection starts the month after it
        horizon_months: How many future months to emit
        policy: Growth assumptions (defaults to 1.02 / 1.01 / 3 months)

    Returns:
        Up to policy.history_months historical points (is_projected=False),
        then horizon_months projected points (is_projected=True).
        With no historical data, projected means are all zero.
    """
    policy = policy or ProjectionPolicy()
    history = monthly_buckets(entries, policy.history_months)

    points = [
        ProjectionPoint(
            month=bucket.year_month,
            income=bucket.income,
            expenses=bucket.expense,
            savings=bucket.savings,
            subscriptions=monthly_recurring_cost,
            is_projected=False,
        )
        for bucket in history
    ]

    mean_income = _mean([bucket.income for bucket in history])
    mean_expense = _mean([bucket.expense for bucket in history])
    mean_savings = _mean([bucket.savings for bucket in history])

    for offset in range(1, horizon_months + 1):
        year, month = add_months(current_date.year, current_date.month, offset)
        points.append(ProjectionPoint(
            month=month_key(year, month),
            income=mean_income * policy.income_growth,
            expenses=mean_expense * policy.expense_inflation,
            savings=mean_savings,
            subscriptions=monthly_recurring_cost,
            is_projected=True,
        ))

    return points
