"""Aggregation, normalization and projection over ledger snapshots."""

from budget_tracker.analytics.aggregator import (
    average_entry_amount,
    average_monthly_total,
    filter_entries,
    month_key,
    monthly_buckets,
    monthly_category_breakdown,
    net_balance,
    percentage_of_income,
    total_saved,
    totals_by_category,
    totals_by_kind,
)
from budget_tracker.analytics.normalizer import (
    MONTHLY_MULTIPLIERS,
    UnknownFrequencyError,
    active_obligation_count,
    monthly_recurring_total,
    normalize_monthly,
)
from budget_tracker.analytics.palette import category_color
from budget_tracker.analytics.projector import ProjectionPolicy, add_months, project

__all__ = [
    # Aggregator
    "average_entry_amount",
    "average_monthly_total",
    "filter_entries",
    "month_key",
    "monthly_buckets",
    "monthly_category_breakdown",
    "net_balance",
    "percentage_of_income",
    "total_saved",
    "totals_by_category",
    "totals_by_kind",
    # Normalizer
    "MONTHLY_MULTIPLIERS",
    "UnknownFrequencyError",
    "active_obligation_count",
    "monthly_recurring_total",
    "normalize_monthly",
    # Palette
    "category_color",
    # Projector
    "ProjectionPolicy",
    "add_months",
    "project",
]
