"""Scheduled income materialization."""

from budget_tracker.recurrence.materializer import (
    AUTO_MARKER,
    auto_description,
    build_entry,
    is_auto_generated,
    materialize,
    rule_state,
    run_materialization,
    scheduled_entry_id,
    scheduled_monthly_total,
)

__all__ = [
    "AUTO_MARKER",
    "auto_description",
    "build_entry",
    "is_auto_generated",
    "materialize",
    "rule_state",
    "run_materialization",
    "scheduled_entry_id",
    "scheduled_monthly_total",
]
