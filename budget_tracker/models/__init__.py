"""
Data Models Package

This package contains all Pydantic models used in the Budget Tracker.
All data flowing through the engine must conform to these schemas.
"""

from budget_tracker.models.ledger import (
    CategoryBreakdown,
    CategoryTotal,
    DashboardSummary,
    EntryKind,
    ExpenseCategory,
    Frequency,
    GoalProgress,
    IncomeCategory,
    KindTotals,
    LedgerEntry,
    MaterializationResult,
    MonthlyBucket,
    ProjectionPoint,
    RecurrenceState,
    RecurringObligation,
    SavingsCategory,
    SavingsGoal,
    ScheduledIncomeRule,
    SubscriptionCategory,
    UnknownEntryKindError,
    is_known_category,
    new_id,
    parse_entry_kind,
)
from budget_tracker.models.imports import (
    REQUIRED_COLUMNS,
    ImportIssue,
    ImportResult,
    ImportStatus,
)
from budget_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CategoryBreakdown",
    "CategoryTotal",
    "DashboardSummary",
    "EntryKind",
    "ExpenseCategory",
    "Frequency",
    "GoalProgress",
    "IncomeCategory",
    "KindTotals",
    "LedgerEntry",
    "MaterializationResult",
    "MonthlyBucket",
    "ProjectionPoint",
    "RecurrenceState",
    "RecurringObligation",
    "SavingsCategory",
    "SavingsGoal",
    "ScheduledIncomeRule",
    "SubscriptionCategory",
    "UnknownEntryKindError",
    "is_known_category",
    "new_id",
    "parse_entry_kind",
    # Import models
    "REQUIRED_COLUMNS",
    "ImportIssue",
    "ImportResult",
    "ImportStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
