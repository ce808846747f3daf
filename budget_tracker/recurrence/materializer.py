"""
Recurrence Materializer

Turns scheduled income rules into concrete ledger entries for the current
calendar month.

Per (rule, month) a rule is in one of three states:

    PENDING    the day has not been reached yet, or the rule is inactive
    DUE        the day has been reached and nothing is recorded this month
    SATISFIED  a matching entry already exists this month

CRITICAL: There is no "last processed" pointer. The state is recomputed
from (current_date, existing entries) on every call, so materialize() must
be idempotent: running it again against a ledger that already contains its
output creates nothing.
"""

from datetime import date
from decimal import Decimal
from typing import Iterable, Sequence

from budget_tracker.models.ledger import (
    EntryKind,
    LedgerEntry,
    MaterializationResult,
    RecurrenceState,
    ScheduledIncomeRule,
)


AUTO_MARKER = "(Auto)"


def auto_description(rule: ScheduledIncomeRule) -> str:
    """Description carried by entries generated from a rule."""
    return f"{rule.description} {AUTO_MARKER}"


def scheduled_entry_id(rule: ScheduledIncomeRule, year: int, month: int) -> str:
    """Deterministic id of the entry a rule emits for a given month."""
    return f"scheduled-{rule.id}-{year:04d}-{month:02d}"


def is_auto_generated(entry: LedgerEntry) -> bool:
    return entry.description.endswith(AUTO_MARKER)


def _matches(
    entry: LedgerEntry,
    rule: ScheduledIncomeRule,
    year: int,
    month: int,
) -> bool:
    if entry.id == scheduled_entry_id(rule, year, month):
        return True
    return (
        entry.description == auto_description(rule)
        and entry.date.year == year
        and entry.date.month == month
    )


def rule_state(
    rule: ScheduledIncomeRule,
    current_date: date,
    entries: Iterable[LedgerEntry],
) -> RecurrenceState:
    """State of a rule for the month containing current_date."""
    if not rule.active:
        return RecurrenceState.PENDING

    year, month = current_date.year, current_date.month
    if any(_matches(entry, rule, year, month) for entry in entries):
        return RecurrenceState.SATISFIED

    if current_date.day >= rule.day_of_month:
        return RecurrenceState.DUE
    return RecurrenceState.PENDING


def build_entry(rule: ScheduledIncomeRule, year: int, month: int) -> LedgerEntry:
    """The income entry a rule emits for a given month."""
    return LedgerEntry(
        id=scheduled_entry_id(rule, year, month),
        kind=EntryKind.INCOME,
        category=rule.category,
        amount=rule.amount,
        description=auto_description(rule),
        date=date(year, month, rule.day_of_month),
    )


def run_materialization(
    rules: Sequence[ScheduledIncomeRule],
    current_date: date,
    existing_entries: Sequence[LedgerEntry],
) -> MaterializationResult:
    """
    Evaluate every rule and collect the entries that are due.

    Entries created earlier in the same pass count as existing, so two
    rules sharing a description still emit at most one entry per month.
    The input sequences are never modified.
    """
    seen = list(existing_entries)
    result = MaterializationResult(processed_on=current_date)

    for rule in rules:
        state = rule_state(rule, current_date, seen)
        result.states[rule.id] = state
        if state != RecurrenceState.DUE:
            continue

        entry = build_entry(rule, current_date.year, current_date.month)
        result.created.append(entry)
        seen.append(entry)

    return result


def materialize(
    rules: Sequence[ScheduledIncomeRule],
    current_date: date,
    existing_entries: Sequence[LedgerEntry],
) -> list[LedgerEntry]:
    """New entries to append to the ledger (empty when nothing is due)."""
    return run_materialization(rules, current_date, existing_entries).created


def scheduled_monthly_total(rules: Iterable[ScheduledIncomeRule]) -> Decimal:
    """Sum of the amounts of all active rules."""
    return sum((rule.amount for rule in rules if rule.active), Decimal("0"))
