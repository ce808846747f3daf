"""
Ledger Aggregator

DESIGN DECISION: Aggregation is DETERMINISTIC and pure.
Every function takes an immutable snapshot of ledger entries and returns
plain result records. Nothing here reads the clock, touches storage or
knows about display colors.

Month bucketing works on (year, month) pairs. Only months that actually
contain data become buckets; a "last N months" window means the N most
recent months WITH data, not a trailing window from today.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Iterable, Optional

from budget_tracker.models.ledger import (
    CategoryBreakdown,
    CategoryTotal,
    EntryKind,
    KindTotals,
    LedgerEntry,
    MonthlyBucket,
    is_known_category,
)


ZERO = Decimal("0")


def month_key(year: int, month: int) -> str:
    """Format a (year, month) pair as a YYYY-MM key."""
    return f"{year:04d}-{month:02d}"


def totals_by_kind(entries: Iterable[LedgerEntry]) -> KindTotals:
    """Sum of amounts per kind. Kinds without entries total zero."""
    sums = {kind: ZERO for kind in EntryKind}
    for entry in entries:
        sums[entry.kind] += entry.amount
    return KindTotals(
        income=sums[EntryKind.INCOME],
        expense=sums[EntryKind.EXPENSE],
        savings=sums[EntryKind.SAVINGS],
    )


def totals_by_category(
    entries: Iterable[LedgerEntry],
    kind: EntryKind,
) -> list[CategoryTotal]:
    """
    Per-category totals for one kind, largest first.

    Categories outside the known enumeration are aggregated like any
    other and flagged with is_known=False. Ties keep first-seen order.
    """
    groups: dict[str, Decimal] = {}
    for entry in entries:
        if entry.kind != kind:
            continue
        groups[entry.category] = groups.get(entry.category, ZERO) + entry.amount

    ranked = sorted(groups.items(), key=lambda item: item[1], reverse=True)
    return [
        CategoryTotal(
            category=category,
            amount=amount,
            is_known=is_known_category(kind, category),
        )
        for category, amount in ranked
    ]


def _group_by_month(
    entries: Iterable[LedgerEntry],
) -> dict[tuple[int, int], list[LedgerEntry]]:
    groups: dict[tuple[int, int], list[LedgerEntry]] = defaultdict(list)
    for entry in entries:
        groups[entry.year_month].append(entry)
    return groups


def _most_recent(keys: Iterable[tuple[int, int]], months_back: int) -> list[tuple[int, int]]:
    ordered = sorted(keys)
    if months_back <= 0:
        return []
    return ordered[-months_back:]


def monthly_buckets(
    entries: Iterable[LedgerEntry],
    months_back: int,
) -> list[MonthlyBucket]:
    """
    Per-kind totals for the most recent months that have data.

    Args:
        entries: Ledger snapshot
        months_back: How many distinct months (with data) to keep

    Returns:
        Buckets in ascending chronological order
    """
    groups = _group_by_month(entries)

    buckets = []
    for year, month in _most_recent(groups.keys(), months_back):
        totals = totals_by_kind(groups[(year, month)])
        buckets.append(MonthlyBucket(
            year_month=month_key(year, month),
            income=totals.income,
            expense=totals.expense,
            savings=totals.savings,
        ))
    return buckets


def monthly_category_breakdown(
    entries: Iterable[LedgerEntry],
    kind: EntryKind,
    months_back: int,
) -> list[CategoryBreakdown]:
    """
    Per-month, per-category totals for one kind.

    Only months that contain entries of that kind are considered.
    """
    groups = _group_by_month(entry for entry in entries if entry.kind == kind)

    breakdown = []
    for year, month in _most_recent(groups.keys(), months_back):
        categories: dict[str, Decimal] = {}
        for entry in groups[(year, month)]:
            categories[entry.category] = categories.get(entry.category, ZERO) + entry.amount
        breakdown.append(CategoryBreakdown(
            year_month=month_key(year, month),
            total=sum(categories.values(), ZERO),
            categories=categories,
        ))
    return breakdown


def net_balance(entries: Iterable[LedgerEntry]) -> Decimal:
    """Income minus expense. Savings is an allocation, not a liability."""
    return totals_by_kind(entries).net_balance


def percentage_of_income(value: Decimal, total_income: Decimal) -> Decimal:
    """
    value as a percentage of total_income.

    Defined as 0 when total_income is 0, so callers never see a
    non-finite result.
    """
    if total_income == 0:
        return ZERO
    return Decimal(value) / Decimal(total_income) * 100


def average_monthly_total(
    entries: Iterable[LedgerEntry],
    kind: EntryKind,
    months_back: int,
) -> Decimal:
    """Mean monthly total of one kind over its most recent months with data."""
    months = monthly_category_breakdown(entries, kind, months_back)
    if not months:
        return ZERO
    return sum((month.total for month in months), ZERO) / len(months)


def average_entry_amount(
    entries: Iterable[LedgerEntry],
    kind: EntryKind,
) -> Decimal:
    """Mean amount per entry of one kind (0 when there are none)."""
    amounts = [entry.amount for entry in entries if entry.kind == kind]
    if not amounts:
        return ZERO
    return sum(amounts, ZERO) / len(amounts)


def total_saved(entries: Iterable[LedgerEntry]) -> Decimal:
    """Total of savings entries. Independent of any savings goal's current_amount."""
    return totals_by_kind(entries).savings


def filter_entries(
    entries: Iterable[LedgerEntry],
    kind: Optional[EntryKind] = None,
    category: Optional[str] = None,
) -> list[LedgerEntry]:
    """Entries matching the given kind and/or category, newest first."""
    matching = [
        entry for entry in entries
        if (kind is None or entry.kind == kind)
        and (category is None or entry.category == category)
    ]
    matching.sort(key=lambda entry: (entry.date, entry.id), reverse=True)
    return matching
