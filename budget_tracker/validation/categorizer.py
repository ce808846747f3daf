"""
Description-Based Categorization

Suggests a category and kind for an imported row whose category or kind
column is blank. Rules are checked in order; the first keyword found in the
lower-cased description wins.

When no rule matches, the bank-statement sign convention decides the kind:
a positive amount is money going out (expense), anything else is money
coming in (income).
"""

from decimal import Decimal

from budget_tracker.models.ledger import EntryKind


# (keywords, category, kind), checked top to bottom
CATEGORY_RULES: list[tuple[tuple[str, ...], str, EntryKind]] = [
    (("salary", "payroll", "deposit", "income"), "salary", EntryKind.INCOME),
    (("savings", "transfer to savings", "investment"), "emergency", EntryKind.SAVINGS),
    (("grocery", "food", "restaurant", "cafe"), "food", EntryKind.EXPENSE),
    (("gas", "fuel", "uber", "taxi", "bus"), "transportation", EntryKind.EXPENSE),
    (("movie", "netflix", "spotify", "entertainment"), "entertainment", EntryKind.EXPENSE),
    (("electric", "water", "utility", "phone", "internet"), "utilities", EntryKind.EXPENSE),
    (("doctor", "pharmacy", "hospital", "medical"), "healthcare", EntryKind.EXPENSE),
    (("amazon", "walmart", "target", "shopping"), "shopping", EntryKind.EXPENSE),
]

FALLBACK_CATEGORY = "other"


def kind_from_sign(amount: Decimal) -> EntryKind:
    """Bank-statement convention: positive is an expense, otherwise income."""
    return EntryKind.EXPENSE if amount > 0 else EntryKind.INCOME


def categorize(description: str, amount: Decimal) -> tuple[str, EntryKind]:
    """
    Suggest (category, kind) for a transaction.

    Args:
        description: Free-text description from the statement
        amount: The signed amount as it appeared in the file

    Returns:
        The first matching rule's category and kind, or ("other", kind
        from the amount's sign) when nothing matches
    """
    text = (description or "").lower()
    for keywords, category, kind in CATEGORY_RULES:
        if any(keyword in text for keyword in keywords):
            return category, kind
    return FALLBACK_CATEGORY, kind_from_sign(amount)
