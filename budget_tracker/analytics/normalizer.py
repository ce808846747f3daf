"""
Frequency Normalizer

Converts a recurring charge into its monthly-equivalent cost.

DESIGN DECISION: The multiplier table is a frozen policy of literal
approximations, not exact calendar fractions:

    weekly    4.33   (52 / 12 rounded)
    monthly   1
    quarterly 0.33   (so 4 quarters read as 1.32 months, not 1.0)
    yearly    0.083  (so 12 months read as 0.996 years, not 1.0)

Callers accept the small systematic bias these literals introduce.
"""

from decimal import Decimal
from typing import Iterable

from budget_tracker.models.ledger import Frequency, RecurringObligation


MONTHLY_MULTIPLIERS: dict[Frequency, Decimal] = {
    Frequency.WEEKLY: Decimal("4.33"),
    Frequency.MONTHLY: Decimal("1"),
    Frequency.QUARTERLY: Decimal("0.33"),
    Frequency.YEARLY: Decimal("0.083"),
}


class UnknownFrequencyError(ValueError):
    """
    Raised for a frequency outside the closed enumeration.

    This is a configuration/programming error and is never recovered from.
    """
    pass


def normalize_monthly(amount: Decimal, frequency: Frequency) -> Decimal:
    """
    Monthly-equivalent figure for an amount billed at a given frequency.

    Args:
        amount: Charge per billing period
        frequency: Billing frequency (or its string value)

    Returns:
        amount multiplied by the fixed multiplier for the frequency

    Raises:
        UnknownFrequencyError: frequency is not a known Frequency
    """
    try:
        multiplier = MONTHLY_MULTIPLIERS[Frequency(frequency)]
    except (ValueError, KeyError) as e:
        raise UnknownFrequencyError(f"Unsupported frequency: {frequency!r}") from e
    return Decimal(amount) * multiplier


def monthly_recurring_total(obligations: Iterable[RecurringObligation]) -> Decimal:
    """Sum of monthly-equivalent costs of all active obligations."""
    return sum(
        (
            normalize_monthly(obligation.amount, obligation.frequency)
            for obligation in obligations
            if obligation.active
        ),
        Decimal("0"),
    )


def active_obligation_count(obligations: Iterable[RecurringObligation]) -> int:
    return sum(1 for obligation in obligations if obligation.active)
