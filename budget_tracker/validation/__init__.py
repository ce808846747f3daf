"""
Validation Package

Two-stage validation of imported draft rows before they reach the ledger.
"""

from budget_tracker.validation.categorizer import categorize
from budget_tracker.validation.validator import (
    ImportValidator,
    parse_amount,
    parse_date,
    validate_import,
)

__all__ = [
    "categorize",
    "ImportValidator",
    "parse_amount",
    "parse_date",
    "validate_import",
]
