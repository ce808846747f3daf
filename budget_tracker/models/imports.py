"""
Import Models

Records produced when a batch of column-mapped draft rows is checked before
it reaches the ledger. Column detection itself happens upstream; by the time
rows arrive here each one is a dict keyed by date, description, amount and,
optionally, category and kind.
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from budget_tracker.models.ledger import LedgerEntry


REQUIRED_COLUMNS = ("date", "description", "amount")


class ImportStatus(str, Enum):
    """Outcome of an import batch."""
    ACCEPTED = "accepted"   # Every row became an entry
    PARTIAL = "partial"     # Some rows were skipped
    EMPTY = "empty"         # Nothing new to record
    REJECTED = "rejected"   # The batch as a whole was unusable


class ImportIssue(BaseModel):
    """A single problem found in an import batch."""

    row_number: Optional[int] = Field(
        default=None,
        ge=1,
        description="1-based row number within the batch, None for batch-level issues"
    )
    field: str = Field(
        ...,
        description="Column with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_format', 'potential_duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )
    row_skipped: bool = Field(
        default=False,
        description="True when this issue caused its row to be left out"
    )


class ImportResult(BaseModel):
    """
    Result of validating an import batch.

    Only `entries` are meant to be appended to the ledger. Skipped rows are
    described in `issues` and never coerced into entries.
    """

    status: ImportStatus
    entries: list[LedgerEntry] = Field(default_factory=list)
    issues: list[ImportIssue] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rejected_reason: Optional[str] = None
    total_rows: int = Field(default=0, ge=0)
    skipped_rows: int = Field(default=0, ge=0)
