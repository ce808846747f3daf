"""
Two-Stage Import Validation

DESIGN DECISION: Draft rows coming out of a file import are checked in two
distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required column presence (date, description, amount)
- Per-row parsing of amount, date and kind
- A batch missing a required column is rejected whole
- A row that cannot be parsed is skipped with a warning

STAGE 2 - SEMANTIC VALIDATION:
- Far-future date detection
- Unusually large amount detection
- Duplicate detection against the existing ledger
- These never block a row; they are reported for review

IMPORTANT: Validation NEVER coerces a bad value to zero.
A row either becomes a well-formed LedgerEntry or it is skipped and reported.
"""

import datetime as dt
import re
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from budget_tracker.config import get_settings
from budget_tracker.config.settings import AppSettings
from budget_tracker.models.imports import (
    REQUIRED_COLUMNS,
    ImportIssue,
    ImportResult,
    ImportStatus,
)
from budget_tracker.models.ledger import (
    LedgerEntry,
    UnknownEntryKindError,
    parse_entry_kind,
)
from budget_tracker.validation.categorizer import categorize


# Accepted textual date layouts, tried in order after ISO 8601.
DATE_FORMATS = ("%m/%d/%Y", "%Y/%m/%d", "%d.%m.%Y")

# Anything that is not part of a signed decimal number (currency symbols,
# thousands separators, whitespace).
_AMOUNT_NOISE = re.compile(r"[^-0-9.]")


class RowSkipped(Exception):
    """Raised internally when a draft row cannot become a ledger entry."""

    def __init__(self, field: str, issue_type: str, message: str):
        super().__init__(message)
        self.field = field
        self.issue_type = issue_type
        self.message = message


def parse_amount(raw: Any) -> Decimal:
    """
    Parse a draft amount into a finite Decimal, keeping its sign.

    Raises:
        RowSkipped: The value is missing, non-numeric or non-finite
    """
    if raw is None or isinstance(raw, bool):
        raise RowSkipped("amount", "missing", "Amount is missing")

    if isinstance(raw, (int, float, Decimal)):
        text = str(raw)
    else:
        text = _AMOUNT_NOISE.sub("", str(raw))

    if not text or text in {"-", ".", "-."}:
        raise RowSkipped("amount", "invalid_format", f"Amount {raw!r} is not a number")

    try:
        value = Decimal(text)
    except InvalidOperation as e:
        raise RowSkipped("amount", "invalid_format", f"Amount {raw!r} is not a number") from e

    if not value.is_finite():
        raise RowSkipped("amount", "invalid_value", f"Amount {raw!r} is not finite")
    return value


def parse_date(raw: Any) -> dt.date:
    """
    Parse a draft date.

    Accepts date/datetime objects, ISO 8601 strings and a few common
    bank-statement layouts.

    Raises:
        RowSkipped: The value is missing or unparseable
    """
    if isinstance(raw, dt.datetime):
        return raw.date()
    if isinstance(raw, dt.date):
        return raw
    if raw is None or not str(raw).strip():
        raise RowSkipped("date", "missing", "Date is missing")

    text = str(raw).strip()
    try:
        return dt.date.fromisoformat(text[:10])
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return dt.datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise RowSkipped("date", "invalid_format", f"Date {raw!r} could not be parsed")


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _duplicate_key(entry: LedgerEntry) -> tuple:
    return (
        entry.date,
        entry.amount,
        entry.kind,
        entry.description.strip().lower(),
    )


class ImportValidator:
    """
    Validates a batch of draft rows through a two-stage pipeline.

    Stage 1: Schema validation (columns, then per-row parsing)
    Stage 2: Semantic validation (needs today's date and the existing ledger)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def _validate_schema(
        self,
        rows: list[dict[str, Any]],
    ) -> tuple[bool, list[ImportIssue]]:
        """
        Stage 1a: batch-level column check.

        A required column counts as missing when no row carries it at all.

        Returns: (is_valid, list_of_issues)
        """
        issues = []
        present = set()
        for row in rows:
            present.update(str(key).strip().lower() for key in row)

        for column in REQUIRED_COLUMNS:
            if column not in present:
                issues.append(ImportIssue(
                    field=column,
                    issue_type="missing_column",
                    message=f"Required column '{column}' was not found",
                    severity="error",
                ))

        is_valid = not any(issue.severity == "error" for issue in issues)
        return is_valid, issues

    def _parse_row(
        self,
        row: dict[str, Any],
        row_number: int,
    ) -> tuple[LedgerEntry, list[ImportIssue]]:
        """
        Stage 1b: turn one draft row into a LedgerEntry.

        Raises:
            RowSkipped: The row cannot be represented as an entry
        """
        normalized = {str(key).strip().lower(): value for key, value in row.items()}
        issues = []

        signed_amount = parse_amount(normalized.get("amount"))
        amount = signed_amount
        if amount < 0:
            amount = abs(amount)
            issues.append(ImportIssue(
                row_number=row_number,
                field="amount",
                issue_type="sign_normalized",
                message=f"Row {row_number}: negative amount stored as {amount}",
                severity="info",
            ))

        entry_date = parse_date(normalized.get("date"))

        raw_description = normalized.get("description")
        description = "" if raw_description is None else str(raw_description)
        suggested_category, suggested_kind = categorize(description, signed_amount)

        raw_kind = normalized.get("kind")
        if _blank(raw_kind):
            kind = suggested_kind
        else:
            try:
                kind = parse_entry_kind(raw_kind)
            except UnknownEntryKindError as e:
                raise RowSkipped("kind", "invalid_value", f"Kind {raw_kind!r} is not income, expense or savings") from e

        # A suggested category only applies when it belongs to the row's kind
        raw_category = normalized.get("category")
        if not _blank(raw_category):
            category = str(raw_category).strip().lower()
        elif suggested_kind == kind:
            category = suggested_category
        else:
            category = "other"

        try:
            entry = LedgerEntry(
                kind=kind,
                category=category,
                amount=amount,
                description=description,
                date=entry_date,
            )
        except ValidationError as e:
            first = e.errors()[0]
            field = str(first["loc"][0]) if first.get("loc") else "row"
            raise RowSkipped(field, "invalid_value", first["msg"]) from e

        return entry, issues

    def _validate_semantic(
        self,
        entry: LedgerEntry,
        row_number: int,
        today: dt.date,
    ) -> list[ImportIssue]:
        """
        Stage 2: business sanity checks on a parsed entry.

        Checks:
        - Future dates (beyond the configured tolerance)
        - Unusually large amounts
        """
        issues = []

        max_future_date = today + dt.timedelta(days=self._settings.future_date_tolerance_days)
        if entry.date > max_future_date:
            issues.append(ImportIssue(
                row_number=row_number,
                field="date",
                issue_type="future_date",
                message=f"Row {row_number}: date ({entry.date}) is in the future",
                severity="warning",
            ))

        if entry.amount > self._settings.max_entry_amount:
            issues.append(ImportIssue(
                row_number=row_number,
                field="amount",
                issue_type="suspicious_value",
                message=f"Row {row_number}: amount ({entry.amount:,.2f}) seems unusually high",
                severity="warning",
            ))

        return issues

    def _check_duplicates(
        self,
        entry: LedgerEntry,
        row_number: int,
        seen: set[tuple],
    ) -> list[ImportIssue]:
        """Flag an entry that matches one already in the ledger or earlier in the batch."""
        if _duplicate_key(entry) not in seen:
            return []
        return [ImportIssue(
            row_number=row_number,
            field="duplicate",
            issue_type="potential_duplicate",
            message=(
                f"Row {row_number}: a {entry.kind.value} of {entry.amount} "
                f"on {entry.date} may already exist"
            ),
            severity="warning",
        )]

    def validate(
        self,
        rows: Iterable[dict[str, Any]],
        existing_entries: Iterable[LedgerEntry],
        today: dt.date,
    ) -> ImportResult:
        """
        Run the full two-stage pipeline over a batch.

        Args:
            rows: Column-mapped draft rows
            existing_entries: Current ledger, used for duplicate detection
            today: Reference date for the future-date check

        Returns:
            ImportResult whose entries are safe to append to the ledger
        """
        rows = list(rows)
        if not rows:
            return ImportResult(status=ImportStatus.EMPTY)

        schema_valid, all_issues = self._validate_schema(rows)
        if not schema_valid:
            missing = [issue.field for issue in all_issues if issue.issue_type == "missing_column"]
            return ImportResult(
                status=ImportStatus.REJECTED,
                issues=all_issues,
                rejected_reason=(
                    "Could not identify required columns: " + ", ".join(missing)
                ),
                total_rows=len(rows),
            )

        seen = {_duplicate_key(entry) for entry in existing_entries}
        entries = []
        skipped = 0

        for row_number, row in enumerate(rows, start=1):
            try:
                entry, row_issues = self._parse_row(row, row_number)
            except RowSkipped as skip:
                skipped += 1
                all_issues.append(ImportIssue(
                    row_number=row_number,
                    field=skip.field,
                    issue_type=skip.issue_type,
                    message=f"Skipping row {row_number}: {skip.message}",
                    severity="warning",
                    row_skipped=True,
                ))
                continue

            all_issues.extend(row_issues)
            all_issues.extend(self._validate_semantic(entry, row_number, today))
            all_issues.extend(self._check_duplicates(entry, row_number, seen))
            seen.add(_duplicate_key(entry))
            entries.append(entry)

        warnings = [issue.message for issue in all_issues if issue.severity == "warning"]

        if not entries:
            status = ImportStatus.REJECTED
            rejected_reason = "No row could be read"
        elif skipped:
            status = ImportStatus.PARTIAL
            rejected_reason = None
        else:
            status = ImportStatus.ACCEPTED
            rejected_reason = None

        return ImportResult(
            status=status,
            entries=entries,
            issues=all_issues,
            warnings=warnings,
            rejected_reason=rejected_reason,
            total_rows=len(rows),
            skipped_rows=skipped,
        )

    def get_user_friendly_summary(
        self,
        result: ImportResult,
    ) -> str:
        """
        Generate a user-friendly summary of an import.

        This is what we show to non-technical users.
        """
        if result.status == ImportStatus.EMPTY:
            return "ℹ️ The file did not contain any transactions."

        if result.status == ImportStatus.REJECTED:
            return f"❌ Import failed: {result.rejected_reason}"

        lines = [f"✅ Imported {len(result.entries)} of {result.total_rows} transactions."]

        if result.warnings:
            lines.append("")
            lines.append("⚠️ Please verify the following:")
            for warning in result.warnings:
                lines.append(f"   • {warning}")

        return "\n".join(lines)


def validate_import(
    rows: Iterable[dict[str, Any]],
    existing_entries: Iterable[LedgerEntry],
    today: dt.date,
    settings: Optional[AppSettings] = None,
) -> ImportResult:
    """Validate a batch of draft rows with a one-off ImportValidator."""
    return ImportValidator(settings).validate(rows, existing_entries, today)
