"""
Tests for the two-stage import validator.
"""

import pytest
from datetime import date
from decimal import Decimal

from budget_tracker.config import AppSettings
from budget_tracker.models import EntryKind, ImportStatus, LedgerEntry
from budget_tracker.validation import (
    ImportValidator,
    categorize,
    parse_amount,
    parse_date,
    validate_import,
)
from budget_tracker.validation.validator import RowSkipped


TODAY = date(2024, 3, 20)


@pytest.fixture
def validator():
    return ImportValidator(AppSettings(
        max_entry_amount=Decimal("10000"),
        future_date_tolerance_days=7,
    ))


def row(**fields):
    base = {"date": "2024-03-01", "description": "Coffee", "amount": "4.50"}
    base.update(fields)
    return base


class TestParsing:
    """Tests for amount and date parsing."""

    @pytest.mark.parametrize("raw, expected", [
        ("4.50", Decimal("4.50")),
        ("$1,234.56", Decimal("1234.56")),
        ("-20", Decimal("-20")),
        (12, Decimal("12")),
        (Decimal("7.25"), Decimal("7.25")),
    ])
    def test_parse_amount(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "abc", "1.2.3", float("nan"), float("inf"), True])
    def test_parse_amount_rejects(self, raw):
        """Bad amounts are never coerced to zero."""
        with pytest.raises(RowSkipped):
            parse_amount(raw)

    def test_parse_amount_keeps_decimal_error_as_cause(self):
        with pytest.raises(RowSkipped) as exc_info:
            parse_amount("1.2.3")
        assert exc_info.value.__cause__ is not None

    @pytest.mark.parametrize("raw, expected", [
        ("2024-03-01", date(2024, 3, 1)),
        ("2024-03-01T10:30:00", date(2024, 3, 1)),
        ("03/15/2024", date(2024, 3, 15)),
        (date(2024, 1, 2), date(2024, 1, 2)),
    ])
    def test_parse_date(self, raw, expected):
        assert parse_date(raw) == expected

    @pytest.mark.parametrize("raw", [None, "", "yesterday", "2024-13-40"])
    def test_parse_date_rejects(self, raw):
        with pytest.raises(RowSkipped):
            parse_date(raw)


class TestSchemaStage:
    """Stage 1: columns and rows."""

    def test_accepts_clean_batch(self, validator):
        result = validator.validate([row(), row(description="Tea", amount="3")], [], TODAY)

        assert result.status == ImportStatus.ACCEPTED
        assert len(result.entries) == 2
        assert result.total_rows == 2
        assert result.skipped_rows == 0

    def test_empty_batch(self, validator):
        result = validator.validate([], [], TODAY)
        assert result.status == ImportStatus.EMPTY
        assert result.entries == []

    def test_missing_required_column_rejects_batch(self, validator):
        rows = [{"date": "2024-03-01", "description": "Coffee"}]
        result = validator.validate(rows, [], TODAY)

        assert result.status == ImportStatus.REJECTED
        assert result.entries == []
        assert "amount" in result.rejected_reason

    def test_column_names_are_case_insensitive(self, validator):
        rows = [{"Date": "2024-03-01", "Description": "Coffee", "AMOUNT": "4"}]
        result = validator.validate(rows, [], TODAY)
        assert result.status == ImportStatus.ACCEPTED

    def test_bad_amount_skips_row(self, validator):
        result = validator.validate([row(), row(amount="n/a")], [], TODAY)

        assert result.status == ImportStatus.PARTIAL
        assert len(result.entries) == 1
        assert result.skipped_rows == 1
        skipped = [issue for issue in result.issues if issue.row_skipped]
        assert skipped[0].row_number == 2
        assert skipped[0].field == "amount"
        assert any("Skipping row 2" in warning for warning in result.warnings)

    def test_bad_date_skips_row(self, validator):
        result = validator.validate([row(date="not a date")], [], TODAY)
        assert result.status == ImportStatus.REJECTED
        assert result.skipped_rows == 1

    def test_unknown_kind_skips_row(self, validator):
        result = validator.validate([row(kind="transfer"), row()], [], TODAY)
        assert result.status == ImportStatus.PARTIAL
        assert result.issues[0].field == "kind"

    def test_defaults_for_category_and_kind(self, validator):
        entry = validator.validate([row()], [], TODAY).entries[0]
        assert entry.category == "other"
        assert entry.kind == EntryKind.EXPENSE

    def test_explicit_category_and_kind(self, validator):
        entry = validator.validate([row(category="Food", kind="Income")], [], TODAY).entries[0]
        assert entry.category == "food"
        assert entry.kind == EntryKind.INCOME

    def test_negative_amount_stored_as_magnitude(self, validator):
        result = validator.validate([row(amount="-42.10")], [], TODAY)

        assert result.entries[0].amount == Decimal("42.10")
        info = [issue for issue in result.issues if issue.severity == "info"]
        assert info[0].issue_type == "sign_normalized"
        assert result.warnings == []

    def test_negative_amount_without_kind_is_income(self, validator):
        """Money coming in shows as a negative amount on a bank statement."""
        entry = validator.validate([row(description="Refund", amount="-25")], [], TODAY).entries[0]
        assert entry.kind == EntryKind.INCOME
        assert entry.category == "other"
        assert entry.amount == Decimal("25")

    def test_description_keywords_fill_blank_fields(self, validator):
        result = validator.validate([
            row(description="Grocery store", amount="40"),
            row(description="Payroll ACME", amount="-3000"),
        ], [], TODAY)

        grocery, payroll = result.entries
        assert (grocery.category, grocery.kind) == ("food", EntryKind.EXPENSE)
        assert (payroll.category, payroll.kind) == ("salary", EntryKind.INCOME)

    def test_explicit_kind_blocks_category_of_other_kind(self, validator):
        """A keyword category is only used when it belongs to the given kind."""
        entry = validator.validate([row(description="Grocery refund", kind="income")], [], TODAY).entries[0]
        assert entry.kind == EntryKind.INCOME
        assert entry.category == "other"

    def test_explicit_category_gets_keyword_kind(self, validator):
        entry = validator.validate([row(description="Transfer to savings", category="vacation")], [], TODAY).entries[0]
        assert entry.category == "vacation"
        assert entry.kind == EntryKind.SAVINGS


class TestCategorize:
    """Tests for description keyword categorization."""

    @pytest.mark.parametrize("description, category, kind", [
        ("Monthly SALARY", "salary", EntryKind.INCOME),
        ("Direct deposit", "salary", EntryKind.INCOME),
        ("Transfer to savings", "emergency", EntryKind.SAVINGS),
        ("Corner cafe", "food", EntryKind.EXPENSE),
        ("Uber trip", "transportation", EntryKind.EXPENSE),
        ("Netflix", "entertainment", EntryKind.EXPENSE),
        ("Internet bill", "utilities", EntryKind.EXPENSE),
        ("Pharmacy", "healthcare", EntryKind.EXPENSE),
        ("Amazon order", "shopping", EntryKind.EXPENSE),
    ])
    def test_keyword_rules(self, description, category, kind):
        assert categorize(description, Decimal("10")) == (category, kind)

    def test_first_matching_rule_wins(self):
        """'Savings' is checked before 'food'."""
        assert categorize("Food savings jar", Decimal("10")) == ("emergency", EntryKind.SAVINGS)

    @pytest.mark.parametrize("amount, kind", [
        (Decimal("12"), EntryKind.EXPENSE),
        (Decimal("-12"), EntryKind.INCOME),
        (Decimal("0"), EntryKind.INCOME),
    ])
    def test_no_match_uses_amount_sign(self, amount, kind):
        assert categorize("Misc", amount) == ("other", kind)

    def test_empty_description(self):
        assert categorize("", Decimal("5")) == ("other", EntryKind.EXPENSE)


class TestSemanticStage:
    """Stage 2: non-blocking warnings."""

    def test_future_date_warns(self, validator):
        result = validator.validate([row(date="2024-06-01")], [], TODAY)
        assert result.status == ImportStatus.ACCEPTED
        assert result.issues[0].issue_type == "future_date"

    def test_near_future_within_tolerance(self, validator):
        result = validator.validate([row(date="2024-03-25")], [], TODAY)
        assert result.issues == []

    def test_large_amount_warns(self, validator):
        result = validator.validate([row(amount="25000")], [], TODAY)
        assert result.status == ImportStatus.ACCEPTED
        assert result.issues[0].issue_type == "suspicious_value"

    def test_duplicate_of_existing_entry_warns(self, validator):
        existing = [LedgerEntry(
            kind="expense",
            category="food",
            amount=Decimal("4.50"),
            description="coffee",
            date=date(2024, 3, 1),
        )]
        result = validator.validate([row()], existing, TODAY)

        assert len(result.entries) == 1
        assert result.issues[0].issue_type == "potential_duplicate"

    def test_duplicate_within_batch_warns(self, validator):
        result = validator.validate([row(), row()], [], TODAY)
        assert len(result.entries) == 2
        assert [issue.row_number for issue in result.issues] == [2]


class TestSummary:
    """Tests for the user-facing summary text."""

    def test_summary_for_partial_import(self, validator):
        result = validator.validate([row(), row(amount="")], [], TODAY)
        summary = validator.get_user_friendly_summary(result)
        assert "Imported 1 of 2" in summary
        assert "Skipping row 2" in summary

    def test_summary_for_rejected_import(self, validator):
        result = validator.validate([{"description": "x"}], [], TODAY)
        assert validator.get_user_friendly_summary(result).startswith("❌")

    def test_validate_import_function(self):
        result = validate_import(
            [row()],
            [],
            TODAY,
            settings=AppSettings(),
        )
        assert result.status == ImportStatus.ACCEPTED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
