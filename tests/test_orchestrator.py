"""
Tests for the budget state, its pure transitions and the persisting store.
"""

import pytest
from datetime import date
from decimal import Decimal

from budget_tracker.audit import AuditLogger
from budget_tracker.config import AppSettings, ProjectionSettings, Settings
from budget_tracker.models import (
    AuditEventType,
    EntryKind,
    Frequency,
    ImportStatus,
    LedgerEntry,
    RecurringObligation,
    SavingsGoal,
    ScheduledIncomeRule,
)
from budget_tracker.orchestrator import (
    BudgetState,
    BudgetStore,
    TransitionError,
    add_entry,
    add_subscription,
    build_dashboard,
    create_store,
    delete_entry,
    toggle_subscription,
    update_goal,
)
from budget_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    StorageError,
    StorageKey,
)


class FailingStorage(InMemoryStorage):
    """In-memory storage whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail_writes = False

    def save(self, key, blob):
        if self.fail_writes:
            raise StorageError("disk full")
        super().save(key, blob)


class FixedSettings(Settings):
    """Settings that ignore the environment, so tests are reproducible."""

    @property
    def app(self) -> AppSettings:
        return AppSettings(
            trend_months=6,
            income_trend_months=12,
            materialize_on_load=True,
            max_entry_amount=Decimal("1000000"),
            future_date_tolerance_days=7,
        )

    @property
    def projection(self) -> ProjectionSettings:
        return ProjectionSettings(
            income_growth=Decimal("1.02"),
            expense_inflation=Decimal("1.01"),
            history_months=3,
            horizon_months=3,
        )


def make_entry(kind="expense", category="food", amount="10", when=date(2024, 3, 1), **extra):
    return LedgerEntry(kind=kind, category=category, amount=Decimal(amount), date=when, **extra)


def make_subscription(**extra):
    fields = {
        "id": "sub-1",
        "name": "Netflix",
        "amount": Decimal("12"),
        "frequency": Frequency.MONTHLY,
        "next_due_date": date(2024, 4, 1),
    }
    fields.update(extra)
    return RecurringObligation(**fields)


@pytest.fixture
def storage():
    return FailingStorage()


@pytest.fixture
def store(storage):
    return BudgetStore(storage, AuditLogger(), FixedSettings())


class TestTransitions:
    """Pure transitions never modify their input state."""

    def test_add_entry_returns_new_state(self):
        state = BudgetState()
        entry = make_entry()
        new_state = add_entry(state, entry)

        assert state.entries == ()
        assert new_state.entries == (entry,)

    def test_add_duplicate_id_raises(self):
        entry = make_entry(id="e1")
        state = add_entry(BudgetState(), entry)
        with pytest.raises(TransitionError, match="already exists"):
            add_entry(state, make_entry(id="e1"))

    def test_delete_unknown_entry_raises(self):
        with pytest.raises(TransitionError, match="No ledger entry"):
            delete_entry(BudgetState(), "missing")

    def test_delete_entry(self):
        entry = make_entry(id="e1")
        state = add_entry(BudgetState(), entry)
        assert delete_entry(state, "e1").entries == ()

    def test_toggle_subscription(self):
        state = add_subscription(BudgetState(), make_subscription())
        paused = toggle_subscription(state, "sub-1")

        assert state.subscriptions[0].active is True
        assert paused.subscriptions[0].active is False
        assert toggle_subscription(paused, "sub-1").subscriptions[0].active is True

    def test_update_goal_replaces_in_place(self):
        goal = SavingsGoal(id="g1", name="Car", target_amount=Decimal("100"), target_date=date(2025, 1, 1))
        other = SavingsGoal(id="g2", name="Trip", target_amount=Decimal("50"), target_date=date(2025, 1, 1))
        state = BudgetState(savings_goals=(goal, other))

        updated = update_goal(state, goal.model_copy(update={"current_amount": Decimal("40")}))
        assert [g.id for g in updated.savings_goals] == ["g1", "g2"]
        assert updated.savings_goals[0].current_amount == Decimal("40")

    def test_state_is_frozen(self):
        with pytest.raises(ValueError):
            BudgetState().entries = ()


class TestBudgetStorePersistence:
    """The store saves after every transition."""

    def test_add_entry_persists_ledger(self, store, storage):
        entry = store.add_entry(make_entry(id="e1"))

        saved = storage.load(StorageKey.LEDGER)
        assert [blob["id"] for blob in saved] == ["e1"]
        assert store.state.entries == (entry,)

    def test_only_changed_keys_are_saved(self, store, storage):
        store.add_subscription(make_subscription())
        assert storage.keys() == ["subscriptions"]

    def test_load_round_trip(self, store, storage):
        store.add_entry(make_entry(id="e1", amount="12.34", description="Lunch"))
        store.add_subscription(make_subscription())
        store.add_goal(SavingsGoal(id="g1", name="Car", target_amount=Decimal("100"), target_date=date(2025, 1, 1)))

        reopened = BudgetStore(storage, AuditLogger(), FixedSettings())
        state = reopened.load()

        assert state == store.state
        assert state.entries[0].amount == Decimal("12.34")

    def test_load_empty_storage(self, store):
        state = store.load()
        assert state.counts() == {
            "entries": 0,
            "subscriptions": 0,
            "scheduled_income": 0,
            "savings_goals": 0,
        }

    def test_failed_save_keeps_previous_state(self, store, storage):
        """Memory never runs ahead of what is on disk."""
        store.add_entry(make_entry(id="e1"))
        storage.fail_writes = True

        with pytest.raises(StorageError):
            store.add_entry(make_entry(id="e2"))

        assert [e.id for e in store.state.entries] == ["e1"]
        events = store.audit_logger.recent_events()
        assert events[0].event_type == AuditEventType.STORAGE_ERROR

    def test_invalid_stored_record_raises_storage_error(self, storage):
        storage.save(StorageKey.LEDGER, [{"kind": "expense", "amount": "-1"}])
        store = BudgetStore(storage, AuditLogger(), FixedSettings())
        with pytest.raises(StorageError, match="Invalid record") as exc_info:
            store.load()
        assert exc_info.value.__cause__ is not None

    def test_registry_operations_are_audited(self, store):
        store.add_subscription(make_subscription())
        store.toggle_subscription("sub-1")
        store.delete_subscription("sub-1")

        changes = [
            event.details["action"]
            for event in store.audit_logger.recent_events()
            if event.event_type == AuditEventType.REGISTRY_CHANGED
        ]
        assert changes == ["delete", "toggle", "add"]
        assert store.state.subscriptions == ()

    def test_unknown_id_raises_transition_error(self, store):
        with pytest.raises(TransitionError):
            store.toggle_scheduled_income("nope")

    def test_json_file_backend(self, tmp_path):
        store = BudgetStore(JsonFileStorage(tmp_path), AuditLogger(), FixedSettings())
        store.add_entry(make_entry(id="e1"))

        reopened = BudgetStore(JsonFileStorage(tmp_path), AuditLogger(), FixedSettings())
        assert [e.id for e in reopened.load().entries] == ["e1"]


class TestScheduledIncomeFlow:
    """Materialization through the store."""

    def test_process_scheduled_income_is_idempotent(self, store, storage):
        store.add_scheduled_income(ScheduledIncomeRule(
            id="r1",
            description="Salary",
            amount=Decimal("500"),
            day_of_month=15,
        ))

        first = store.process_scheduled_income(date(2024, 3, 20))
        second = store.process_scheduled_income(date(2024, 3, 21))

        assert len(first.created) == 1
        assert second.created == []
        assert [e.id for e in store.state.entries] == ["scheduled-r1-2024-03"]
        assert len(storage.load(StorageKey.LEDGER)) == 1

    def test_materialization_is_audited_with_rule_id(self, store):
        store.add_scheduled_income(ScheduledIncomeRule(id="r1", description="Salary", amount=Decimal("500")))
        store.process_scheduled_income(date(2024, 3, 2))

        event = next(
            e for e in store.audit_logger.recent_events()
            if e.event_type == AuditEventType.INCOME_MATERIALIZED
        )
        assert event.details["rule_id"] == "r1"

    def test_load_materializes_when_today_given(self, storage):
        writer = BudgetStore(storage, AuditLogger(), FixedSettings())
        writer.add_scheduled_income(ScheduledIncomeRule(id="r1", description="Salary", amount=Decimal("500")))

        reader = BudgetStore(storage, AuditLogger(), FixedSettings())
        state = reader.load(today=date(2024, 3, 5))
        assert len(state.entries) == 1

        again = BudgetStore(storage, AuditLogger(), FixedSettings())
        assert len(again.load(today=date(2024, 3, 6)).entries) == 1

    def test_load_without_today_does_not_materialize(self, storage):
        writer = BudgetStore(storage, AuditLogger(), FixedSettings())
        writer.add_scheduled_income(ScheduledIncomeRule(id="r1", description="Salary", amount=Decimal("500")))

        reader = BudgetStore(storage, AuditLogger(), FixedSettings())
        assert reader.load().entries == ()


class TestImportFlow:
    """File import through the store."""

    def test_import_appends_entries(self, store, storage):
        rows = [
            {"date": "2024-03-01", "description": "Coffee", "amount": "4.50"},
            {"date": "2024-03-02", "description": "Paycheck", "amount": "2000", "kind": "income", "category": "salary"},
            {"date": "bad", "description": "Broken", "amount": "1"},
        ]
        result = store.import_rows(rows, date(2024, 3, 20))

        assert result.status == ImportStatus.PARTIAL
        assert len(store.state.entries) == 2
        assert len(storage.load(StorageKey.LEDGER)) == 2

        types = [e.event_type for e in store.audit_logger.recent_events()]
        assert AuditEventType.IMPORT_ROW_SKIPPED in types
        assert AuditEventType.IMPORT_COMPLETED in types

    def test_rejected_import_changes_nothing(self, store, storage):
        result = store.import_rows([{"description": "no date or amount"}], date(2024, 3, 20))

        assert result.status == ImportStatus.REJECTED
        assert store.state.entries == ()
        assert storage.keys() == []
        assert store.audit_logger.recent_events()[0].event_type == AuditEventType.IMPORT_REJECTED


class TestDashboard:
    """Tests for the dashboard summary."""

    def test_dashboard_summary(self, store):
        for month in (1, 2, 3):
            store.add_entry(make_entry(kind="income", category="salary", amount="3000", when=date(2024, month, 1)))
        store.add_entry(make_entry(kind="expense", category="food", amount="40", when=date(2024, 3, 2)))
        store.add_entry(make_entry(kind="expense", category="food", amount="10", when=date(2024, 3, 3)))
        store.add_entry(make_entry(kind="expense", category="transport", amount="5", when=date(2024, 3, 4)))
        store.add_entry(make_entry(kind="savings", category="car", amount="100", when=date(2024, 3, 5)))
        store.add_subscription(make_subscription())
        store.add_subscription(make_subscription(id="sub-2", amount=Decimal("120"), frequency=Frequency.YEARLY))
        store.add_goal(SavingsGoal(
            id="g1",
            name="Car",
            target_amount=Decimal("1000"),
            current_amount=Decimal("1000"),
            target_date=date(2024, 12, 31),
        ))

        summary = store.dashboard_summary(date(2024, 3, 20))

        assert summary.totals.income == Decimal("9000")
        assert summary.totals.net_balance == Decimal("8945")
        assert [(c.category, c.amount) for c in summary.expenses_by_category] == [
            ("food", Decimal("50")),
            ("transport", Decimal("5")),
        ]
        assert summary.monthly_subscription_cost == Decimal("21.96")
        assert summary.active_subscriptions == 2
        assert summary.average_monthly_income == Decimal("3000")
        assert summary.total_saved == Decimal("100")
        assert summary.completed_goals == 1
        assert summary.goals[0].days_until_target == 286

        projected = [p for p in summary.projection if p.is_projected]
        assert [p.month for p in projected] == ["2024-04", "2024-05", "2024-06"]
        assert projected[0].income == Decimal("3060")
        assert projected[0].subscriptions == Decimal("21.96")

    def test_dashboard_is_pure(self):
        state = BudgetState(entries=(make_entry(),))
        settings = FixedSettings()
        assert build_dashboard(state, date(2024, 3, 20), settings) == build_dashboard(
            state, date(2024, 3, 20), settings
        )

    def test_dashboard_for_empty_state(self):
        summary = build_dashboard(BudgetState(), date(2024, 3, 20), FixedSettings())
        assert summary.totals.income == 0
        assert summary.average_expense == 0
        assert len(summary.projection) == 3
        assert summary.expenses_by_category == []


class TestCreateStore:

    def test_create_in_memory_store(self):
        store = create_store(use_storage=False)
        assert store.load().entries == ()

    def test_create_file_store(self, tmp_path):
        store = create_store(data_dir=tmp_path)
        store.add_entry(make_entry())
        assert (tmp_path / "ledger.json").exists()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
