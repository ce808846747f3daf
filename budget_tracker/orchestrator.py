"""
Main Orchestrator for the Budget Tracker

This module ties together all the components and owns the only mutable
state in the system.

DESIGN DECISION: State is an explicit immutable object.
- BudgetState holds the ledger and the three registries as tuples
- Every change is a pure transition: (state, input) -> new state
- BudgetStore applies a transition, saves the keys that changed, and only
  then swaps in the new state
- Every step is audited

CRITICAL: Nothing here reads the clock. "Today" is always passed in by the
caller, which keeps materialization and projection reproducible.
"""

import datetime as dt
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from budget_tracker.analytics import (
    ProjectionPolicy,
    active_obligation_count,
    average_entry_amount,
    average_monthly_total,
    monthly_buckets,
    monthly_recurring_total,
    project,
    total_saved,
    totals_by_category,
    totals_by_kind,
)
from budget_tracker.audit import (
    AuditLogger,
    configure_logging,
    create_correlation_id,
    get_logger,
)
from budget_tracker.config import get_settings
from budget_tracker.config.settings import Settings
from budget_tracker.models import (
    DashboardSummary,
    EntryKind,
    GoalProgress,
    ImportResult,
    ImportStatus,
    LedgerEntry,
    MaterializationResult,
    RecurringObligation,
    SavingsGoal,
    ScheduledIncomeRule,
)
from budget_tracker.recurrence import (
    run_materialization,
    scheduled_entry_id,
    scheduled_monthly_total,
)
from budget_tracker.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    KeyValueStorage,
    StorageError,
    StorageKey,
)
from budget_tracker.validation import ImportValidator


logger = get_logger(__name__)

Item = TypeVar("Item", LedgerEntry, RecurringObligation, ScheduledIncomeRule, SavingsGoal)


class TransitionError(ValueError):
    """A transition was asked to do something the current state does not allow."""
    pass


# =============================================================================
# STATE
# =============================================================================

class BudgetState(BaseModel):
    """Snapshot of everything the user has recorded."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[LedgerEntry, ...] = ()
    subscriptions: tuple[RecurringObligation, ...] = ()
    scheduled_income: tuple[ScheduledIncomeRule, ...] = ()
    savings_goals: tuple[SavingsGoal, ...] = ()

    def counts(self) -> dict[str, int]:
        return {field: len(getattr(self, field)) for field in STORAGE_KEYS}


# Which storage key each state field is persisted under
STORAGE_KEYS: dict[str, StorageKey] = {
    "entries": StorageKey.LEDGER,
    "subscriptions": StorageKey.SUBSCRIPTIONS,
    "scheduled_income": StorageKey.SCHEDULED_INCOME,
    "savings_goals": StorageKey.SAVINGS_GOALS,
}

MODEL_TYPES: dict[str, type[BaseModel]] = {
    "entries": LedgerEntry,
    "subscriptions": RecurringObligation,
    "scheduled_income": ScheduledIncomeRule,
    "savings_goals": SavingsGoal,
}


# =============================================================================
# PURE TRANSITIONS
# =============================================================================

def _find(items: tuple[Item, ...], item_id: str, label: str) -> int:
    for index, item in enumerate(items):
        if item.id == item_id:
            return index
    raise TransitionError(f"No {label} with id '{item_id}'")


def _insert(items: tuple[Item, ...], new_items: Iterable[Item], label: str) -> tuple[Item, ...]:
    ids = {item.id for item in items}
    added = []
    for item in new_items:
        if item.id in ids:
            raise TransitionError(f"A {label} with id '{item.id}' already exists")
        ids.add(item.id)
        added.append(item)
    return items + tuple(added)


def _replace(items: tuple[Item, ...], item: Item, label: str) -> tuple[Item, ...]:
    index = _find(items, item.id, label)
    return items[:index] + (item,) + items[index + 1:]


def _remove(items: tuple[Item, ...], item_id: str, label: str) -> tuple[Item, ...]:
    index = _find(items, item_id, label)
    return items[:index] + items[index + 1:]


def _toggle(items: tuple[Item, ...], item_id: str, label: str) -> tuple[Item, ...]:
    index = _find(items, item_id, label)
    item = items[index]
    return _replace(items, item.model_copy(update={"active": not item.active}), label)


def add_entries(state: BudgetState, entries: Iterable[LedgerEntry]) -> BudgetState:
    """Append entries to the ledger. Ids must be new."""
    return state.model_copy(update={"entries": _insert(state.entries, entries, "ledger entry")})


def add_entry(state: BudgetState, entry: LedgerEntry) -> BudgetState:
    return add_entries(state, [entry])


def delete_entry(state: BudgetState, entry_id: str) -> BudgetState:
    return state.model_copy(update={"entries": _remove(state.entries, entry_id, "ledger entry")})


def apply_materialization(state: BudgetState, result: MaterializationResult) -> BudgetState:
    """Record the entries a materialization pass created."""
    if not result.has_new_entries:
        return state
    return add_entries(state, result.created)


def add_subscription(state: BudgetState, obligation: RecurringObligation) -> BudgetState:
    return state.model_copy(update={
        "subscriptions": _insert(state.subscriptions, [obligation], "subscription"),
    })


def update_subscription(state: BudgetState, obligation: RecurringObligation) -> BudgetState:
    return state.model_copy(update={
        "subscriptions": _replace(state.subscriptions, obligation, "subscription"),
    })


def toggle_subscription(state: BudgetState, obligation_id: str) -> BudgetState:
    """Flip a subscription between active and paused."""
    return state.model_copy(update={
        "subscriptions": _toggle(state.subscriptions, obligation_id, "subscription"),
    })


def delete_subscription(state: BudgetState, obligation_id: str) -> BudgetState:
    return state.model_copy(update={
        "subscriptions": _remove(state.subscriptions, obligation_id, "subscription"),
    })


def add_scheduled_income(state: BudgetState, rule: ScheduledIncomeRule) -> BudgetState:
    return state.model_copy(update={
        "scheduled_income": _insert(state.scheduled_income, [rule], "scheduled income rule"),
    })


def update_scheduled_income(state: BudgetState, rule: ScheduledIncomeRule) -> BudgetState:
    return state.model_copy(update={
        "scheduled_income": _replace(state.scheduled_income, rule, "scheduled income rule"),
    })


def toggle_scheduled_income(state: BudgetState, rule_id: str) -> BudgetState:
    """Flip a scheduled income rule between active and paused."""
    return state.model_copy(update={
        "scheduled_income": _toggle(state.scheduled_income, rule_id, "scheduled income rule"),
    })


def delete_scheduled_income(state: BudgetState, rule_id: str) -> BudgetState:
    return state.model_copy(update={
        "scheduled_income": _remove(state.scheduled_income, rule_id, "scheduled income rule"),
    })


def add_goal(state: BudgetState, goal: SavingsGoal) -> BudgetState:
    return state.model_copy(update={
        "savings_goals": _insert(state.savings_goals, [goal], "savings goal"),
    })


def update_goal(state: BudgetState, goal: SavingsGoal) -> BudgetState:
    """Replace a goal, e.g. after the user edits its current amount."""
    return state.model_copy(update={
        "savings_goals": _replace(state.savings_goals, goal, "savings goal"),
    })


def delete_goal(state: BudgetState, goal_id: str) -> BudgetState:
    return state.model_copy(update={
        "savings_goals": _remove(state.savings_goals, goal_id, "savings goal"),
    })


# =============================================================================
# DASHBOARD
# =============================================================================

def build_dashboard(
    state: BudgetState,
    today: dt.date,
    settings: Optional[Settings] = None,
) -> DashboardSummary:
    """
    Compute every figure the presentation layer shows for a state.

    Pure: the same state, date and settings always give the same summary.
    """
    settings = settings or get_settings()
    app = settings.app
    projection_settings = settings.projection
    entries = state.entries

    monthly_cost = monthly_recurring_total(state.subscriptions)
    goals = [
        GoalProgress(
            goal_id=goal.id,
            name=goal.name,
            progress_percent=goal.progress_percent,
            is_complete=goal.is_complete,
            days_until_target=goal.days_until_target(today),
        )
        for goal in state.savings_goals
    ]

    return DashboardSummary(
        as_of=today,
        totals=totals_by_kind(entries),
        expenses_by_category=totals_by_category(entries, EntryKind.EXPENSE),
        income_by_category=totals_by_category(entries, EntryKind.INCOME),
        savings_by_category=totals_by_category(entries, EntryKind.SAVINGS),
        monthly_trends=monthly_buckets(entries, app.trend_months),
        average_monthly_income=average_monthly_total(
            entries, EntryKind.INCOME, app.income_trend_months
        ),
        average_expense=average_entry_amount(entries, EntryKind.EXPENSE),
        monthly_subscription_cost=monthly_cost,
        active_subscriptions=active_obligation_count(state.subscriptions),
        scheduled_monthly_income=scheduled_monthly_total(state.scheduled_income),
        total_saved=total_saved(entries),
        goals=goals,
        completed_goals=sum(1 for goal in goals if goal.is_complete),
        projection=project(
            entries,
            monthly_cost,
            today,
            horizon_months=projection_settings.horizon_months,
            policy=ProjectionPolicy.from_settings(projection_settings),
        ),
    )


# =============================================================================
# STORE
# =============================================================================

class BudgetStore:
    """
    Single owner of the mutable budget state.

    Flow for every mutation:
    1. Apply a pure transition to the current state
    2. Save each storage key whose sequence changed
    3. Swap in the new state (only if every save succeeded)
    4. Audit the change

    Storage failures are audited and re-raised; the previous state stays
    current so memory never runs ahead of what is on disk.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        audit_logger: Optional[AuditLogger] = None,
        settings: Optional[Settings] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger or AuditLogger()
        self._settings = settings or get_settings()
        self._validator = ImportValidator(self._settings.app)
        self._state = BudgetState()

    @property
    def state(self) -> BudgetState:
        return self._state

    @property
    def audit_logger(self) -> AuditLogger:
        return self._audit_logger

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def load(
        self,
        today: Optional[dt.date] = None,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetState:
        """
        Read every key from storage into a fresh state.

        When `today` is given and materialize_on_load is enabled, due
        scheduled income is recorded straight away.

        Raises:
            StorageError: Storage could not be read or holds invalid records
        """
        correlation_id = correlation_id or create_correlation_id()
        loaded: dict[str, tuple] = {}

        for field, key in STORAGE_KEYS.items():
            model = MODEL_TYPES[field]
            try:
                blobs = self._storage.load_sequence(key)
                loaded[field] = tuple(model.model_validate(blob) for blob in blobs)
            except StorageError as e:
                self._audit_logger.log_storage_error(
                    key=key.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                raise
            except ValueError as e:
                # pydantic ValidationError: a stored record no longer fits its model
                self._audit_logger.log_storage_error(
                    key=key.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                raise StorageError(f"Invalid record under '{key.value}': {e}") from e

        self._state = BudgetState(**loaded)
        self._audit_logger.log_state_loaded(
            counts=self._state.counts(),
            correlation_id=correlation_id,
        )

        if today is not None and self._settings.app.materialize_on_load:
            self.process_scheduled_income(today, correlation_id=correlation_id)

        return self._state

    def _commit(
        self,
        new_state: BudgetState,
        correlation_id: Optional[UUID] = None,
    ) -> list[StorageKey]:
        """Persist the keys that differ from the current state, then adopt new_state."""
        changed = [
            (field, key) for field, key in STORAGE_KEYS.items()
            if getattr(new_state, field) != getattr(self._state, field)
        ]

        for field, key in changed:
            blob = [item.model_dump(mode="json") for item in getattr(new_state, field)]
            try:
                self._storage.save(key, blob)
            except StorageError as e:
                self._audit_logger.log_storage_error(
                    key=key.value,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
                raise

        self._state = new_state
        if changed:
            self._audit_logger.log_state_saved(
                keys=[key.value for _, key in changed],
                correlation_id=correlation_id,
            )
        return [key for _, key in changed]

    def _apply(
        self,
        transition: Callable[..., BudgetState],
        *args: Any,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetState:
        self._commit(transition(self._state, *args), correlation_id)
        return self._state

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def add_entry(
        self,
        entry: LedgerEntry,
        correlation_id: Optional[UUID] = None,
    ) -> LedgerEntry:
        """Record a manually entered transaction."""
        self._apply(add_entry, entry, correlation_id=correlation_id)
        self._audit_logger.log_entry_added(
            entry_id=entry.id,
            kind=entry.kind.value,
            amount=str(entry.amount),
            correlation_id=correlation_id,
        )
        return entry

    def delete_entry(
        self,
        entry_id: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        self._apply(delete_entry, entry_id, correlation_id=correlation_id)
        self._audit_logger.log_entry_deleted(
            entry_id=entry_id,
            correlation_id=correlation_id,
        )

    def import_rows(
        self,
        rows: Iterable[dict[str, Any]],
        today: dt.date,
        correlation_id: Optional[UUID] = None,
    ) -> ImportResult:
        """
        Validate a batch of draft rows and append the usable ones.

        Returns:
            The ImportResult; its entries are now part of the ledger
            unless the batch was rejected or empty.
        """
        correlation_id = correlation_id or create_correlation_id()
        result = self._validator.validate(rows, self._state.entries, today)

        for issue in result.issues:
            if issue.row_skipped:
                self._audit_logger.log_import_row_skipped(
                    row_number=issue.row_number,
                    message=issue.message,
                    correlation_id=correlation_id,
                )

        if result.status == ImportStatus.REJECTED:
            self._audit_logger.log_import_rejected(
                reason=result.rejected_reason or "unknown",
                correlation_id=correlation_id,
            )
            return result

        if result.entries:
            self._apply(add_entries, result.entries, correlation_id=correlation_id)

        self._audit_logger.log_import_completed(
            accepted=len(result.entries),
            skipped=result.skipped_rows,
            status=result.status.value,
            correlation_id=correlation_id,
        )
        return result

    def process_scheduled_income(
        self,
        today: dt.date,
        correlation_id: Optional[UUID] = None,
    ) -> MaterializationResult:
        """
        Record every scheduled income rule that is due this month.

        Safe to call any number of times: a rule already satisfied this
        month produces nothing.
        """
        result = run_materialization(
            self._state.scheduled_income,
            today,
            self._state.entries,
        )
        if not result.has_new_entries:
            return result

        self._apply(apply_materialization, result, correlation_id=correlation_id)
        rule_ids = {
            scheduled_entry_id(rule, today.year, today.month): rule.id
            for rule in self._state.scheduled_income
        }
        for entry in result.created:
            rule_id = rule_ids.get(entry.id, "unknown")
            self._audit_logger.log_income_materialized(
                entry_id=entry.id,
                rule_id=rule_id,
                amount=str(entry.amount),
                correlation_id=correlation_id,
            )
        logger.info(
            "scheduled_income_recorded",
            count=len(result.created),
            processed_on=today.isoformat(),
        )
        return result

    # -------------------------------------------------------------------------
    # Registries
    # -------------------------------------------------------------------------

    def _change_registry(
        self,
        registry: str,
        action: str,
        transition: Callable[..., BudgetState],
        argument: Any,
        correlation_id: Optional[UUID] = None,
    ) -> BudgetState:
        self._apply(transition, argument, correlation_id=correlation_id)
        item_id = argument if isinstance(argument, str) else argument.id
        self._audit_logger.log_registry_changed(
            registry=registry,
            action=action,
            item_id=item_id,
            correlation_id=correlation_id,
        )
        return self._state

    def add_subscription(self, obligation: RecurringObligation) -> BudgetState:
        return self._change_registry("subscriptions", "add", add_subscription, obligation)

    def update_subscription(self, obligation: RecurringObligation) -> BudgetState:
        return self._change_registry("subscriptions", "update", update_subscription, obligation)

    def toggle_subscription(self, obligation_id: str) -> BudgetState:
        return self._change_registry("subscriptions", "toggle", toggle_subscription, obligation_id)

    def delete_subscription(self, obligation_id: str) -> BudgetState:
        return self._change_registry("subscriptions", "delete", delete_subscription, obligation_id)

    def add_scheduled_income(self, rule: ScheduledIncomeRule) -> BudgetState:
        return self._change_registry("scheduled-income", "add", add_scheduled_income, rule)

    def update_scheduled_income(self, rule: ScheduledIncomeRule) -> BudgetState:
        return self._change_registry("scheduled-income", "update", update_scheduled_income, rule)

    def toggle_scheduled_income(self, rule_id: str) -> BudgetState:
        return self._change_registry("scheduled-income", "toggle", toggle_scheduled_income, rule_id)

    def delete_scheduled_income(self, rule_id: str) -> BudgetState:
        return self._change_registry("scheduled-income", "delete", delete_scheduled_income, rule_id)

    def add_goal(self, goal: SavingsGoal) -> BudgetState:
        return self._change_registry("savings-goals", "add", add_goal, goal)

    def update_goal(self, goal: SavingsGoal) -> BudgetState:
        return self._change_registry("savings-goals", "update", update_goal, goal)

    def delete_goal(self, goal_id: str) -> BudgetState:
        return self._change_registry("savings-goals", "delete", delete_goal, goal_id)

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def dashboard_summary(self, today: dt.date) -> DashboardSummary:
        return build_dashboard(self._state, today, self._settings)


def create_store(
    data_dir: Optional[Path] = None,
    use_storage: bool = True,
) -> BudgetStore:
    """
    Factory function to create a store with its collaborators.

    Args:
        data_dir: Directory for the JSON files (defaults to settings)
        use_storage: Set to False to keep everything in memory,
                     e.g. for tests or a throwaway session

    Returns:
        An unloaded BudgetStore; call load() before use
    """
    settings = get_settings()
    configure_logging(settings.app.log_level)

    storage: KeyValueStorage
    if use_storage:
        storage = JsonFileStorage(data_dir)
    else:
        storage = InMemoryStorage()
    return BudgetStore(storage, AuditLogger(), settings)
