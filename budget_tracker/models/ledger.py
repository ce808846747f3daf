"""
Core Data Models for the Budget Tracker

These models define the schemas for everything the engine reads and writes:
- Ledger entries (income, expense, savings events)
- The two recurring registries (subscriptions, scheduled income)
- Savings goals
- The plain result records handed to the presentation layer

DESIGN DECISION: Amounts are always stored as non-negative Decimal magnitudes.
The direction of money is carried by EntryKind, never by the numeric sign.
"""

import datetime as dt
from decimal import Decimal
from enum import Enum
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
)


def new_id() -> str:
    """Generate a fresh identifier for user-created records."""
    return uuid4().hex


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryKind(str, Enum):
    """Direction of a ledger entry."""
    INCOME = "income"
    EXPENSE = "expense"
    SAVINGS = "savings"


class Frequency(str, Enum):
    """Billing frequency of a recurring obligation."""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class ExpenseCategory(str, Enum):
    """Known expense categories offered by the entry form."""
    FOOD = "food"
    TRANSPORTATION = "transportation"
    ENTERTAINMENT = "entertainment"
    UTILITIES = "utilities"
    HEALTHCARE = "healthcare"
    SHOPPING = "shopping"
    EDUCATION = "education"
    OTHER = "other"


class IncomeCategory(str, Enum):
    """Known income categories."""
    SALARY = "salary"
    FREELANCE = "freelance"
    INVESTMENT = "investment"
    BUSINESS = "business"
    GIFT = "gift"
    OTHER = "other"


class SavingsCategory(str, Enum):
    """Known savings categories."""
    EMERGENCY = "emergency"
    RETIREMENT = "retirement"
    VACATION = "vacation"
    HOUSE = "house"
    CAR = "car"
    EDUCATION = "education"
    OTHER = "other"


class SubscriptionCategory(str, Enum):
    """Known subscription categories."""
    ENTERTAINMENT = "entertainment"
    SOFTWARE = "software"
    UTILITIES = "utilities"
    FITNESS = "fitness"
    FOOD = "food"
    EDUCATION = "education"
    OTHER = "other"


KNOWN_CATEGORIES: dict[EntryKind, type[Enum]] = {
    EntryKind.INCOME: IncomeCategory,
    EntryKind.EXPENSE: ExpenseCategory,
    EntryKind.SAVINGS: SavingsCategory,
}


class UnknownEntryKindError(ValueError):
    """Raised when a value is not one of the closed EntryKind members."""
    pass


def parse_entry_kind(value: object) -> EntryKind:
    """
    Coerce a raw value into an EntryKind.

    Raises:
        UnknownEntryKindError: The value is not a known kind. This is a
            programming error upstream, not a recoverable user error.
    """
    if isinstance(value, EntryKind):
        return value
    try:
        return EntryKind(str(value).strip().lower())
    except ValueError as e:
        raise UnknownEntryKindError(f"Unsupported entry kind: {value!r}") from e


def is_known_category(kind: EntryKind, category: str) -> bool:
    """Check whether a category belongs to the known enumeration for a kind."""
    enum_type = KNOWN_CATEGORIES[kind]
    return category in {member.value for member in enum_type}


# =============================================================================
# LEDGER
# =============================================================================

class LedgerEntry(BaseModel):
    """
    One recorded income, expense or savings event.

    Entries are immutable once created. The only allowed change is deletion.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_id,
        min_length=1,
        description="Unique entry identifier"
    )
    kind: EntryKind = Field(
        ...,
        description="income, expense or savings"
    )
    category: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Free-text category; known values are listed per kind"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Non-negative magnitude"
    )
    description: str = Field(
        default="",
        max_length=500,
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the event (no time-of-day)"
    )

    @property
    def year_month(self) -> tuple[int, int]:
        """(year, month) bucket this entry falls in."""
        return (self.date.year, self.date.month)


# =============================================================================
# RECURRING REGISTRIES
# =============================================================================

class RecurringObligation(BaseModel):
    """A subscription-like periodic charge."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="Service name (e.g. Netflix)"
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        description="Charge per billing period"
    )
    frequency: Frequency
    next_due_date: dt.date = Field(
        ...,
        description="Next expected charge date"
    )
    category: str = Field(
        default=SubscriptionCategory.ENTERTAINMENT.value,
        min_length=1,
        max_length=100,
    )
    active: bool = True


class ScheduledIncomeRule(BaseModel):
    """
    A monthly income that should appear in the ledger on a fixed day.

    CRITICAL: day_of_month is restricted to 1-28 so that every month
    contains the scheduled day.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    description: str = Field(
        ...,
        min_length=1,
        max_length=200,
        description="e.g. Monthly Salary"
    )
    amount: Decimal = Field(..., gt=0)
    category: str = Field(
        default=IncomeCategory.SALARY.value,
        min_length=1,
        max_length=100,
    )
    day_of_month: int = Field(
        default=1,
        ge=1,
        le=28,
        description="Day of the month the income is received"
    )
    active: bool = True


# =============================================================================
# SAVINGS GOALS
# =============================================================================

class SavingsGoal(BaseModel):
    """
    A user-maintained savings target.

    current_amount is edited by the user and is NOT derived from savings
    entries in the ledger. The two figures are allowed to diverge.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: str = Field(default_factory=new_id, min_length=1)
    name: str = Field(..., min_length=1, max_length=200)
    target_amount: Decimal = Field(..., gt=0)
    current_amount: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="May exceed target_amount; overshoot is tolerated"
    )
    target_date: dt.date

    @property
    def progress_percent(self) -> Decimal:
        """Progress towards the target. Not capped, so overshoot reads >= 100."""
        return self.current_amount / self.target_amount * 100

    @property
    def is_complete(self) -> bool:
        return self.current_amount >= self.target_amount

    def days_until_target(self, today: dt.date) -> int:
        """Whole days left until target_date (negative once it has passed)."""
        return (self.target_date - today).days


# =============================================================================
# RESULT RECORDS (plain data for presentation)
# =============================================================================

class KindTotals(BaseModel):
    """Sum of amounts per entry kind."""

    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")

    def for_kind(self, kind: EntryKind) -> Decimal:
        return getattr(self, kind.value)

    @computed_field
    @property
    def net_balance(self) -> Decimal:
        """Income minus expense. Savings is an allocation and is excluded."""
        return self.income - self.expense


class CategoryTotal(BaseModel):
    """Total for one category of one kind."""

    category: str
    amount: Decimal
    is_known: bool = Field(
        default=True,
        description="False when the category is outside the known enumeration"
    )


class MonthlyBucket(BaseModel):
    """Per-kind totals for one calendar month."""

    year_month: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}$",
        description="Month key, e.g. 2024-03"
    )
    income: Decimal = Decimal("0")
    expense: Decimal = Decimal("0")
    savings: Decimal = Decimal("0")

    @computed_field
    @property
    def net(self) -> Decimal:
        return self.income - self.expense


class CategoryBreakdown(BaseModel):
    """Per-category totals of one kind within one calendar month."""

    year_month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    total: Decimal = Decimal("0")
    categories: dict[str, Decimal] = Field(default_factory=dict)


class ProjectionPoint(BaseModel):
    """One month of the trend chart, either historical or projected."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$")
    income: Decimal
    expenses: Decimal
    savings: Decimal
    subscriptions: Decimal
    is_projected: bool


class RecurrenceState(str, Enum):
    """Where a scheduled income rule stands for the current month."""
    PENDING = "pending"      # Day not reached yet, or rule inactive
    DUE = "due"              # Day reached, nothing recorded this month
    SATISFIED = "satisfied"  # Entry for this month already exists


class MaterializationResult(BaseModel):
    """Outcome of one scheduled-income pass."""

    processed_on: dt.date
    created: list[LedgerEntry] = Field(default_factory=list)
    states: dict[str, RecurrenceState] = Field(
        default_factory=dict,
        description="Rule id -> state before this pass"
    )

    @property
    def has_new_entries(self) -> bool:
        return len(self.created) > 0


class GoalProgress(BaseModel):
    """Progress snapshot of one savings goal."""

    goal_id: str
    name: str
    progress_percent: Decimal
    is_complete: bool
    days_until_target: int


class DashboardSummary(BaseModel):
    """Everything the overview screen needs, computed for one date."""

    as_of: dt.date
    totals: KindTotals
    expenses_by_category: list[CategoryTotal] = Field(default_factory=list)
    income_by_category: list[CategoryTotal] = Field(default_factory=list)
    savings_by_category: list[CategoryTotal] = Field(default_factory=list)
    monthly_trends: list[MonthlyBucket] = Field(default_factory=list)
    average_monthly_income: Decimal = Decimal("0")
    average_expense: Decimal = Decimal("0")
    monthly_subscription_cost: Decimal = Decimal("0")
    active_subscriptions: int = 0
    scheduled_monthly_income: Decimal = Decimal("0")
    total_saved: Decimal = Decimal("0")
    goals: list[GoalProgress] = Field(default_factory=list)
    completed_goals: int = 0
    projection: list[ProjectionPoint] = Field(default_factory=list)
