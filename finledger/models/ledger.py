"""
Core Data Models for the Ledger

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce ledger invariants at construction time
2. Provide clear validation error messages
3. Be serializable for document storage and audit logging
4. Keep derived views (bills, progress) separate from stored records

DESIGN DECISION: Amounts are Decimal with two places, never float.
Installment splitting and balance reconciliation must agree to the cent.
"""

import calendar
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    model_validator,
)


CENT = Decimal("0.01")
ZERO = Decimal("0.00")

Money = Annotated[Decimal, Field(decimal_places=2)]
PositiveMoney = Annotated[Decimal, Field(gt=0, decimal_places=2)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class EntryKind(str, Enum):
    """What an entry does to its funding source."""
    EXPENSE = "expense"
    INCOME = "income"
    TRANSFER = "transfer"


class EntryStatus(str, Enum):
    """
    Entry lifecycle status.

    Only COMPLETED entries move account balances. CANCELLED entries are
    kept for history but count toward nothing.
    """
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class RecurrenceInterval(str, Enum):
    """Spacing between occurrences of a series."""
    NONE = "none"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class SplitMode(str, Enum):
    """
    How a series amount is spread over its occurrences.

    INSTALLMENT divides the stated total; FIXED repeats it every time.
    """
    INSTALLMENT = "installment"
    FIXED = "fixed"


class GoalType(str, Enum):
    """Which kind of entries a monthly goal tracks."""
    EXPENSE = "expense"
    INCOME = "income"


# =============================================================================
# VALUE OBJECTS
# =============================================================================

class BillPeriod(BaseModel):
    """
    A (month, year) pair an entry is attributed to.

    Ordered chronologically and hashable, so periods can be compared
    and used as dictionary keys.
    """
    model_config = ConfigDict(frozen=True)

    month: int = Field(..., ge=1, le=12)
    year: int = Field(..., ge=1900, le=9999)

    @classmethod
    def of(cls, day: date) -> "BillPeriod":
        """The calendar period a date falls in."""
        return cls(month=day.month, year=day.year)

    def as_tuple(self) -> tuple[int, int]:
        return (self.year, self.month)

    def __lt__(self, other: "BillPeriod") -> bool:
        return self.as_tuple() < other.as_tuple()

    def __le__(self, other: "BillPeriod") -> bool:
        return self.as_tuple() <= other.as_tuple()

    def __gt__(self, other: "BillPeriod") -> bool:
        return self.as_tuple() > other.as_tuple()

    def __ge__(self, other: "BillPeriod") -> bool:
        return self.as_tuple() >= other.as_tuple()

    def __str__(self) -> str:
        return f"{self.month:02d}/{self.year}"

    def shifted(self, months: int) -> "BillPeriod":
        """This period moved by a signed number of months."""
        index = self.year * 12 + (self.month - 1) + months
        return BillPeriod(month=index % 12 + 1, year=index // 12)

    def months_until(self, other: "BillPeriod") -> int:
        """Signed number of months from this period to `other`."""
        return (other.year - self.year) * 12 + (other.month - self.month)

    @property
    def last_day(self) -> int:
        return calendar.monthrange(self.year, self.month)[1]

    def clamp_day(self, day: int) -> date:
        """The given day of this month, clamped to the month's last day."""
        return date(self.year, self.month, min(day, self.last_day))

    def closing_date(self, closing_day: int) -> date:
        """The date a card with this closing day closes this period's bill."""
        return self.clamp_day(closing_day)


class BillReference(BaseModel):
    """Names one bill: a card and a billing period."""
    model_config = ConfigDict(frozen=True)

    card_id: UUID
    period: BillPeriod


# =============================================================================
# CORE LEDGER ENTRY
# =============================================================================

class Entry(BaseModel):
    """
    One ledger line item.

    Funding: expense and income entries settle against exactly one of
    `account_id` or `card_id`. Transfers move money from `account_id`
    to `destination_account_id` and never carry a category.

    `bill_period` is only meaningful for card-funded entries. When it is
    missing on a card entry, the ledger assigns it from the card's
    closing day before persisting.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    # Identity
    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)

    # Core data
    kind: EntryKind
    amount: PositiveMoney
    description: str = Field(..., min_length=1, max_length=200)
    occurs_on: date
    status: EntryStatus = EntryStatus.COMPLETED

    # Funding
    account_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    destination_account_id: Optional[UUID] = None
    category_id: Optional[str] = Field(default=None, max_length=100)
    bill_period: Optional[BillPeriod] = None

    # Series membership
    series_id: Optional[UUID] = None
    installment_index: Optional[int] = Field(default=None, ge=1)
    installment_count: Optional[int] = Field(default=None, ge=1)
    recurrence_interval: RecurrenceInterval = RecurrenceInterval.NONE
    split_mode: Optional[SplitMode] = None

    # Anticipation
    anticipated_from_period: Optional[BillPeriod] = None
    discount_amount: Optional[PositiveMoney] = None
    related_entry_id: Optional[UUID] = None

    # Long-term goal contribution
    goal_id: Optional[UUID] = None

    # Bill settlement (payment of a card bill from an account)
    bill_reference: Optional[BillReference] = None

    is_adjustment: bool = False
    notes: Optional[str] = Field(default=None, max_length=1000)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def validate_funding(self) -> 'Entry':
        """Enforce the funding-source rules for each kind."""
        if self.kind == EntryKind.TRANSFER:
            if self.account_id is None or self.destination_account_id is None:
                raise ValueError("Transfers need both a source and a destination account")
            if self.account_id == self.destination_account_id:
                raise ValueError("Transfer source and destination must differ")
            if self.card_id is not None:
                raise ValueError("Transfers cannot be funded by a card")
            if self.category_id is not None:
                raise ValueError("Transfers do not carry a category")
        else:
            if (self.account_id is None) == (self.card_id is None):
                raise ValueError("Entry must be funded by exactly one of account or card")
            if self.destination_account_id is not None:
                raise ValueError("Only transfers have a destination account")

        if self.card_id is None and self.bill_period is not None:
            raise ValueError("Only card-funded entries carry a billing period")

        if self.bill_reference is not None:
            if self.kind != EntryKind.EXPENSE or self.account_id is None:
                raise ValueError("Bill settlements must be account-funded expenses")

        return self

    @model_validator(mode='after')
    def validate_installments(self) -> 'Entry':
        """Installment index and count travel together."""
        if (self.installment_index is None) != (self.installment_count is None):
            raise ValueError("Installment index and count must be set together")
        if (
            self.installment_index is not None
            and self.installment_index > self.installment_count
        ):
            raise ValueError("Installment index cannot exceed installment count")
        return self

    def revised(self, **changes) -> "Entry":
        """
        A validated copy with `changes` applied and `updated_at` bumped.

        Raises pydantic's ValidationError if the result breaks an invariant.
        """
        data = self.model_dump()
        data.update(changes)
        data["updated_at"] = utcnow()
        return Entry.model_validate(data)

    @property
    def is_card_funded(self) -> bool:
        return self.card_id is not None

    @property
    def is_settlement(self) -> bool:
        return self.bill_reference is not None

    @property
    def is_series_member(self) -> bool:
        return self.series_id is not None

    @property
    def is_anticipated(self) -> bool:
        return self.anticipated_from_period is not None

    @property
    def period(self) -> BillPeriod:
        """
        Effective period: the billing period for card entries, the
        calendar month of `occurs_on` otherwise.
        """
        if self.card_id is not None and self.bill_period is not None:
            return self.bill_period
        return BillPeriod.of(self.occurs_on)


# =============================================================================
# CARDS, ACCOUNTS AND GOALS
# =============================================================================

class Card(BaseModel):
    """A credit card. Its bill is paid from `payment_account_id`."""
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    closing_day: int = Field(..., ge=1, le=31)
    due_day: int = Field(..., ge=1, le=31)
    credit_limit: Annotated[Decimal, Field(ge=0, decimal_places=2)]
    payment_account_id: UUID
    is_archived: bool = False

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class Account(BaseModel):
    """
    A cash or bank account.

    `balance` is a cache. It is kept current incrementally and can be
    rebuilt from `initial_balance` plus completed entries at any time.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    initial_balance: Money = ZERO
    balance: Optional[Money] = None
    include_in_total: bool = True
    is_archived: bool = False

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode='after')
    def default_balance(self) -> 'Account':
        if self.balance is None:
            self.balance = self.initial_balance
        return self


class MonthlyGoal(BaseModel):
    """
    A budget for one category in one month.

    `current_amount` is derived from the ledger and never hand-edited.
    """

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    category_id: str = Field(..., min_length=1, max_length=100)
    goal_type: GoalType
    period: BillPeriod
    target_amount: PositiveMoney
    current_amount: Money = ZERO
    is_active: bool = True
    alert_acknowledged: bool = False

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def progress_percent(self) -> Decimal:
        """Progress toward the target, capped at 100."""
        percent = self.current_amount / self.target_amount * 100
        return min(percent, Decimal(100)).quantize(CENT)


class SavingsGoal(BaseModel):
    """
    A long-term goal funded by entries that carry its `goal_id`.

    Only completed contributions count; removals never take the total
    below zero.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=100)
    target_amount: PositiveMoney
    current_amount: Annotated[Decimal, Field(ge=0, decimal_places=2)] = ZERO
    deadline: Optional[date] = None
    is_active: bool = True
    completed_at: Optional[datetime] = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


# =============================================================================
# DERIVED VIEWS
# =============================================================================

class Bill(BaseModel):
    """
    A card's entries for one billing period.

    Derived on demand from the entries; never stored.
    """

    card_id: UUID
    period: BillPeriod
    due_date: date
    entries: list[Entry] = Field(default_factory=list)
    total_amount: Money = ZERO
    is_paid: bool = False
    settlement_entry_id: Optional[UUID] = None

    @property
    def entry_count(self) -> int:
        return len(self.entries)


class CardUsage(BaseModel):
    """How much of a card's limit is tied up in unpaid bills."""

    card_id: UUID
    credit_limit: Money
    used: Money
    available: Money


class MonthTotals(BaseModel):
    """Income and expense attributed to one period."""

    period: BillPeriod
    income: Money = ZERO
    expense: Money = ZERO

    @property
    def net(self) -> Decimal:
        return self.income - self.expense


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'suspicious_value')"
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
    suggested_fix: Optional[str] = Field(
        default=None,
        description="Suggested fix if available"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, funding source, amount)
    Stage 2: Semantic validation (references, limits, dates)
    """

    entity_id: UUID = Field(
        ...,
        description="ID of the entry being validated"
    )
    validated_at: datetime = Field(default_factory=utcnow)

    schema_valid: bool
    semantic_valid: bool
    is_valid: bool

    issues: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[str] = Field(
        default_factory=list,
        description="Non-blocking warnings"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")
