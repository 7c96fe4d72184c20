"""
Entry state machine and derived-total deltas.

An entry contributes to three kinds of derived totals:
- account balances: completed entries only, card entries never
- savings goals: completed entries carrying a goal_id
- monthly goal progress: any non-cancelled, non-settlement entry with a category

`transition(old, new)` is the one place that decides the signed change
to each total when an entry is created (old is None), edited, or
deleted (new is None). Full recomputation uses the same contribution
functions, so incremental updates and recomputes always agree.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from finledger.models.ledger import (
    BillPeriod,
    Entry,
    EntryKind,
    EntryStatus,
    GoalType,
)


# pending -> completed -> cancelled, and back; a cancelled entry may be revived
ALLOWED_TRANSITIONS: dict[EntryStatus, frozenset[EntryStatus]] = {
    EntryStatus.PENDING: frozenset(EntryStatus),
    EntryStatus.COMPLETED: frozenset(EntryStatus),
    EntryStatus.CANCELLED: frozenset({EntryStatus.CANCELLED, EntryStatus.PENDING}),
}


class ProgressKey(BaseModel):
    """Which monthly goal bucket an entry counts toward."""
    model_config = ConfigDict(frozen=True)

    category_id: str
    goal_type: GoalType
    period: BillPeriod


class TransitionDelta(BaseModel):
    """Signed changes to apply to each derived total. Zero deltas are omitted."""

    balances: dict[UUID, Decimal] = Field(default_factory=dict)
    savings_goals: dict[UUID, Decimal] = Field(default_factory=dict)
    monthly_progress: dict[ProgressKey, Decimal] = Field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.balances or self.savings_goals or self.monthly_progress)


def can_transition(old: EntryStatus, new: EntryStatus) -> bool:
    return new in ALLOWED_TRANSITIONS[old]


def balance_effects(entry: Optional[Entry]) -> dict[UUID, Decimal]:
    """What a stored entry adds to each account balance."""
    if entry is None or entry.status != EntryStatus.COMPLETED or entry.is_card_funded:
        return {}
    if entry.kind == EntryKind.TRANSFER:
        return {
            entry.account_id: -entry.amount,
            entry.destination_account_id: entry.amount,
        }
    if entry.kind == EntryKind.INCOME:
        return {entry.account_id: entry.amount}
    return {entry.account_id: -entry.amount}


def savings_effects(entry: Optional[Entry]) -> dict[UUID, Decimal]:
    """What a stored entry contributes to its savings goal."""
    if entry is None or entry.goal_id is None or entry.status != EntryStatus.COMPLETED:
        return {}
    return {entry.goal_id: entry.amount}


def progress_key(entry: Entry) -> Optional[ProgressKey]:
    """The monthly goal bucket `entry` counts toward, if any."""
    if entry.status == EntryStatus.CANCELLED or entry.is_settlement:
        return None
    if entry.category_id is None or entry.kind == EntryKind.TRANSFER:
        return None
    return ProgressKey(
        category_id=entry.category_id,
        goal_type=GoalType(entry.kind.value),
        period=entry.period,
    )


def progress_effects(entry: Optional[Entry]) -> dict[ProgressKey, Decimal]:
    if entry is None:
        return {}
    key = progress_key(entry)
    if key is None:
        return {}
    return {key: entry.amount}


def _difference(before: dict, after: dict) -> dict:
    delta: dict = defaultdict(Decimal)
    for key, amount in after.items():
        delta[key] += amount
    for key, amount in before.items():
        delta[key] -= amount
    return {key: amount for key, amount in delta.items() if amount != 0}


def transition(old: Optional[Entry], new: Optional[Entry]) -> TransitionDelta:
    """
    Signed deltas for replacing `old` with `new`.

    Leaving COMPLETED subtracts the old amount, entering it adds the new
    one, and a same-amount edit nets to zero.
    """
    return TransitionDelta(
        balances=_difference(balance_effects(old), balance_effects(new)),
        savings_goals=_difference(savings_effects(old), savings_effects(new)),
        monthly_progress=_difference(progress_effects(old), progress_effects(new)),
    )
