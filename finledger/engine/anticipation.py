"""
Installment anticipation.

Pulls one future installment of a card series into the bill that is open
today, optionally recording the cash discount obtained for paying early.
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel

from finledger.engine.cycles import next_assignable_period
from finledger.errors import PreconditionError, ValidationError
from finledger.models.ledger import (
    BillPeriod,
    Card,
    Entry,
    EntryKind,
    EntryStatus,
    RecurrenceInterval,
    utcnow,
)


class AnticipationPlan(BaseModel):
    """The writes an anticipation needs: the moved entry and maybe a discount."""

    target_period: BillPeriod
    entry: Entry
    discount_entry: Optional[Entry] = None


def check_anticipation(entry: Entry, card: Card, today: date) -> BillPeriod:
    """
    Return the period `entry` would move to, or raise PreconditionError.

    The entry must be a card-funded series member that has not been
    anticipated yet and whose bill is strictly later than the bill open
    today.
    """
    if not entry.is_card_funded:
        raise PreconditionError("not_card_funded", "Only card installments can be anticipated")
    if entry.card_id != card.id:
        raise PreconditionError("card_mismatch", "Entry is not funded by this card")
    if not entry.is_series_member:
        raise PreconditionError("not_series_member", "Entry does not belong to a series")
    if entry.is_anticipated:
        raise PreconditionError(
            "already_anticipated",
            f"Entry was already anticipated from {entry.anticipated_from_period}",
        )
    if entry.status == EntryStatus.CANCELLED:
        raise PreconditionError("cancelled", "Cancelled entries cannot be anticipated")

    target = next_assignable_period(today, card.closing_day)
    if entry.bill_period is None or entry.bill_period <= target:
        raise PreconditionError(
            "not_future",
            f"Bill {entry.bill_period} is not later than the open bill {target}",
        )
    return target


def plan_anticipation(
    entry: Entry,
    card: Card,
    today: date,
    discount: Optional[Decimal] = None,
) -> AnticipationPlan:
    """Build the anticipation writes without performing them."""
    if discount is not None:
        if discount < 0:
            raise ValidationError(f"Discount cannot be negative, got {discount}")
        if discount >= entry.amount:
            raise ValidationError(
                f"Discount {discount} must be smaller than the installment {entry.amount}"
            )

    target = check_anticipation(entry, card, today)
    moved = entry.revised(
        bill_period=target,
        anticipated_from_period=entry.bill_period,
    )

    discount_entry = None
    if discount:
        discount_entry = Entry(
            id=uuid4(),
            user_id=entry.user_id,
            kind=EntryKind.EXPENSE,
            amount=discount,
            description=f"Anticipation discount: {entry.description}"[:200],
            occurs_on=today,
            status=EntryStatus.COMPLETED,
            card_id=entry.card_id,
            bill_period=target,
            recurrence_interval=RecurrenceInterval.NONE,
            discount_amount=discount,
            related_entry_id=entry.id,
            created_at=utcnow(),
        )

    return AnticipationPlan(target_period=target, entry=moved, discount_entry=discount_entry)
