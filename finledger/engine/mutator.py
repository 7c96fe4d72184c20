"""
Series mutation: shift a whole series, cut off its tail, or move one
card entry to another bill.

Planning functions validate everything up front and return the revised
entries; nothing here writes. A shift is rejected as a whole before the
first write, so a series is never split across inconsistent periods.
"""

from datetime import date
from typing import Optional

from finledger.engine.cycles import add_months, is_period_closed
from finledger.errors import PreconditionError, ValidationError
from finledger.models.ledger import BillPeriod, Card, Entry


def order_members(members: list[Entry]) -> list[Entry]:
    """Series members by installment index, then date."""
    return sorted(members, key=lambda e: (e.installment_index or 0, e.occurs_on))


def _check_target(
    target: BillPeriod,
    today: date,
    card: Optional[Card],
) -> None:
    if card is not None:
        if is_period_closed(target, today, card.closing_day):
            raise PreconditionError(
                "target_period_closed",
                f"Bill {target} of card {card.name} is already closed",
            )
    elif target < BillPeriod.of(today):
        raise PreconditionError("target_period_past", f"Period {target} is in the past")


def _shift_entry(entry: Entry, delta_periods: int) -> Entry:
    changes = {"occurs_on": add_months(entry.occurs_on, delta_periods)}
    if entry.bill_period is not None:
        changes["bill_period"] = entry.bill_period.shifted(delta_periods)
    if entry.anticipated_from_period is not None:
        changes["anticipated_from_period"] = entry.anticipated_from_period.shifted(delta_periods)
    return entry.revised(**changes)


def plan_series_shift(
    members: list[Entry],
    delta_periods: int,
    today: date,
    card: Optional[Card] = None,
) -> list[Entry]:
    """
    Every member moved by `delta_periods` months.

    The guard is evaluated once, before anything is written, on the
    earliest resulting period across all members. An anticipated
    installment can sit earlier than installment 1, so the first member
    is not enough. That bill must still be open (card series) or not be
    in the past (account series).
    """
    if delta_periods == 0:
        raise ValidationError("delta_periods must be non-zero")
    if not members:
        raise ValidationError("Series has no members to move")

    ordered = order_members(members)
    if any(e.series_id != ordered[0].series_id for e in ordered):
        raise ValidationError("All members must belong to the same series")

    shifted = [_shift_entry(e, delta_periods) for e in ordered]
    _check_target(min(e.period for e in shifted), today, card)
    return shifted


def select_tail(members: list[Entry], from_index: int) -> list[Entry]:
    """Members with installment_index >= from_index, in order."""
    if from_index < 1:
        raise ValidationError(f"from_index must be at least 1, got {from_index}")
    return [
        e for e in order_members(members)
        if e.installment_index is not None and e.installment_index >= from_index
    ]


def plan_entry_move(
    entry: Entry,
    delta_periods: int,
    today: date,
    card: Card,
) -> Entry:
    """One card entry moved to the bill `delta_periods` away."""
    if not entry.is_card_funded:
        raise PreconditionError("not_card_funded", "Only card entries belong to a bill")
    if delta_periods == 0:
        raise ValidationError("delta_periods must be non-zero")

    moved = _shift_entry(entry, delta_periods)
    _check_target(moved.period, today, card)
    return moved
