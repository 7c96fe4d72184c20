"""
Series expansion.

Turns one recurrence request into the ordered list of dated entries to
persist. Planning is pure; writing the planned entries is the caller's
job (see `finledger.engine.bulk`).
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Union
from uuid import uuid4

from finledger.engine.cycles import billing_period_for, step_occurrence
from finledger.errors import ValidationError
from finledger.models.ledger import (
    CENT,
    Entry,
    EntryStatus,
    RecurrenceInterval,
    SplitMode,
    utcnow,
)


def to_cents(amount: Decimal) -> int:
    return int((amount / CENT).to_integral_value())


def from_cents(cents: int) -> Decimal:
    return (Decimal(cents) * CENT).quantize(CENT)


def split_amount(total: Decimal, count: int) -> list[Decimal]:
    """
    Divide `total` into `count` shares that add back to it exactly.

    Every share is the per-installment amount truncated to the cent,
    not rounded to the nearest cent, except the last one, which absorbs
    the remainder. Truncation keeps the remainder non-negative, so the
    last share is never below the others: rounding 0.10 into 6 would give
    five shares of 0.02 and a last share of 0.00. Each share is at least
    one cent.
    """
    if count < 1:
        raise ValidationError(f"count must be at least 1, got {count}")
    cents = to_cents(total)
    if cents < count:
        raise ValidationError(
            f"Cannot split {total} into {count} installments of at least {CENT}"
        )
    share = cents // count
    last = cents - share * (count - 1)
    return [from_cents(share)] * (count - 1) + [from_cents(last)]


def status_for(occurs_on: date, today: date) -> EntryStatus:
    """Entries dated after today start pending; the rest are already realized."""
    return EntryStatus.PENDING if occurs_on > today else EntryStatus.COMPLETED


def plan_series(
    template: Entry,
    interval: Union[RecurrenceInterval, str],
    count: int,
    split_mode: Union[SplitMode, str],
    today: date,
    closing_day: Optional[int] = None,
) -> list[Entry]:
    """
    Expand `template` into `count` entries sharing a new series id.

    `template.amount` is the requested total for INSTALLMENT mode and the
    per-occurrence amount for FIXED mode. Card-funded templates need the
    card's `closing_day`; if the template already names a bill, the
    whole series keeps the same offset from the natural bill of each date.
    """
    interval = RecurrenceInterval(interval)
    split_mode = SplitMode(split_mode)

    if interval == RecurrenceInterval.NONE:
        raise ValidationError("A series needs a recurrence interval")
    if count < 1:
        raise ValidationError(f"count must be at least 1, got {count}")
    if template.is_series_member:
        raise ValidationError("Template already belongs to a series")
    if template.is_card_funded and closing_day is None:
        raise ValidationError("closing_day is required for card-funded series")

    if split_mode == SplitMode.INSTALLMENT:
        amounts = split_amount(template.amount, count)
    else:
        amounts = [template.amount] * count

    offset = 0
    if template.is_card_funded and template.bill_period is not None:
        natural = billing_period_for(template.occurs_on, closing_day)
        offset = natural.months_until(template.bill_period)

    series_id = uuid4()
    created_at = utcnow()
    entries = []
    for index in range(count):
        occurs_on = step_occurrence(template.occurs_on, interval, index)
        bill_period = None
        if template.is_card_funded:
            bill_period = billing_period_for(occurs_on, closing_day).shifted(offset)

        entries.append(template.revised(
            id=uuid4(),
            amount=amounts[index],
            occurs_on=occurs_on,
            status=status_for(occurs_on, today),
            bill_period=bill_period,
            series_id=series_id,
            installment_index=index + 1,
            installment_count=count,
            recurrence_interval=interval,
            split_mode=split_mode,
            created_at=created_at,
        ))

    return entries
