"""
Date and billing-cycle arithmetic.

Pure functions, no I/O. The closing-day rule lives in exactly one place,
`billing_period_for`; assignment, anticipation and the closed-bill guard
all go through it so they cannot disagree on the boundary day.

Boundary rule: a purchase made on or before the closing day belongs to
the bill of its own month; a purchase made after it belongs to the next
month's bill. A closing day past the end of a short month behaves as the
month's last day.
"""

from datetime import date
from typing import Union

from dateutil.relativedelta import relativedelta

from finledger.errors import ValidationError
from finledger.models.ledger import BillPeriod, Card, RecurrenceInterval


def validate_day(day: int, field: str = "day") -> int:
    """Reject a day-of-month outside 1..31."""
    if isinstance(day, bool) or not isinstance(day, int) or not 1 <= day <= 31:
        raise ValidationError(f"{field} must be between 1 and 31, got {day!r}")
    return day


def add_months(day: date, months: int) -> date:
    """
    Calendar month arithmetic, clamping to the last day of the target month.

    Jan 31 + 1 month is Feb 28 (or 29), never Mar 3.
    """
    return day + relativedelta(months=months)


def billing_period_for(purchase_date: date, closing_day: int) -> BillPeriod:
    """The bill a card purchase made on `purchase_date` lands on."""
    validate_day(closing_day, "closing_day")
    period = BillPeriod.of(purchase_date)
    if purchase_date <= period.closing_date(closing_day):
        return period
    return period.shifted(1)


def due_date_for(period: BillPeriod, card: Card) -> date:
    """
    When the bill for `period` is due.

    A due day earlier than the closing day means the bill is paid in the
    month after it closes; otherwise it is due in its own month.
    """
    validate_day(card.closing_day, "closing_day")
    validate_day(card.due_day, "due_day")
    if card.due_day < card.closing_day:
        return period.shifted(1).clamp_day(card.due_day)
    return period.clamp_day(card.due_day)


def step_occurrence(
    base_date: date,
    interval: Union[RecurrenceInterval, str],
    occurrence_index: int,
) -> date:
    """Date of the `occurrence_index`-th occurrence (0 is the base date itself)."""
    interval = RecurrenceInterval(interval)
    if occurrence_index < 0:
        raise ValidationError(f"occurrence_index must be >= 0, got {occurrence_index}")
    if occurrence_index == 0:
        return base_date

    if interval == RecurrenceInterval.WEEKLY:
        return base_date + relativedelta(weeks=occurrence_index)
    if interval == RecurrenceInterval.BIWEEKLY:
        return base_date + relativedelta(weeks=2 * occurrence_index)
    if interval == RecurrenceInterval.MONTHLY:
        return base_date + relativedelta(months=occurrence_index)
    if interval == RecurrenceInterval.YEARLY:
        return base_date + relativedelta(years=occurrence_index)

    raise ValidationError("A non-recurring entry has no further occurrences")


def next_assignable_period(today: date, closing_day: int) -> BillPeriod:
    """The earliest bill a purchase made today can still land on."""
    return billing_period_for(today, closing_day)


def is_period_closed(period: BillPeriod, today: date, closing_day: int) -> bool:
    """True once the bill for `period` can no longer receive purchases."""
    return period < next_assignable_period(today, closing_day)
