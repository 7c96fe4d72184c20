"""
Bill aggregation.

Bills are projections over card entries, never stored. A card entry's
bill is named by (card_id, bill_period); a bill is paid once a completed
settlement entry references it.
"""

from decimal import Decimal
from typing import Iterable

from finledger.engine.cycles import due_date_for
from finledger.models.ledger import (
    ZERO,
    Bill,
    BillPeriod,
    BillReference,
    Card,
    CardUsage,
    Entry,
    EntryKind,
    EntryStatus,
)


def signed_card_amount(entry: Entry) -> Decimal:
    """Card purchases raise a bill; card credits (income) lower it."""
    if entry.kind == EntryKind.INCOME:
        return -entry.amount
    return entry.amount


def aggregate_bill(card: Card, period: BillPeriod, entries: Iterable[Entry]) -> Bill:
    """The bill of `card` for `period`, built from any superset of its entries."""
    reference = BillReference(card_id=card.id, period=period)
    members = []
    settlement_id = None

    for entry in entries:
        if entry.status == EntryStatus.CANCELLED:
            continue
        if entry.bill_reference == reference:
            if entry.status == EntryStatus.COMPLETED:
                settlement_id = entry.id
            continue
        if entry.card_id == card.id and entry.bill_period == period:
            members.append(entry)

    members.sort(key=lambda e: (e.occurs_on, e.created_at))
    total = sum((signed_card_amount(e) for e in members), ZERO)

    return Bill(
        card_id=card.id,
        period=period,
        due_date=due_date_for(period, card),
        entries=members,
        total_amount=total,
        is_paid=settlement_id is not None,
        settlement_entry_id=settlement_id,
    )


def aggregate_bills(
    cards: Iterable[Card],
    period: BillPeriod,
    entries: Iterable[Entry],
) -> list[Bill]:
    """One bill per active card for `period`."""
    entries = list(entries)
    return [
        aggregate_bill(card, period, entries)
        for card in cards
        if not card.is_archived
    ]


def card_periods(card: Card, entries: Iterable[Entry]) -> list[BillPeriod]:
    """Every period the card has at least one entry in, oldest first."""
    periods = {
        e.bill_period for e in entries
        if e.card_id == card.id and e.bill_period is not None
    }
    return sorted(periods, key=BillPeriod.as_tuple)


def card_usage(card: Card, entries: Iterable[Entry]) -> CardUsage:
    """Credit tied up in the card's unpaid bills."""
    entries = list(entries)
    used = ZERO
    for period in card_periods(card, entries):
        bill = aggregate_bill(card, period, entries)
        if not bill.is_paid and bill.total_amount > 0:
            used += bill.total_amount

    return CardUsage(
        card_id=card.id,
        credit_limit=card.credit_limit,
        used=used,
        available=card.credit_limit - used,
    )
