"""Tests for bill aggregation and card usage."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.engine import aggregate_bill, aggregate_bills, card_usage
from finledger.models import BillPeriod, BillReference, EntryKind, EntryStatus

APRIL = BillPeriod(month=4, year=2024)
MAY = BillPeriod(month=5, year=2024)


@pytest.fixture
def card_entries(make_entry, sample_card):
    def card_entry(amount, period, **extra):
        return make_entry(
            amount=Decimal(amount),
            occurs_on=date(2024, 3, 20),
            card_id=sample_card.id,
            bill_period=period,
            **extra,
        )

    return [
        card_entry("100.00", APRIL),
        card_entry("50.00", APRIL),
        card_entry("20.00", APRIL, kind=EntryKind.INCOME),
        card_entry("30.00", APRIL, status=EntryStatus.CANCELLED),
        card_entry("70.00", MAY),
    ]


def _settlement(make_entry, card, period, amount, status=EntryStatus.COMPLETED):
    return make_entry(
        amount=Decimal(amount),
        account_id=card.payment_account_id,
        bill_reference=BillReference(card_id=card.id, period=period),
        status=status,
    )


class TestAggregateBill:
    """Tests for aggregate_bill."""

    def test_total_nets_credits_and_skips_cancelled(self, card_entries, sample_card):
        bill = aggregate_bill(sample_card, APRIL, card_entries)
        assert bill.total_amount == Decimal("130.00")
        assert bill.entry_count == 3
        assert not bill.is_paid
        assert bill.due_date == date(2024, 4, 20)

    def test_other_cards_are_ignored(self, card_entries, sample_card, make_entry):
        stranger = make_entry(card_id=uuid4(), bill_period=APRIL)
        bill = aggregate_bill(sample_card, APRIL, card_entries + [stranger])
        assert bill.total_amount == Decimal("130.00")

    def test_completed_settlement_marks_paid(self, card_entries, sample_card, make_entry):
        payment = _settlement(make_entry, sample_card, APRIL, "130.00")
        bill = aggregate_bill(sample_card, APRIL, card_entries + [payment])
        assert bill.is_paid
        assert bill.settlement_entry_id == payment.id
        assert payment.id not in {e.id for e in bill.entries}
        assert bill.total_amount == Decimal("130.00")

    def test_pending_settlement_does_not_pay(self, card_entries, sample_card, make_entry):
        payment = _settlement(make_entry, sample_card, APRIL, "130.00", EntryStatus.PENDING)
        assert not aggregate_bill(sample_card, APRIL, card_entries + [payment]).is_paid

    def test_settlement_of_other_period_does_not_pay(self, card_entries, sample_card, make_entry):
        payment = _settlement(make_entry, sample_card, MAY, "70.00")
        assert not aggregate_bill(sample_card, APRIL, card_entries + [payment]).is_paid

    def test_empty_bill(self, sample_card):
        bill = aggregate_bill(sample_card, APRIL, [])
        assert bill.total_amount == Decimal("0")
        assert bill.entries == []

    def test_archived_cards_have_no_bills(self, card_entries, sample_card):
        archived = sample_card.model_copy(update={"id": uuid4(), "is_archived": True})
        bills = aggregate_bills([sample_card, archived], APRIL, card_entries)
        assert [b.card_id for b in bills] == [sample_card.id]


class TestCardUsage:

    def test_unpaid_bills_count(self, card_entries, sample_card):
        usage = card_usage(sample_card, card_entries)
        assert usage.used == Decimal("200.00")
        assert usage.available == Decimal("4800.00")

    def test_paid_bill_releases_limit(self, card_entries, sample_card, make_entry):
        payment = _settlement(make_entry, sample_card, APRIL, "130.00")
        usage = card_usage(sample_card, card_entries + [payment])
        assert usage.used == Decimal("70.00")
