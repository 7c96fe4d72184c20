"""Tests for series shifting, truncation and single-entry moves."""

from datetime import date
from decimal import Decimal

import pytest

from finledger.engine import plan_entry_move, plan_series, plan_series_shift, select_tail
from finledger.errors import PreconditionError, ValidationError
from finledger.models import BillPeriod, EntryStatus, SplitMode

TODAY = date(2024, 3, 15)


@pytest.fixture
def card_series(make_entry, sample_card):
    template = make_entry(
        amount=Decimal("300.00"),
        occurs_on=date(2024, 3, 20),
        card_id=sample_card.id,
    )
    return plan_series(template, "monthly", 3, SplitMode.INSTALLMENT, TODAY, 10)


@pytest.fixture
def account_series(make_entry):
    template = make_entry(amount=Decimal("50.00"), occurs_on=date(2024, 4, 1))
    return plan_series(template, "monthly", 4, SplitMode.FIXED, TODAY)


class TestSeriesShift:
    """Tests for plan_series_shift."""

    def test_card_series_forward(self, card_series, sample_card):
        shifted = plan_series_shift(card_series, 1, TODAY, sample_card)
        assert [e.bill_period for e in shifted] == [
            BillPeriod(month=5, year=2024),
            BillPeriod(month=6, year=2024),
            BillPeriod(month=7, year=2024),
        ]
        assert [e.occurs_on for e in shifted] == [
            date(2024, 4, 20), date(2024, 5, 20), date(2024, 6, 20)
        ]
        assert [e.id for e in shifted] == [e.id for e in card_series]

    def test_card_series_into_closed_bill_is_rejected(self, card_series, sample_card):
        """The whole shift is rejected before any member changes."""
        with pytest.raises(PreconditionError) as exc_info:
            plan_series_shift(card_series, -1, TODAY, sample_card)
        assert exc_info.value.reason == "target_period_closed"

    def test_account_series_backwards_into_current_month(self, account_series):
        shifted = plan_series_shift(account_series, -1, TODAY)
        assert shifted[0].occurs_on == date(2024, 3, 1)

    def test_account_series_into_past_is_rejected(self, account_series):
        with pytest.raises(PreconditionError) as exc_info:
            plan_series_shift(account_series, -2, TODAY)
        assert exc_info.value.reason == "target_period_past"

    def test_status_is_unchanged(self, account_series):
        shifted = plan_series_shift(account_series, 2, TODAY)
        assert [e.status for e in shifted] == [e.status for e in account_series]
        assert all(e.status == EntryStatus.PENDING for e in shifted)

    def test_anticipated_origin_shifts_too(self, card_series, sample_card):
        anticipated = card_series[2].revised(
            bill_period=BillPeriod(month=4, year=2024),
            anticipated_from_period=BillPeriod(month=6, year=2024),
        )
        members = [card_series[0], card_series[1], anticipated]
        shifted = plan_series_shift(members, 1, TODAY, sample_card)
        assert shifted[2].anticipated_from_period == BillPeriod(month=7, year=2024)

    def test_anticipated_member_guards_shift(self, make_entry, sample_card):
        """An installment anticipated into the open bill must not be pushed into a closed one."""
        template = make_entry(
            amount=Decimal("300.00"),
            occurs_on=date(2024, 4, 20),
            card_id=sample_card.id,
        )
        series = plan_series(template, "monthly", 3, SplitMode.INSTALLMENT, TODAY, 10)
        assert series[0].bill_period == BillPeriod(month=5, year=2024)
        anticipated = series[2].revised(
            bill_period=BillPeriod(month=4, year=2024),
            anticipated_from_period=series[2].bill_period,
        )
        members = [series[0], series[1], anticipated]

        with pytest.raises(PreconditionError) as exc_info:
            plan_series_shift(members, -1, TODAY, sample_card)
        assert exc_info.value.reason == "target_period_closed"

    def test_zero_delta_is_rejected(self, account_series):
        with pytest.raises(ValidationError):
            plan_series_shift(account_series, 0, TODAY)

    def test_empty_series_is_rejected(self):
        with pytest.raises(ValidationError):
            plan_series_shift([], 1, TODAY)


class TestSelectTail:

    def test_from_middle(self, account_series):
        tail = select_tail(account_series, 2)
        assert [e.installment_index for e in tail] == [2, 3, 4]

    def test_beyond_end_is_empty(self, account_series):
        assert select_tail(account_series, 5) == []

    def test_order_is_by_index(self, account_series):
        tail = select_tail(list(reversed(account_series)), 3)
        assert [e.installment_index for e in tail] == [3, 4]

    def test_rejects_index_below_one(self, account_series):
        with pytest.raises(ValidationError):
            select_tail(account_series, 0)


class TestEntryMove:

    def test_card_entry_moves_one_bill(self, make_entry, sample_card):
        entry = make_entry(
            occurs_on=date(2024, 3, 20),
            card_id=sample_card.id,
            bill_period=BillPeriod(month=4, year=2024),
        )
        moved = plan_entry_move(entry, 1, TODAY, sample_card)
        assert moved.bill_period == BillPeriod(month=5, year=2024)
        assert moved.occurs_on == date(2024, 4, 20)

    def test_account_entry_is_rejected(self, make_entry, sample_card):
        with pytest.raises(PreconditionError) as exc_info:
            plan_entry_move(make_entry(), 1, TODAY, sample_card)
        assert exc_info.value.reason == "not_card_funded"
