"""Tests for installment anticipation planning."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.engine import check_anticipation, plan_anticipation, plan_series
from finledger.errors import PreconditionError, ValidationError
from finledger.models import BillPeriod, EntryKind, EntryStatus, SplitMode

TODAY = date(2024, 3, 15)
OPEN_BILL = BillPeriod(month=4, year=2024)


@pytest.fixture
def installments(make_entry, sample_card):
    """Four installments on bills 04/2024 through 07/2024."""
    template = make_entry(
        amount=Decimal("400.00"),
        description="Phone",
        occurs_on=date(2024, 3, 20),
        card_id=sample_card.id,
        category_id="tech",
    )
    return plan_series(template, "monthly", 4, SplitMode.INSTALLMENT, TODAY, 10)


class TestCheckAnticipation:
    """Tests for anticipation preconditions."""

    def test_future_installment_targets_open_bill(self, installments, sample_card):
        assert check_anticipation(installments[2], sample_card, TODAY) == OPEN_BILL

    def test_installment_in_open_bill_is_not_future(self, installments, sample_card):
        with pytest.raises(PreconditionError) as exc_info:
            check_anticipation(installments[0], sample_card, TODAY)
        assert exc_info.value.reason == "not_future"

    def test_single_card_entry_is_not_series_member(self, make_entry, sample_card):
        entry = make_entry(card_id=sample_card.id, bill_period=BillPeriod(month=6, year=2024))
        with pytest.raises(PreconditionError) as exc_info:
            check_anticipation(entry, sample_card, TODAY)
        assert exc_info.value.reason == "not_series_member"

    def test_account_entry_is_rejected(self, make_entry, sample_card):
        with pytest.raises(PreconditionError) as exc_info:
            check_anticipation(make_entry(), sample_card, TODAY)
        assert exc_info.value.reason == "not_card_funded"

    def test_cancelled_installment_is_rejected(self, installments, sample_card):
        cancelled = installments[3].revised(status=EntryStatus.CANCELLED)
        with pytest.raises(PreconditionError) as exc_info:
            check_anticipation(cancelled, sample_card, TODAY)
        assert exc_info.value.reason == "cancelled"

    def test_other_card_is_rejected(self, installments, sample_card):
        other = sample_card.model_copy(update={"id": uuid4()})
        with pytest.raises(PreconditionError) as exc_info:
            check_anticipation(installments[2], other, TODAY)
        assert exc_info.value.reason == "card_mismatch"


class TestPlanAnticipation:
    """Tests for the anticipation writes."""

    def test_moves_bill_and_records_origin(self, installments, sample_card):
        plan = plan_anticipation(installments[2], sample_card, TODAY)

        assert plan.target_period == OPEN_BILL
        assert plan.entry.id == installments[2].id
        assert plan.entry.bill_period == OPEN_BILL
        assert plan.entry.anticipated_from_period == BillPeriod(month=6, year=2024)
        assert plan.entry.occurs_on == installments[2].occurs_on
        assert plan.entry.series_id == installments[2].series_id
        assert plan.discount_entry is None

    def test_second_anticipation_is_rejected(self, installments, sample_card):
        """An anticipated entry cannot be anticipated again."""
        moved = plan_anticipation(installments[2], sample_card, TODAY).entry
        with pytest.raises(PreconditionError) as exc_info:
            plan_anticipation(moved, sample_card, TODAY)
        assert exc_info.value.reason == "already_anticipated"

    def test_discount_creates_linked_entry(self, installments, sample_card):
        plan = plan_anticipation(installments[3], sample_card, TODAY, Decimal("5.00"))
        discount = plan.discount_entry

        assert discount is not None
        assert discount.kind == EntryKind.EXPENSE
        assert discount.amount == Decimal("5.00")
        assert discount.discount_amount == Decimal("5.00")
        assert discount.related_entry_id == installments[3].id
        assert discount.bill_period == OPEN_BILL
        assert discount.card_id == sample_card.id
        assert discount.series_id is None
        assert discount.category_id is None
        assert discount.status == EntryStatus.COMPLETED

    def test_zero_discount_means_no_discount(self, installments, sample_card):
        plan = plan_anticipation(installments[3], sample_card, TODAY, Decimal("0"))
        assert plan.discount_entry is None

    def test_discount_must_be_smaller_than_installment(self, installments, sample_card):
        with pytest.raises(ValidationError):
            plan_anticipation(installments[3], sample_card, TODAY, Decimal("100.00"))

    def test_negative_discount_is_rejected(self, installments, sample_card):
        with pytest.raises(ValidationError):
            plan_anticipation(installments[3], sample_card, TODAY, Decimal("-1.00"))
