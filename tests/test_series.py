"""Tests for series expansion planning."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.engine import plan_series, split_amount, status_for
from finledger.errors import ValidationError
from finledger.models import BillPeriod, EntryStatus, SplitMode

TODAY = date(2024, 3, 15)


class TestSplitAmount:
    """Tests for installment splitting."""

    def test_remainder_goes_to_last_installment(self):
        shares = split_amount(Decimal("100.00"), 3)
        assert shares == [Decimal("33.33"), Decimal("33.33"), Decimal("33.34")]
        assert sum(shares) == Decimal("100.00")

    def test_even_split(self):
        assert split_amount(Decimal("10.00"), 4) == [Decimal("2.50")] * 4

    def test_single_installment(self):
        assert split_amount(Decimal("7.31"), 1) == [Decimal("7.31")]

    @pytest.mark.parametrize("total,count", [
        ("999.99", 7),
        ("0.05", 5),
        ("1234.56", 12),
    ])
    def test_shares_add_back_to_total(self, total, count):
        """No cent is created or lost."""
        shares = split_amount(Decimal(total), count)
        assert len(shares) == count
        assert sum(shares) == Decimal(total)
        assert min(shares) >= Decimal("0.01")

    def test_shares_truncate_so_last_share_stays_positive(self):
        """0.10 in six: rounding would leave nothing for the last share."""
        shares = split_amount(Decimal("0.10"), 6)
        assert shares == [Decimal("0.01")] * 5 + [Decimal("0.05")]

    def test_rejects_total_below_one_cent_per_share(self):
        with pytest.raises(ValidationError):
            split_amount(Decimal("0.02"), 3)

    def test_rejects_zero_count(self):
        with pytest.raises(ValidationError):
            split_amount(Decimal("10.00"), 0)


class TestStatusFor:

    def test_future_is_pending(self):
        assert status_for(date(2024, 3, 16), TODAY) == EntryStatus.PENDING

    def test_today_is_completed(self):
        assert status_for(TODAY, TODAY) == EntryStatus.COMPLETED


class TestPlanSeries:
    """Tests for plan_series."""

    def test_card_installments(self, make_entry, sample_card):
        """Installments land on consecutive bills and share one series id."""
        template = make_entry(
            amount=Decimal("300.00"),
            description="Laptop",
            occurs_on=date(2024, 3, 20),
            card_id=sample_card.id,
            category_id="tech",
        )
        planned = plan_series(template, "monthly", 3, SplitMode.INSTALLMENT, TODAY, 10)

        assert [e.bill_period for e in planned] == [
            BillPeriod(month=4, year=2024),
            BillPeriod(month=5, year=2024),
            BillPeriod(month=6, year=2024),
        ]
        assert [e.amount for e in planned] == [Decimal("100.00")] * 3
        assert [e.installment_index for e in planned] == [1, 2, 3]
        assert {e.installment_count for e in planned} == {3}
        assert len({e.series_id for e in planned}) == 1
        assert len({e.id for e in planned}) == 3
        assert template.id not in {e.id for e in planned}
        assert all(e.status == EntryStatus.PENDING for e in planned)
        assert all(e.category_id == "tech" for e in planned)

    def test_fixed_mode_repeats_amount(self, make_entry):
        template = make_entry(amount=Decimal("49.90"), occurs_on=date(2024, 4, 1))
        planned = plan_series(template, "monthly", 4, SplitMode.FIXED, TODAY)
        assert [e.amount for e in planned] == [Decimal("49.90")] * 4
        assert all(e.split_mode == SplitMode.FIXED for e in planned)

    def test_account_series_has_no_bill_period(self, make_entry):
        template = make_entry(occurs_on=date(2024, 1, 31))
        planned = plan_series(template, "monthly", 3, SplitMode.FIXED, TODAY)
        assert [e.occurs_on for e in planned] == [
            date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)
        ]
        assert all(e.bill_period is None for e in planned)

    def test_status_follows_date(self, make_entry):
        """Past and today's occurrences are completed; later ones are pending."""
        template = make_entry(occurs_on=date(2024, 2, 15))
        planned = plan_series(template, "monthly", 3, SplitMode.FIXED, TODAY)
        assert [e.status for e in planned] == [
            EntryStatus.COMPLETED, EntryStatus.COMPLETED, EntryStatus.PENDING
        ]

    def test_explicit_bill_period_becomes_offset(self, make_entry, sample_card):
        """A template billed two months late keeps that offset on every member."""
        template = make_entry(
            occurs_on=date(2024, 3, 5),
            card_id=sample_card.id,
            bill_period=BillPeriod(month=5, year=2024),
        )
        planned = plan_series(template, "monthly", 2, SplitMode.FIXED, TODAY, 10)
        assert [e.bill_period for e in planned] == [
            BillPeriod(month=5, year=2024),
            BillPeriod(month=6, year=2024),
        ]

    def test_rejects_non_recurring_interval(self, make_entry):
        with pytest.raises(ValidationError):
            plan_series(make_entry(), "none", 3, SplitMode.FIXED, TODAY)

    def test_rejects_template_already_in_series(self, make_entry):
        template = make_entry(series_id=uuid4())
        with pytest.raises(ValidationError):
            plan_series(template, "monthly", 3, SplitMode.FIXED, TODAY)

    def test_card_template_needs_closing_day(self, make_entry, sample_card):
        template = make_entry(card_id=sample_card.id)
        with pytest.raises(ValidationError):
            plan_series(template, "monthly", 3, SplitMode.FIXED, TODAY)

    def test_rejects_unsplittable_total(self, make_entry):
        template = make_entry(amount=Decimal("0.02"))
        with pytest.raises(ValidationError):
            plan_series(template, "monthly", 3, SplitMode.INSTALLMENT, TODAY)

    @pytest.mark.parametrize("count", [1, 2, 3, 12, 72])
    def test_installments_sum_to_total(self, make_entry, count):
        template = make_entry(amount=Decimal("1000.00"), occurs_on=date(2024, 4, 1))
        planned = plan_series(template, "monthly", count, SplitMode.INSTALLMENT, TODAY)
        assert len(planned) == count
        assert sum(e.amount for e in planned) == Decimal("1000.00")

    @pytest.mark.parametrize("count", [1, 3, 12])
    def test_fixed_sum_is_amount_times_count(self, make_entry, count):
        template = make_entry(amount=Decimal("19.99"), occurs_on=date(2024, 4, 1))
        planned = plan_series(template, "weekly", count, SplitMode.FIXED, TODAY)
        assert sum(e.amount for e in planned) == Decimal("19.99") * count
