"""
Tests for the ledger models

Test strategy:
1. Unit tests for models, engine functions and the validator
2. Flow tests against in-memory storage with a pinned clock
3. No network access in tests (Google Sheets is never contacted)
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from finledger.models import (
    Account,
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
    BillPeriod,
    BillReference,
    Entry,
    EntryKind,
    GoalType,
    MonthlyGoal,
)


class TestBillPeriod:
    """Tests for the (month, year) value object."""

    def test_ordering(self):
        """Periods compare chronologically across years."""
        assert BillPeriod(month=12, year=2023) < BillPeriod(month=1, year=2024)
        assert BillPeriod(month=3, year=2024) >= BillPeriod(month=3, year=2024)

    def test_shifted_crosses_year(self):
        """Shifting wraps months into the next or previous year."""
        assert BillPeriod(month=11, year=2024).shifted(3) == BillPeriod(month=2, year=2025)
        assert BillPeriod(month=1, year=2024).shifted(-1) == BillPeriod(month=12, year=2023)

    def test_months_until(self):
        """Signed month distance between periods."""
        start = BillPeriod(month=10, year=2023)
        assert start.months_until(BillPeriod(month=2, year=2024)) == 4
        assert BillPeriod(month=2, year=2024).months_until(start) == -4

    def test_hashable(self):
        """Periods work as dictionary keys."""
        totals = {BillPeriod(month=3, year=2024): 1}
        assert totals[BillPeriod(month=3, year=2024)] == 1

    def test_clamp_day(self):
        """Days beyond the month end clamp to the last day."""
        assert BillPeriod(month=2, year=2023).clamp_day(31) == date(2023, 2, 28)

    def test_closing_date(self):
        """A closing day past the month end closes on the last day."""
        assert BillPeriod(month=2, year=2024).closing_date(31) == date(2024, 2, 29)
        assert BillPeriod(month=3, year=2024).closing_date(10) == date(2024, 3, 10)

    def test_rejects_invalid_month(self):
        """Month 13 is rejected."""
        with pytest.raises(ValueError):
            BillPeriod(month=13, year=2024)

    def test_str(self):
        assert str(BillPeriod(month=4, year=2024)) == "04/2024"


class TestEntry:
    """Tests for Entry funding and installment rules."""

    def test_account_entry(self):
        """An expense funded by an account."""
        entry = Entry(
            user_id="u",
            kind=EntryKind.EXPENSE,
            amount=Decimal("12.50"),
            description="  Lunch  ",
            occurs_on=date(2024, 3, 1),
            account_id=uuid4(),
        )
        assert entry.description == "Lunch"
        assert entry.period == BillPeriod(month=3, year=2024)

    def test_rejects_both_funding_sources(self):
        """Account and card together are rejected."""
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.EXPENSE,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
                card_id=uuid4(),
            )

    def test_rejects_missing_funding_source(self):
        """An expense needs a funding source."""
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.EXPENSE,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
            )

    def test_rejects_non_positive_amount(self):
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.INCOME,
                amount=Decimal("0"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
            )

    def test_rejects_sub_cent_amount(self):
        """Amounts are kept to the cent."""
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.INCOME,
                amount=Decimal("1.005"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
            )

    def test_transfer_needs_distinct_accounts(self):
        """Transfers need two different accounts."""
        same = uuid4()
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.TRANSFER,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=same,
                destination_account_id=same,
            )

    def test_transfer_rejects_category(self):
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.TRANSFER,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
                destination_account_id=uuid4(),
                category_id="food",
            )

    def test_account_entry_rejects_bill_period(self):
        """Only card entries carry a bill period."""
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.EXPENSE,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
                bill_period=BillPeriod(month=3, year=2024),
            )

    def test_card_entry_period_is_bill_period(self):
        """A card entry's effective period is its bill, not its date."""
        entry = Entry(
            user_id="u",
            kind=EntryKind.EXPENSE,
            amount=Decimal("10.00"),
            description="x",
            occurs_on=date(2024, 3, 20),
            card_id=uuid4(),
            bill_period=BillPeriod(month=4, year=2024),
        )
        assert entry.period == BillPeriod(month=4, year=2024)

    def test_installment_fields_travel_together(self):
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.EXPENSE,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                account_id=uuid4(),
                installment_index=1,
            )

    def test_settlement_must_be_account_expense(self):
        """A bill reference on a card entry is rejected."""
        with pytest.raises(ValueError):
            Entry(
                user_id="u",
                kind=EntryKind.EXPENSE,
                amount=Decimal("10.00"),
                description="x",
                occurs_on=date(2024, 3, 1),
                card_id=uuid4(),
                bill_reference=BillReference(
                    card_id=uuid4(), period=BillPeriod(month=3, year=2024)
                ),
            )

    def test_revised_returns_validated_copy(self):
        """revised() leaves the original untouched and re-runs validation."""
        entry = Entry(
            user_id="u",
            kind=EntryKind.EXPENSE,
            amount=Decimal("10.00"),
            description="x",
            occurs_on=date(2024, 3, 1),
            account_id=uuid4(),
        )
        changed = entry.revised(amount=Decimal("20.00"))
        assert changed.amount == Decimal("20.00")
        assert entry.amount == Decimal("10.00")
        assert changed.id == entry.id
        with pytest.raises(ValueError):
            entry.revised(account_id=None)


class TestAccountsAndGoals:
    """Tests for accounts and goals."""

    def test_account_balance_defaults_to_initial(self):
        account = Account(user_id="u", name="Checking", initial_balance=Decimal("250.00"))
        assert account.balance == Decimal("250.00")

    def test_goal_progress_percent_is_capped(self):
        goal = MonthlyGoal(
            user_id="u",
            category_id="food",
            goal_type=GoalType.EXPENSE,
            period=BillPeriod(month=3, year=2024),
            target_amount=Decimal("100.00"),
            current_amount=Decimal("150.00"),
        )
        assert goal.progress_percent == Decimal("100.00")


class TestAuditModels:
    """Tests for audit event models."""

    def test_audit_event_to_log_dict(self):
        """Test AuditEvent conversion to log dict."""
        event = AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            entity_type="entry",
            entity_id=uuid4(),
            description="Test event",
        )
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "entry_created"
        assert log_dict["severity"] == "info"

    def test_incomplete_expansion_is_a_warning(self):
        """A partially written series is never logged as plain success."""
        event = AuditEventBuilder.series_expanded(
            series_id=uuid4(), achieved=3, total=12, correlation_id=uuid4()
        )
        assert event.severity == AuditSeverity.WARNING
        assert event.details == {"achieved": 3, "total": 12}

    def test_partial_failure_builder(self):
        event = AuditEventBuilder.partial_failure(
            operation="move_series",
            achieved=2,
            total=5,
            errors=["write failed"],
            correlation_id=uuid4(),
        )
        assert event.event_type == AuditEventType.PARTIAL_FAILURE
        assert event.severity == AuditSeverity.ERROR
        assert "2 of 5" in event.description
