"""Tests for read-only reports."""

from datetime import date
from decimal import Decimal

import pytest
import pytest_asyncio

from finledger.models import EntryKind


@pytest_asyncio.fixture
async def march_ledger(service, account, card):
    """A month of activity: salary, groceries, a card purchase and its payment."""
    await service.record_entry({
        "kind": "income", "amount": "3000.00", "description": "Salary",
        "occurs_on": date(2024, 2, 28), "account_id": account.id, "category_id": "salary",
    })
    await service.record_entry({
        "kind": "expense", "amount": "120.00", "description": "Groceries",
        "occurs_on": date(2024, 3, 2), "account_id": account.id, "category_id": "food",
    })
    await service.record_entry({
        "kind": "expense", "amount": "80.00", "description": "Restaurant",
        "occurs_on": date(2024, 3, 5), "card_id": card.id, "category_id": "food",
    })
    await service.record_entry({
        "kind": "expense", "amount": "45.00", "description": "Cinema",
        "occurs_on": date(2024, 3, 6), "card_id": card.id,
    })
    await service.pay_bill(card.id, 3, 2024)
    return account


class TestReports:
    """Tests for ReportExecutor."""

    @pytest.mark.asyncio
    async def test_listing_hides_settlements(self, service, march_ledger):
        entries = await service.reports.list_entries(3, 2024)
        assert [e.description for e in entries] == ["Groceries", "Restaurant", "Cinema"]
        assert not any(e.is_settlement for e in entries)

    @pytest.mark.asyncio
    async def test_month_totals_count_purchases_once(self, service, march_ledger):
        totals = await service.reports.month_totals(3, 2024)
        assert totals.expense == Decimal("245.00")
        assert totals.income == Decimal("0")

    @pytest.mark.asyncio
    async def test_expenses_by_category(self, service, march_ledger):
        by_category = await service.reports.expenses_by_category(3, 2024)
        assert by_category == {"food": Decimal("200.00"), "uncategorized": Decimal("45.00")}
        assert list(by_category) == ["food", "uncategorized"]

    @pytest.mark.asyncio
    async def test_carry_over_counts_cash_before_period(self, service, march_ledger):
        """February's salary carries into March; March activity does not."""
        assert await service.reports.carry_over_balance(3, 2024) == Decimal("3000.00")

    @pytest.mark.asyncio
    async def test_carry_over_includes_bill_payments(self, service, march_ledger):
        carried = await service.reports.carry_over_balance(4, 2024, march_ledger.id)
        assert carried == Decimal("3000.00") - Decimal("120.00") - Decimal("125.00")

    @pytest.mark.asyncio
    async def test_transfers_are_neutral(self, service, account):
        other = await service.create_account("Savings")
        await service.record_entry({
            "kind": EntryKind.TRANSFER, "amount": "500.00", "description": "Save",
            "occurs_on": date(2024, 2, 1), "account_id": account.id,
            "destination_account_id": other.id,
        })
        assert await service.reports.carry_over_balance(3, 2024) == Decimal("0")
