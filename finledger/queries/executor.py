"""
Report Execution

DESIGN DECISION: Reports are read-only and DETERMINISTIC.
They are computed from stored entries on every call and never cached,
so they can never disagree with the ledger they describe.

Settlement entries are hidden from listings and spend totals: the card
purchases they pay for are already shown.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Optional
from uuid import UUID

from finledger.models.ledger import (
    ZERO,
    BillPeriod,
    Entry,
    EntryKind,
    EntryStatus,
    MonthTotals,
)
from finledger.services.storage import EntryFilter, LedgerStorageInterface


UNCATEGORIZED = "uncategorized"


class ReportExecutor:
    """
    Read-only reports over one user's ledger.

    GUARANTEES:
    - Only returns real data from storage
    - Settlements are never counted as spending
    - Cancelled entries are never counted
    """

    def __init__(self, storage: LedgerStorageInterface, user_id: str):
        self._storage = storage
        self._user_id = user_id

    async def _period_entries(self, month: int, year: int) -> list[Entry]:
        return await self._storage.find_entries(
            EntryFilter(user_id=self._user_id, month=month, year=year)
        )

    @staticmethod
    def _counts(entry: Entry) -> bool:
        return entry.status != EntryStatus.CANCELLED and not entry.is_settlement

    async def list_entries(self, month: int, year: int) -> list[Entry]:
        """Ordinary listing for a period, oldest first, without settlements."""
        entries = [e for e in await self._period_entries(month, year) if not e.is_settlement]
        entries.sort(key=lambda e: (e.occurs_on, e.created_at))
        return entries

    async def month_totals(self, month: int, year: int) -> MonthTotals:
        """Income and expense attributed to a period."""
        totals = MonthTotals(period=BillPeriod(month=month, year=year))
        for entry in await self._period_entries(month, year):
            if not self._counts(entry):
                continue
            if entry.kind == EntryKind.INCOME:
                totals.income += entry.amount
            elif entry.kind == EntryKind.EXPENSE:
                totals.expense += entry.amount
        return totals

    async def expenses_by_category(self, month: int, year: int) -> dict[str, Decimal]:
        """Expense per category for a period, largest first."""
        by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
        for entry in await self._period_entries(month, year):
            if self._counts(entry) and entry.kind == EntryKind.EXPENSE:
                by_category[entry.category_id or UNCATEGORIZED] += entry.amount
        return dict(sorted(by_category.items(), key=lambda item: item[1], reverse=True))

    async def carry_over_balance(
        self,
        before_month: int,
        before_year: int,
        account_id: Optional[UUID] = None,
    ) -> Decimal:
        """
        Net cash of every period before the given one.

        Counts completed account-funded income and expense, bill payments
        included. Transfers only move money between accounts and are neutral.
        """
        cutoff = BillPeriod(month=before_month, year=before_year)
        entries = await self._storage.find_entries(
            EntryFilter(user_id=self._user_id, status=EntryStatus.COMPLETED)
        )
        total = ZERO
        for entry in entries:
            if entry.is_card_funded or entry.kind == EntryKind.TRANSFER:
                continue
            if account_id is not None and entry.account_id != account_id:
                continue
            if entry.period >= cutoff:
                continue
            total += entry.amount if entry.kind == EntryKind.INCOME else -entry.amount
        return total
