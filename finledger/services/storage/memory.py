"""
In-memory storage.

Default backend for local use and tests. Records are copied on the way
in and out, so callers can never mutate stored state by accident, just
as with a remote store.
"""

from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from finledger.errors import NotFoundError
from finledger.models.audit import AuditEvent
from finledger.models.ledger import (
    Account,
    Card,
    Entry,
    GoalType,
    MonthlyGoal,
    SavingsGoal,
)
from finledger.services.storage.interface import (
    AuditStorageInterface,
    DuplicateError,
    EntryFilter,
    LedgerStorageInterface,
)


class _Collection:
    """One id-keyed collection of pydantic records."""

    def __init__(self, name: str):
        self.name = name
        self._items: dict[UUID, BaseModel] = {}

    def insert(self, record: BaseModel) -> bool:
        if record.id in self._items:
            raise DuplicateError(f"{self.name} already exists: {record.id}")
        self._items[record.id] = record.model_copy(deep=True)
        return True

    def get(self, record_id: UUID) -> Optional[BaseModel]:
        record = self._items.get(record_id)
        return record.model_copy(deep=True) if record is not None else None

    def replace(self, record: BaseModel) -> bool:
        if record.id not in self._items:
            raise NotFoundError(self.name, record.id)
        self._items[record.id] = record.model_copy(deep=True)
        return True

    def remove(self, record_id: UUID) -> bool:
        return self._items.pop(record_id, None) is not None

    def values(self) -> list:
        return [r.model_copy(deep=True) for r in self._items.values()]


class InMemoryLedgerStorage(LedgerStorageInterface):
    """Dictionary-backed ledger storage."""

    def __init__(self):
        self._entries = _Collection("entry")
        self._cards = _Collection("card")
        self._accounts = _Collection("account")
        self._monthly_goals = _Collection("monthly goal")
        self._savings_goals = _Collection("savings goal")

    async def save_entry(self, entry: Entry) -> bool:
        return self._entries.insert(entry)

    async def get_entry(self, entry_id: UUID) -> Optional[Entry]:
        return self._entries.get(entry_id)

    async def update_entry(self, entry: Entry) -> bool:
        return self._entries.replace(entry)

    async def delete_entry(self, entry_id: UUID) -> bool:
        return self._entries.remove(entry_id)

    async def find_entries(self, criteria: EntryFilter) -> list[Entry]:
        return [e for e in self._entries.values() if criteria.matches(e)]

    async def save_card(self, card: Card) -> bool:
        return self._cards.insert(card)

    async def get_card(self, card_id: UUID) -> Optional[Card]:
        return self._cards.get(card_id)

    async def update_card(self, card: Card) -> bool:
        return self._cards.replace(card)

    async def list_cards(self, user_id: str) -> list[Card]:
        return [c for c in self._cards.values() if c.user_id == user_id]

    async def save_account(self, account: Account) -> bool:
        return self._accounts.insert(account)

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        return self._accounts.get(account_id)

    async def update_account(self, account: Account) -> bool:
        return self._accounts.replace(account)

    async def list_accounts(self, user_id: str) -> list[Account]:
        return [a for a in self._accounts.values() if a.user_id == user_id]

    async def save_monthly_goal(self, goal: MonthlyGoal) -> bool:
        return self._monthly_goals.insert(goal)

    async def get_monthly_goal(self, goal_id: UUID) -> Optional[MonthlyGoal]:
        return self._monthly_goals.get(goal_id)

    async def update_monthly_goal(self, goal: MonthlyGoal) -> bool:
        return self._monthly_goals.replace(goal)

    async def delete_monthly_goal(self, goal_id: UUID) -> bool:
        return self._monthly_goals.remove(goal_id)

    async def find_monthly_goals(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        goal_type: Optional[GoalType] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[MonthlyGoal]:
        return [
            g for g in self._monthly_goals.values()
            if g.user_id == user_id
            and (category_id is None or g.category_id == category_id)
            and (goal_type is None or g.goal_type == goal_type)
            and (month is None or g.period.month == month)
            and (year is None or g.period.year == year)
        ]

    async def save_savings_goal(self, goal: SavingsGoal) -> bool:
        return self._savings_goals.insert(goal)

    async def get_savings_goal(self, goal_id: UUID) -> Optional[SavingsGoal]:
        return self._savings_goals.get(goal_id)

    async def update_savings_goal(self, goal: SavingsGoal) -> bool:
        return self._savings_goals.replace(goal)

    async def delete_savings_goal(self, goal_id: UUID) -> bool:
        return self._savings_goals.remove(goal_id)

    async def list_savings_goals(self, user_id: str) -> list[SavingsGoal]:
        return [g for g in self._savings_goals.values() if g.user_id == user_id]


class InMemoryAuditStorage(AuditStorageInterface):
    """Append-only list of audit events."""

    def __init__(self):
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        return sorted(self._events, key=lambda e: e.timestamp, reverse=True)[:limit]
