"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep the ledger engine decoupled from storage implementation

The store offers per-document writes only. There is deliberately no
transaction primitive here: multi-entry operations are sequences of
independent writes (see finledger.engine.bulk).
"""

from abc import ABC, abstractmethod
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from finledger.errors import LedgerError
from finledger.models.audit import AuditEvent
from finledger.models.ledger import (
    Account,
    Card,
    Entry,
    EntryKind,
    EntryStatus,
    GoalType,
    MonthlyGoal,
    SavingsGoal,
)


class EntryFilter(BaseModel):
    """
    A conjunction of equality filters over entries.

    `month`/`year` match the entry's effective period: the bill period
    for card entries, the month of `occurs_on` otherwise.
    """

    user_id: Optional[str] = None
    kind: Optional[EntryKind] = None
    category_id: Optional[str] = None
    month: Optional[int] = None
    year: Optional[int] = None
    series_id: Optional[UUID] = None
    card_id: Optional[UUID] = None
    account_id: Optional[UUID] = None
    status: Optional[EntryStatus] = None

    def matches(self, entry: Entry) -> bool:
        if self.user_id is not None and entry.user_id != self.user_id:
            return False
        if self.kind is not None and entry.kind != self.kind:
            return False
        if self.category_id is not None and entry.category_id != self.category_id:
            return False
        if self.series_id is not None and entry.series_id != self.series_id:
            return False
        if self.card_id is not None and entry.card_id != self.card_id:
            return False
        if self.account_id is not None and self.account_id not in (
            entry.account_id, entry.destination_account_id
        ):
            return False
        if self.status is not None and entry.status != self.status:
            return False
        period = entry.period
        if self.month is not None and period.month != self.month:
            return False
        if self.year is not None and period.year != self.year:
            return False
        return True


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger document storage.

    Any storage implementation (Google Sheets, a document database, etc.)
    must implement these methods. `update_*` raise NotFoundError for
    unknown ids; `delete_*` return False instead.
    """

    # Entries

    @abstractmethod
    async def save_entry(self, entry: Entry) -> bool:
        """
        Save a new entry.

        Raises:
            DuplicateError: If an entry with this id exists
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: UUID) -> Optional[Entry]:
        """Retrieve an entry by id, or None."""
        pass

    @abstractmethod
    async def update_entry(self, entry: Entry) -> bool:
        """
        Replace a stored entry.

        Raises:
            NotFoundError: If the entry doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_entry(self, entry_id: UUID) -> bool:
        """Delete an entry. Returns True if something was deleted."""
        pass

    @abstractmethod
    async def find_entries(self, criteria: EntryFilter) -> list[Entry]:
        """Every entry matching all of the filter's set fields."""
        pass

    # Cards

    @abstractmethod
    async def save_card(self, card: Card) -> bool:
        pass

    @abstractmethod
    async def get_card(self, card_id: UUID) -> Optional[Card]:
        pass

    @abstractmethod
    async def update_card(self, card: Card) -> bool:
        pass

    @abstractmethod
    async def list_cards(self, user_id: str) -> list[Card]:
        pass

    # Accounts

    @abstractmethod
    async def save_account(self, account: Account) -> bool:
        pass

    @abstractmethod
    async def get_account(self, account_id: UUID) -> Optional[Account]:
        pass

    @abstractmethod
    async def update_account(self, account: Account) -> bool:
        pass

    @abstractmethod
    async def list_accounts(self, user_id: str) -> list[Account]:
        pass

    # Monthly goals

    @abstractmethod
    async def save_monthly_goal(self, goal: MonthlyGoal) -> bool:
        pass

    @abstractmethod
    async def get_monthly_goal(self, goal_id: UUID) -> Optional[MonthlyGoal]:
        pass

    @abstractmethod
    async def update_monthly_goal(self, goal: MonthlyGoal) -> bool:
        pass

    @abstractmethod
    async def delete_monthly_goal(self, goal_id: UUID) -> bool:
        pass

    @abstractmethod
    async def find_monthly_goals(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        goal_type: Optional[GoalType] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[MonthlyGoal]:
        """Active and inactive goals matching every given filter."""
        pass

    # Savings goals

    @abstractmethod
    async def save_savings_goal(self, goal: SavingsGoal) -> bool:
        pass

    @abstractmethod
    async def get_savings_goal(self, goal_id: UUID) -> Optional[SavingsGoal]:
        pass

    @abstractmethod
    async def update_savings_goal(self, goal: SavingsGoal) -> bool:
        pass

    @abstractmethod
    async def delete_savings_goal(self, goal_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_savings_goals(self, user_id: str) -> list[SavingsGoal]:
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one series expansion).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a specific entity.

        Returns:
            List of events in chronological order
        """
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(LedgerError):
    """Base exception for storage operations."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
