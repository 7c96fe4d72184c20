"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is a supported backend because:
1. Non-technical users can view their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No transactions (bulk operations are sequential single-row writes)
- Limited query capabilities (we filter in Python)

Each collection lives in its own worksheet, one record per row. The
header row is the model's field names; nested values (billing periods,
bill references) are JSON-encoded in their cell.
"""

import json
from typing import Generic, Optional, TypeVar
from uuid import UUID

import gspread
import structlog
from google.oauth2.service_account import Credentials
from pydantic import BaseModel
from tenacity import (
    retry,
    retry_if_not_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finledger.config import get_settings
from finledger.errors import LedgerError, NotFoundError
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
    ConnectionError,
    DuplicateError,
    EntryFilter,
    LedgerStorageInterface,
    StorageError,
)


logger = structlog.get_logger()

Record = TypeVar("Record", bound=BaseModel)

# Cells holding nested models
JSON_FIELDS = frozenset({
    "bill_period",
    "anticipated_from_period",
    "bill_reference",
    "period",
    "details",
})

# Audit sheet header, one column per event field
AUDIT_COLUMNS = list(AuditEvent.model_fields)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @property
    def settings(self):
        return self._settings

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, title: str, columns: list[str], rows: int = 1000) -> gspread.Worksheet:
        """Get or create a worksheet whose first row is `columns`."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_audit_sheet(self) -> gspread.Worksheet:
        """Get or create the Audit worksheet."""
        return self.get_worksheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def record_to_row(record: BaseModel, columns: list[str]) -> list[str]:
    """Serialize a record to cells in column order."""
    data = record.model_dump(mode="json")
    row = []
    for column in columns:
        value = data.get(column)
        if value is None:
            row.append("")
        elif isinstance(value, (dict, list, bool)):
            row.append(json.dumps(value))
        else:
            row.append(str(value))
    return row


def row_to_record(model: type[Record], columns: list[str], row: list[str]) -> Record:
    """Parse cells back into a record. Empty cells fall back to field defaults."""
    data = {}
    for column, cell in zip(columns, row):
        if cell == "":
            continue
        if column in JSON_FIELDS:
            data[column] = json.loads(cell)
        else:
            data[column] = cell
    return model.model_validate(data)


class _SheetCollection(Generic[Record]):
    """
    One worksheet holding one record type, keyed by the `id` column.
    """

    def __init__(self, client: GoogleSheetsClient, title: str, model: type[Record]):
        self._client = client
        self._title = title
        self._model = model
        self._columns = list(model.model_fields)

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet(self._title, self._columns)

    def _rows(self) -> list[list[str]]:
        return self._sheet().get_all_values()[1:]

    def _find_row_number(self, sheet: gspread.Worksheet, record_id: UUID) -> Optional[int]:
        for idx, row in enumerate(sheet.get_all_values()[1:], start=2):  # row 1 is header
            if row and row[0] == str(record_id):
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def insert(self, record: Record) -> bool:
        try:
            sheet = self._sheet()
            if self._find_row_number(sheet, record.id) is not None:
                raise DuplicateError(f"{self._title} already has {record.id}")
            sheet.append_row(record_to_row(record, self._columns), value_input_option="RAW")
            return True
        except LedgerError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to save to {self._title}: {e}")

    async def get(self, record_id: UUID) -> Optional[Record]:
        try:
            for row in self._rows():
                if row and row[0] == str(record_id):
                    return row_to_record(self._model, self._columns, row)
            return None
        except Exception as e:
            raise StorageError(f"Failed to read {self._title}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type((DuplicateError, NotFoundError)),
        reraise=True,
    )
    async def replace(self, record: Record, entity_type: str) -> bool:
        try:
            sheet = self._sheet()
            row_number = self._find_row_number(sheet, record.id)
            if row_number is None:
                raise NotFoundError(entity_type, record.id)
            sheet.update(
                range_name=f"A{row_number}",
                values=[record_to_row(record, self._columns)],
                value_input_option="RAW",
            )
            return True
        except LedgerError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update {self._title}: {e}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def remove(self, record_id: UUID) -> bool:
        try:
            sheet = self._sheet()
            row_number = self._find_row_number(sheet, record_id)
            if row_number is None:
                return False
            sheet.delete_rows(row_number)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete from {self._title}: {e}")

    async def all(self) -> list[Record]:
        try:
            rows = self._rows()
        except Exception as e:
            raise StorageError(f"Failed to list {self._title}: {e}")

        records = []
        for row in rows:
            if not row or not row[0]:  # Skip empty rows
                continue
            try:
                records.append(row_to_record(self._model, self._columns, row))
            except Exception as e:
                logger.warning("sheet_row_skipped", sheet=self._title, row_id=row[0], error=str(e))
        return records


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    One worksheet per collection; filtering happens in Python.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        settings = self._client.settings
        self._entries = _SheetCollection(self._client, settings.entries_sheet_name, Entry)
        self._cards = _SheetCollection(self._client, settings.cards_sheet_name, Card)
        self._accounts = _SheetCollection(self._client, settings.accounts_sheet_name, Account)
        self._monthly_goals = _SheetCollection(
            self._client, settings.monthly_goals_sheet_name, MonthlyGoal
        )
        self._savings_goals = _SheetCollection(
            self._client, settings.savings_goals_sheet_name, SavingsGoal
        )

    async def save_entry(self, entry: Entry) -> bool:
        return await self._entries.insert(entry)

    async def get_entry(self, entry_id: UUID) -> Optional[Entry]:
        return await self._entries.get(entry_id)

    async def update_entry(self, entry: Entry) -> bool:
        return await self._entries.replace(entry, "entry")

    async def delete_entry(self, entry_id: UUID) -> bool:
        return await self._entries.remove(entry_id)

    async def find_entries(self, criteria: EntryFilter) -> list[Entry]:
        return [e for e in await self._entries.all() if criteria.matches(e)]

    async def save_card(self, card: Card) -> bool:
        return await self._cards.insert(card)

    async def get_card(self, card_id: UUID) -> Optional[Card]:
        return await self._cards.get(card_id)

    async def update_card(self, card: Card) -> bool:
        return await self._cards.replace(card, "card")

    async def list_cards(self, user_id: str) -> list[Card]:
        return [c for c in await self._cards.all() if c.user_id == user_id]

    async def save_account(self, account: Account) -> bool:
        return await self._accounts.insert(account)

    async def get_account(self, account_id: UUID) -> Optional[Account]:
        return await self._accounts.get(account_id)

    async def update_account(self, account: Account) -> bool:
        return await self._accounts.replace(account, "account")

    async def list_accounts(self, user_id: str) -> list[Account]:
        return [a for a in await self._accounts.all() if a.user_id == user_id]

    async def save_monthly_goal(self, goal: MonthlyGoal) -> bool:
        return await self._monthly_goals.insert(goal)

    async def get_monthly_goal(self, goal_id: UUID) -> Optional[MonthlyGoal]:
        return await self._monthly_goals.get(goal_id)

    async def update_monthly_goal(self, goal: MonthlyGoal) -> bool:
        return await self._monthly_goals.replace(goal, "monthly goal")

    async def delete_monthly_goal(self, goal_id: UUID) -> bool:
        return await self._monthly_goals.remove(goal_id)

    async def find_monthly_goals(
        self,
        user_id: str,
        category_id: Optional[str] = None,
        goal_type: Optional[GoalType] = None,
        month: Optional[int] = None,
        year: Optional[int] = None,
    ) -> list[MonthlyGoal]:
        return [
            g for g in await self._monthly_goals.all()
            if g.user_id == user_id
            and (category_id is None or g.category_id == category_id)
            and (goal_type is None or g.goal_type == goal_type)
            and (month is None or g.period.month == month)
            and (year is None or g.period.year == year)
        ]

    async def save_savings_goal(self, goal: SavingsGoal) -> bool:
        return await self._savings_goals.insert(goal)

    async def get_savings_goal(self, goal_id: UUID) -> Optional[SavingsGoal]:
        return await self._savings_goals.get(goal_id)

    async def update_savings_goal(self, goal: SavingsGoal) -> bool:
        return await self._savings_goals.replace(goal, "savings goal")

    async def delete_savings_goal(self, goal_id: UUID) -> bool:
        return await self._savings_goals.remove(goal_id)

    async def list_savings_goals(self, user_id: str) -> list[SavingsGoal]:
        return [g for g in await self._savings_goals.all() if g.user_id == user_id]


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _events(self) -> list[AuditEvent]:
        events = []
        for row in self._client.get_audit_sheet().get_all_values()[1:]:
            if not row or not row[0]:
                continue
            try:
                events.append(row_to_record(AuditEvent, AUDIT_COLUMNS, row))
            except Exception as e:
                logger.warning("audit_row_skipped", row_id=row[0], error=str(e))
        return events

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(record_to_row(event, AUDIT_COLUMNS), value_input_option="RAW")
            return True
        except Exception as e:
            # Audit logging must not break the main flow
            logger.error("audit_append_failed", event_id=str(event.event_id), error=str(e))
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by correlation ID."""
        try:
            events = [e for e in self._events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: UUID,
    ) -> list[AuditEvent]:
        """Get events by entity."""
        try:
            events = [
                e for e in self._events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Get recent events, newest first."""
        try:
            events = self._events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
