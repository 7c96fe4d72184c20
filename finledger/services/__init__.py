"""Services package."""

from finledger.services.storage import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryFilter,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    LedgerStorageInterface,
    StorageError,
)

__all__ = [
    "AuditStorageInterface",
    "ConnectionError",
    "DuplicateError",
    "EntryFilter",
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
    "LedgerStorageInterface",
    "StorageError",
]
