"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
The in-memory backend is the default; Google Sheets is the persistent one.
"""

from finledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    DuplicateError,
    EntryFilter,
    LedgerStorageInterface,
    StorageError,
)
from finledger.services.storage.memory import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
)

__all__ = [
    # Interfaces
    "AuditStorageInterface",
    "EntryFilter",
    "LedgerStorageInterface",
    # Exceptions
    "ConnectionError",
    "DuplicateError",
    "StorageError",
    # In-memory implementation
    "InMemoryAuditStorage",
    "InMemoryLedgerStorage",
]
