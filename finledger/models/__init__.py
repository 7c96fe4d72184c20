"""
Data Models Package

This package contains all Pydantic models used by the ledger.
All data flowing through the system must conform to these schemas.
"""

from finledger.models.ledger import (
    CENT,
    ZERO,
    Account,
    Bill,
    BillPeriod,
    BillReference,
    Card,
    CardUsage,
    Entry,
    EntryKind,
    EntryStatus,
    GoalType,
    MonthlyGoal,
    MonthTotals,
    RecurrenceInterval,
    SavingsGoal,
    SplitMode,
    ValidationIssue,
    ValidationResult,
)
from finledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Ledger models
    "CENT",
    "ZERO",
    "Account",
    "Bill",
    "BillPeriod",
    "BillReference",
    "Card",
    "CardUsage",
    "Entry",
    "EntryKind",
    "EntryStatus",
    "GoalType",
    "MonthlyGoal",
    "MonthTotals",
    "RecurrenceInterval",
    "SavingsGoal",
    "SplitMode",
    "ValidationIssue",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
