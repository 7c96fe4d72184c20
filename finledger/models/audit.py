"""
Audit Models for the Ledger

Every significant mutation of the ledger is logged for audit purposes.
This provides:
1. Complete traceability of every write, including partial bulk writes
2. Debugging information when a bulk operation stops halfway
3. The ability to reconstruct what a derived total should be

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finledger.models.ledger import utcnow


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every caller-facing operation has its own event type.
    """
    # Single entries
    ENTRY_CREATED = "entry_created"
    ENTRY_UPDATED = "entry_updated"
    ENTRY_DELETED = "entry_deleted"
    ENTRY_MOVED = "entry_moved"

    # Series
    SERIES_EXPANDED = "series_expanded"
    SERIES_MOVED = "series_moved"
    SERIES_TRUNCATED = "series_truncated"
    SERIES_UPDATED = "series_updated"
    INSTALLMENT_ANTICIPATED = "installment_anticipated"

    # Bills and balances
    BILL_PAID = "bill_paid"
    BALANCE_RECOMPUTED = "balance_recomputed"
    BALANCE_ADJUSTED = "balance_adjusted"
    CARD_USAGE_ADJUSTED = "card_usage_adjusted"

    # Accounts and cards
    ACCOUNT_ARCHIVED = "account_archived"
    ACCOUNT_UNARCHIVED = "account_unarchived"
    CARD_ARCHIVED = "card_archived"
    CARD_UNARCHIVED = "card_unarchived"
    ENTRIES_PURGED = "entries_purged"

    # Goals
    GOAL_CREATED = "goal_created"
    GOAL_PROGRESS_REFRESHED = "goal_progress_refreshed"
    GOAL_DEACTIVATED = "goal_deactivated"
    GOAL_DELETED = "goal_deleted"

    # Rejections and failures
    VALIDATION_FAILED = "validation_failed"
    PRECONDITION_FAILED = "precondition_failed"
    PARTIAL_FAILURE = "partial_failure"
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'entry', 'series', 'card', 'account')"
    )
    entity_id: Optional[UUID] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., every write of one series)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Plain JSON-safe dict for structlog."""
        return self.model_dump(mode="json")


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_created(entry_id, "expense", "12.50", correlation_id)
        event = AuditEventBuilder.series_expanded(series_id, 12, 12, correlation_id)
    """

    @staticmethod
    def entry_created(
        entry_id: UUID,
        kind: str,
        amount: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_CREATED,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=f"Entry recorded: {kind} {amount}",
            details={"kind": kind, "amount": amount},
            is_user_action=True,
        )

    @staticmethod
    def entry_changed(
        event_type: AuditEventType,
        entry_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="entry",
            entity_id=entry_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def series_expanded(
        series_id: UUID,
        achieved: int,
        total: int,
        correlation_id: UUID
    ) -> AuditEvent:
        complete = achieved == total
        return AuditEvent(
            event_type=AuditEventType.SERIES_EXPANDED,
            severity=AuditSeverity.INFO if complete else AuditSeverity.WARNING,
            entity_type="series",
            entity_id=series_id,
            correlation_id=correlation_id,
            description=f"Series expanded: {achieved} of {total} entries written",
            details={"achieved": achieved, "total": total},
            is_user_action=True,
        )

    @staticmethod
    def series_changed(
        event_type: AuditEventType,
        series_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="series",
            entity_id=series_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def bill_paid(
        card_id: UUID,
        period: str,
        amount: str,
        settlement_entry_id: UUID,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.BILL_PAID,
            entity_type="card",
            entity_id=card_id,
            correlation_id=correlation_id,
            description=f"Bill {period} paid: {amount}",
            details={
                "period": period,
                "amount": amount,
                "settlement_entry_id": str(settlement_entry_id),
            },
            is_user_action=True,
        )

    @staticmethod
    def balance_event(
        event_type: AuditEventType,
        account_id: UUID,
        old_balance: str,
        new_balance: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Balance {old_balance} -> {new_balance}",
            details={"old_balance": old_balance, "new_balance": new_balance},
            is_user_action=event_type == AuditEventType.BALANCE_ADJUSTED,
        )

    @staticmethod
    def funding_source_event(
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        """Archive, unarchive or purge of an account or card."""
        return AuditEvent(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
            is_user_action=True,
        )

    @staticmethod
    def goal_event(
        event_type: AuditEventType,
        goal_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=description,
            details=details or {},
        )

    @staticmethod
    def rejected(
        event_type: AuditEventType,
        reason: str,
        message: str,
        correlation_id: UUID,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=event_type,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"Operation rejected: {reason}",
            error_code=reason,
            error_message=message,
        )

    @staticmethod
    def partial_failure(
        operation: str,
        achieved: int,
        total: int,
        errors: list[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PARTIAL_FAILURE,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"{operation}: {achieved} of {total} writes succeeded",
            details={
                "operation": operation,
                "achieved": achieved,
                "total": total,
                "errors": errors,
            },
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage failure during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
