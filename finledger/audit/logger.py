"""
Audit Logger

DESIGN DECISION: Every significant change to the ledger is logged.
This provides:
1. Complete traceability of every write
2. A record of partial bulk writes, so they can be retried
3. Debugging capability when a derived total drifts

The audit logger:
- Is async to not block main flow
- Gracefully handles failures (doesn't break a ledger operation if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finledger.models.audit import AuditEvent, AuditEventBuilder, AuditEventType
from finledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger()

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_entry_created(
        self,
        entry_id: UUID,
        kind: str,
        amount: str,
        correlation_id: UUID,
    ) -> None:
        """Log a single recorded entry."""
        await self.log(AuditEventBuilder.entry_created(
            entry_id=entry_id,
            kind=kind,
            amount=amount,
            correlation_id=correlation_id,
        ))

    async def log_entry_changed(
        self,
        event_type: AuditEventType,
        entry_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log an update, delete, move or anticipation of one entry."""
        await self.log(AuditEventBuilder.entry_changed(
            event_type=event_type,
            entry_id=entry_id,
            description=description,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_series_expanded(
        self,
        series_id: UUID,
        achieved: int,
        total: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.series_expanded(
            series_id=series_id,
            achieved=achieved,
            total=total,
            correlation_id=correlation_id,
        ))

    async def log_series_changed(
        self,
        event_type: AuditEventType,
        series_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        """Log a shift, truncation or edit of a series."""
        await self.log(AuditEventBuilder.series_changed(
            event_type=event_type,
            series_id=series_id,
            description=description,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_bill_paid(
        self,
        card_id: UUID,
        period: str,
        amount: str,
        settlement_entry_id: UUID,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.bill_paid(
            card_id=card_id,
            period=period,
            amount=amount,
            settlement_entry_id=settlement_entry_id,
            correlation_id=correlation_id,
        ))

    async def log_balance(
        self,
        event_type: AuditEventType,
        account_id: UUID,
        old_balance: str,
        new_balance: str,
        correlation_id: UUID,
    ) -> None:
        """Log a recompute or manual adjustment of an account balance."""
        await self.log(AuditEventBuilder.balance_event(
            event_type=event_type,
            account_id=account_id,
            old_balance=old_balance,
            new_balance=new_balance,
            correlation_id=correlation_id,
        ))

    async def log_funding_source(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        await self.log(AuditEventBuilder.funding_source_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_goal(
        self,
        event_type: AuditEventType,
        goal_id: UUID,
        description: str,
        correlation_id: UUID,
        details: Optional[dict] = None,
    ) -> None:
        await self.log(AuditEventBuilder.goal_event(
            event_type=event_type,
            goal_id=goal_id,
            description=description,
            correlation_id=correlation_id,
            details=details,
        ))

    async def log_rejected(
        self,
        event_type: AuditEventType,
        reason: str,
        message: str,
        correlation_id: UUID,
        entity_type: Optional[str] = None,
        entity_id: Optional[UUID] = None,
    ) -> None:
        """Log a validation or precondition rejection."""
        await self.log(AuditEventBuilder.rejected(
            event_type=event_type,
            reason=reason,
            message=message,
            correlation_id=correlation_id,
            entity_type=entity_type,
            entity_id=entity_id,
        ))

    async def log_partial_failure(
        self,
        operation: str,
        achieved: int,
        total: int,
        errors: list[str],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.partial_failure(
            operation=operation,
            achieved=achieved,
            total=total,
            errors=errors,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a caller-facing operation (e.g., a series
    expansion). Pass it through all subsequent writes.
    """
    return uuid4()
