"""
Ledger Error Types

Every caller-facing operation either returns a value or raises one of
these. None of them is fatal: derived caches (balances, goal progress)
can always be rebuilt by recomputation after any of them.
"""

from typing import TYPE_CHECKING, Optional, Union
from uuid import UUID

if TYPE_CHECKING:
    from finledger.engine.bulk import BulkWriteResult
    from finledger.models.ledger import ValidationIssue


class LedgerError(Exception):
    """Base exception for ledger operations."""
    pass


class ValidationError(LedgerError, ValueError):
    """Input rejected before any write. Fix the input and retry."""

    def __init__(
        self,
        message: str,
        issues: Optional[list["ValidationIssue"]] = None,
    ):
        self.issues = issues or []
        super().__init__(message)


class PreconditionError(LedgerError):
    """
    The ledger is not in a state that allows the operation.

    `reason` is a stable machine-readable code, e.g. "already_anticipated"
    or "target_period_closed".
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class PartialFailureError(LedgerError):
    """A bulk operation wrote some, but not all, of its documents."""

    def __init__(self, result: "BulkWriteResult"):
        self.result = result
        super().__init__(
            f"{result.operation}: {result.achieved} of {result.total} writes succeeded"
        )

    @property
    def achieved(self) -> int:
        return self.result.achieved

    @property
    def total(self) -> int:
        return self.result.total


class NotFoundError(LedgerError, LookupError):
    """A referenced entry, card, account or goal does not exist."""

    def __init__(self, entity_type: str, entity_id: Union[UUID, str]):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type.capitalize()} not found: {entity_id}")
