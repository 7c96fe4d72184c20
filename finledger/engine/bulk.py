"""
Sequential multi-document writes.

The store only guarantees per-document atomicity, so a bulk operation is
a loop of independent writes. The loop:
1. Writes one entry at a time, in order
2. Reports progress after every successful write
3. Stops at the first failed write and reports what is left
4. Can be interrupted between writes, never during one

"N of M succeeded" is a normal terminal state, described by a
`BulkWriteResult`. Nothing is rolled back.
"""

import asyncio
from typing import Any, Awaitable, Callable, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from finledger.errors import LedgerError, PartialFailureError
from finledger.models.ledger import Entry


ProgressCallback = Callable[[int, int], None]


class BulkFailure(BaseModel):
    """The write that stopped a bulk operation."""

    entry_id: UUID
    error_type: str
    message: str


class BulkWriteResult(BaseModel):
    """Outcome of one sequential bulk operation."""

    operation: str
    total: int = Field(..., ge=0)
    succeeded: list[UUID] = Field(default_factory=list)
    failures: list[BulkFailure] = Field(default_factory=list)
    remaining: list[Entry] = Field(
        default_factory=list,
        description="Planned entries that were not written, in order"
    )
    interrupted: bool = False

    @property
    def achieved(self) -> int:
        return len(self.succeeded)

    @property
    def is_complete(self) -> bool:
        return self.achieved == self.total

    @property
    def is_partial(self) -> bool:
        return 0 < self.achieved < self.total

    def raise_for_incomplete(self) -> "BulkWriteResult":
        """Raise PartialFailureError unless every write succeeded."""
        if not self.is_complete:
            raise PartialFailureError(self)
        return self


async def run_sequential(
    operation: str,
    entries: list[Entry],
    write: Callable[[Entry], Awaitable[Any]],
    on_progress: Optional[ProgressCallback] = None,
    stop: Optional[asyncio.Event] = None,
) -> BulkWriteResult:
    """
    Apply `write` to each entry in order.

    Ledger and storage errors raised by `write` end the loop and are
    recorded in the result. Any other exception is a bug and propagates.
    """
    result = BulkWriteResult(operation=operation, total=len(entries))

    for position, entry in enumerate(entries):
        if stop is not None and stop.is_set():
            result.interrupted = True
            result.remaining = list(entries[position:])
            break

        try:
            await write(entry)
        except LedgerError as e:
            result.failures.append(BulkFailure(
                entry_id=entry.id,
                error_type=type(e).__name__,
                message=str(e),
            ))
            result.remaining = list(entries[position:])
            break

        result.succeeded.append(entry.id)
        if on_progress is not None:
            on_progress(result.achieved, result.total)

    return result
