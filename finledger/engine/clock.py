"""
Clock sources.

The ledger never calls `date.today()` directly. Status-on-creation and
the anticipation target both read "now" from one of these, so tests can
pin the date.
"""

from datetime import date, datetime, timezone
from typing import Optional, Protocol


class Clock(Protocol):
    def today(self) -> date: ...

    def now(self) -> datetime: ...


class SystemClock:
    """Wall-clock time in UTC."""

    def today(self) -> date:
        return self.now().date()

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock:
    """A clock stuck at one instant. Call `advance_to` to move it."""

    def __init__(self, today: date, now: Optional[datetime] = None):
        self._today = today
        self._now = now

    def today(self) -> date:
        return self._today

    def now(self) -> datetime:
        if self._now is not None:
            return self._now
        return datetime(
            self._today.year, self._today.month, self._today.day, 12, tzinfo=timezone.utc
        )

    def advance_to(self, today: date) -> None:
        self._today = today
        self._now = None
