"""
Clock -- injectable source of movement timestamps.

Services never call ``datetime.now()`` themselves; ``created_at`` on every
movement comes from the Clock handed to InventoryService.  A test clock
that steps on each reading gives movements distinct, strictly increasing
timestamps.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

LEDGER_EPOCH = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock.

    With the default ``step_seconds=0`` every reading returns the same
    instant until ``advance()`` moves it.  A positive step moves the clock
    forward after each reading, so consecutive movements are stamped
    ``start``, ``start + step``, ``start + 2*step`` and so on.
    """

    def __init__(self, start: datetime | None = None, step_seconds: float = 0):
        if step_seconds < 0:
            raise ValueError("step_seconds must not be negative")
        self._current = start or LEDGER_EPOCH
        self._step = timedelta(seconds=step_seconds)

    def now(self) -> datetime:
        reading = self._current
        self._current += self._step
        return reading

    def advance(self, seconds: float = 1) -> None:
        self._current += timedelta(seconds=seconds)
