"""
Injectable time source.

The chain state machine never reads the wall clock: the orchestrator asks
its ``Clock`` once per decision and hands the timestamp to
``apply_decision``.  Tests inject a ``DeterministicClock``.
"""

from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class Clock(ABC):
    """Source of timezone-aware UTC timestamps."""

    @abstractmethod
    def now(self) -> datetime:
        ...


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(UTC)


class DeterministicClock(Clock):
    """Frozen clock; time moves only through ``advance()``."""

    def __init__(self, start: datetime = DEFAULT_TEST_TIME):
        if start.tzinfo is None:
            raise ValueError("DeterministicClock needs a timezone-aware start time")
        self._current = start

    def now(self) -> datetime:
        return self._current

    def advance(self, delta: timedelta | int = 1) -> datetime:
        """Move forward by *delta* (seconds when an int) and return the new time."""
        if isinstance(delta, int):
            delta = timedelta(seconds=delta)
        if delta < timedelta(0):
            raise ValueError("DeterministicClock cannot move backwards")
        self._current += delta
        return self._current
