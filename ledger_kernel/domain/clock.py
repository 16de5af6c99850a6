"""
Injectable time source.

"Today" decides passive rollover, stale projects and every due-today
counter, so no scheduler or aggregator reads the wall clock directly: each
takes a ``Clock`` in its constructor.  ``SystemClock`` is the only place
that does.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone

_DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """``now()`` is timezone-aware; ``today()`` is its UTC calendar date."""

    @abstractmethod
    def now(self) -> datetime: ...

    def today(self) -> date:
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Frozen clock for tests.  Moves only when ``advance`` is called."""

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or _DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: float = 1, days: int = 0) -> datetime:
        self._now += timedelta(days=days, seconds=seconds)
        return self._now
