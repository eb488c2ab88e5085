"""
Clock -- injectable source of the current time.

Services and the rate-sync propagator stamp ``voided_at``, ``started_at``
and ``completed_at`` from a Clock handed to their constructor.  Pure
engines take dates as arguments and never read a clock.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


class Clock(ABC):
    """Returns timezone-aware UTC datetimes."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().date()

    def current_week_start(self) -> date:
        """Monday of the settlement week containing today."""
        today = self.today()
        return today - timedelta(days=today.weekday())


class SystemClock(Clock):
    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """Frozen clock for tests; moves only when ``advance`` is called."""

    def __init__(self, fixed_time: datetime | None = None):
        self._now = fixed_time or datetime(2025, 1, 6, 12, 0, tzinfo=timezone.utc)

    def now(self) -> datetime:
        return self._now

    def advance(self, seconds: int = 1) -> None:
        self._now += timedelta(seconds=seconds)
