"""
Clock -- injectable source of "now" and "today".

Services never call ``datetime.now()`` or ``date.today()``.  "Today" decides
whether an end date is acceptable, which bids the expiration sweep picks up,
and which year goes into a bid number, so every one of those paths takes a
Clock and is reproducible under test.

All clocks speak UTC; ``today()`` is the UTC calendar date.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone


def _require_aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        raise ValueError(f"Clock times must be timezone-aware, got {moment!r}")
    return moment


class Clock(ABC):
    """Current time for services; ``now()`` is always timezone-aware."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def today(self) -> date:
        return self.now().astimezone(timezone.utc).date()


class SystemClock(Clock):
    """Wall-clock time."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class FixedClock(Clock):
    """
    A clock pinned to one instant.

    The expiration sweep runs its per-bid work on a FixedClock at the run's
    start time so every history entry of a run carries the same timestamp.
    """

    def __init__(self, moment: datetime):
        self._moment = _require_aware(moment)

    def now(self) -> datetime:
        return self._moment


class DeterministicClock(FixedClock):
    """
    Test clock, 2025-06-15 12:00 UTC unless told otherwise.

    Time moves only through ``advance``, ``advance_days`` and ``set_time``.
    """

    DEFAULT_TIME = datetime(2025, 6, 15, 12, 0, 0, tzinfo=timezone.utc)

    def __init__(self, fixed_time: datetime | None = None):
        super().__init__(fixed_time or self.DEFAULT_TIME)

    def set_time(self, time: datetime) -> None:
        self._moment = _require_aware(time)

    def advance(self, seconds: int = 1) -> None:
        self._moment += timedelta(seconds=seconds)

    def advance_days(self, days: int) -> None:
        self._moment += timedelta(days=days)
