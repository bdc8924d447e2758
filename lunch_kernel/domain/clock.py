"""
Clock -- Deterministic time abstraction.

Responsibility:
    Provides an injectable clock so that domain and service code never call
    ``datetime.now()`` or ``date.today()`` directly.  Every "is this order in
    the past", "has the cutoff passed" and "which week is this freeze in"
    decision reads time from here.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O (except SystemClock,
    the one sanctioned I/O boundary for time).

Failure modes:
    - ZoneInfoNotFoundError from ``today()`` / ``local_now()`` for an unknown
      timezone name.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (as SQLite hands them back) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_date(value: datetime, tz: str) -> date:
    """Calendar date of an instant in the given timezone."""
    return ensure_utc(value).astimezone(ZoneInfo(tz)).date()


class Clock(ABC):
    """
    Abstract clock interface.

    Contract:
        All services that need current time receive a Clock instance via
        constructor injection.

    Guarantees:
        - ``now()`` returns a timezone-aware ``datetime``.
        - ``now_utc()`` returns a UTC-normalized ``datetime``.
        - ``today(tz)`` is the calendar date in ``tz`` at ``now()``.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Get the current time."""
        ...

    @abstractmethod
    def now_utc(self) -> datetime:
        """Get the current UTC time."""
        ...

    def local_now(self, tz: str) -> datetime:
        """Current wall-clock time in ``tz``."""
        return self.now_utc().astimezone(ZoneInfo(tz))

    def today(self, tz: str) -> date:
        """Current calendar date in ``tz`` (a project's local date)."""
        return self.local_now(tz).date()


class SystemClock(Clock):
    """
    Production clock that returns actual system time.

    Guarantees:
        Returns timezone-aware UTC ``datetime`` instances.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Test clock with controlled time.

    Guarantees:
        - ``now()`` returns the same value on repeated calls until
          ``advance()`` or ``set_time()`` is called.
        - ``tick()`` advances by exactly 1 second and returns the new time.
    """

    def __init__(self, fixed_time: datetime | None = None):
        """
        Args:
            fixed_time: Starting instant.  Defaults to 2026-01-05 03:00 UTC,
                a Monday morning before a 10:30 cutoff in Asia/Dushanbe.
        """
        self._fixed_time = fixed_time or datetime(
            2026, 1, 5, 3, 0, 0, tzinfo=timezone.utc
        )
        self._advance_seconds = 0

    def now(self) -> datetime:
        return self._fixed_time + timedelta(seconds=self._advance_seconds)

    def now_utc(self) -> datetime:
        return self.now().astimezone(timezone.utc)

    def set_time(self, time: datetime) -> None:
        """Set the clock to a specific time."""
        self._fixed_time = time
        self._advance_seconds = 0

    def set_local(self, day: date, hour: int, minute: int, tz: str) -> None:
        """Set the clock to a wall-clock time in ``tz``."""
        self.set_time(
            datetime(day.year, day.month, day.day, hour, minute, tzinfo=ZoneInfo(tz))
        )

    def advance(self, seconds: int = 1) -> None:
        """Advance the clock by the specified seconds."""
        self._advance_seconds += seconds

    def advance_days(self, days: int) -> None:
        self.advance(days * 86400)

    def tick(self) -> datetime:
        """Advance by 1 second and return new time."""
        self.advance(1)
        return self.now()
