"""
CutoffPolicy -- daily deadline for changing today's orders.

Each project has a cutoff wall-clock time in its own timezone.  Before it,
today's orders can still be frozen, unfrozen, cancelled or re-priced; after
it, the first date that can be changed is tomorrow.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo

from lunch_kernel.domain.clock import ensure_utc


@dataclass(frozen=True)
class CutoffPolicy:
    """A project's cutoff time bound to its timezone."""

    cutoff_time: time
    timezone: str

    def local_now(self, now: datetime) -> datetime:
        return ensure_utc(now).astimezone(ZoneInfo(self.timezone))

    def today(self, now: datetime) -> date:
        return self.local_now(now).date()

    def is_cutoff_passed(self, now: datetime) -> bool:
        """True once the local wall clock is at or past the cutoff."""
        local = self.local_now(now)
        return local.time().replace(tzinfo=None) >= self.cutoff_time

    def first_modifiable_date(self, now: datetime) -> date:
        """Today before the cutoff, otherwise tomorrow."""
        today = self.today(now)
        if self.is_cutoff_passed(now):
            return today + timedelta(days=1)
        return today

    def is_locked(self, order_date: date, now: datetime) -> bool:
        """True if ``order_date`` is today and the cutoff has passed."""
        return order_date == self.today(now) and self.is_cutoff_passed(now)

    @property
    def cutoff_label(self) -> str:
        return self.cutoff_time.strftime("%H:%M")


def parse_cutoff_time(value: str) -> time:
    """Parse "HH:MM" into a time."""
    hours, _, minutes = value.partition(":")
    return time(int(hours), int(minutes or 0))
