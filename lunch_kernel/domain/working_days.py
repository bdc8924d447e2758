"""
WorkingDaysCalendar -- which dates an employee eats on.

Responsibility:
    Pure functions over an employee's working-day mask.  The mask is a
    collection of weekday numbers with 0=Sunday .. 6=Saturday.  A missing or
    empty mask means Monday-Friday.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - None.  A range with start > end is empty, not an error.
"""

from calendar import monthrange
from collections.abc import Iterable, Iterator
from datetime import date, timedelta

DEFAULT_WORKING_DAYS: frozenset[int] = frozenset({1, 2, 3, 4, 5})


def normalize_mask(mask: Iterable[int] | None) -> frozenset[int]:
    """Return the effective mask, falling back to Mon-Fri when empty."""
    if not mask:
        return DEFAULT_WORKING_DAYS
    days = frozenset(int(d) for d in mask)
    invalid = [d for d in days if d < 0 or d > 6]
    if invalid:
        raise ValueError(f"Weekday numbers must be 0..6 (0=Sunday), got {sorted(invalid)}")
    return days


def weekday_number(day: date) -> int:
    """Weekday as 0=Sunday .. 6=Saturday."""
    return day.isoweekday() % 7


def is_working_day(mask: Iterable[int] | None, day: date) -> bool:
    return weekday_number(day) in normalize_mask(mask)


def enumerate_working_days(
    mask: Iterable[int] | None, start: date, end: date
) -> Iterator[date]:
    """Yield every working day in [start, end] in ascending order."""
    days = normalize_mask(mask)
    current = start
    while current <= end:
        if weekday_number(current) in days:
            yield current
        current += timedelta(days=1)


def count_working_days(mask: Iterable[int] | None, start: date, end: date) -> int:
    return sum(1 for _ in enumerate_working_days(mask, start, end))


def next_working_day(mask: Iterable[int] | None, after: date) -> date:
    """First working day strictly after ``after``."""
    days = normalize_mask(mask)
    current = after
    while True:
        current += timedelta(days=1)
        if weekday_number(current) in days:
            return current


def previous_working_day(mask: Iterable[int] | None, before: date) -> date:
    """Last working day strictly before ``before``."""
    days = normalize_mask(mask)
    current = before
    while True:
        current -= timedelta(days=1)
        if weekday_number(current) in days:
            return current


def add_months(day: date, months: int) -> date:
    """Same day ``months`` later, clamped to the end of shorter months."""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    return date(year, month, min(day.day, monthrange(year, month)[1]))


def iso_week_bounds(day: date) -> tuple[date, date]:
    """(Monday, Sunday) of the ISO week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)
