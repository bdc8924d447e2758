"""Pure domain layer: clock, calendar, pricing, cutoff and DTOs."""

from lunch_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from lunch_kernel.domain.cutoff import CutoffPolicy
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.domain.schedule import ScheduleType
from lunch_kernel.domain.working_days import (
    DEFAULT_WORKING_DAYS,
    add_months,
    count_working_days,
    enumerate_working_days,
    is_working_day,
    iso_week_bounds,
    next_working_day,
    previous_working_day,
)

__all__ = [
    "Clock",
    "ComboPricingTable",
    "CutoffPolicy",
    "DEFAULT_WORKING_DAYS",
    "DeterministicClock",
    "ScheduleType",
    "SystemClock",
    "add_months",
    "count_working_days",
    "enumerate_working_days",
    "is_working_day",
    "iso_week_bounds",
    "next_working_day",
    "previous_working_day",
]
