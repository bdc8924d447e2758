"""
FreezeRateLimiter -- weekly cap on order freezes per employee.

Responsibility:
    Counts an employee's currently Frozen orders whose ``frozen_at`` falls in
    the ISO week (Monday-Sunday) containing a reference date, and compares
    the count with the weekly cap.

Invariants enforced:
    - The week is the week of the freeze action (``frozen_at``), never the
      week of the frozen order's date.  Freezing next week's order today
      uses up this week's allowance.
    - Unfreezing an order returns its slot: only orders still in Frozen
      status are counted.

Failure modes:
    - FreezeLimitExceededError from ``ensure_can_freeze`` when the cap is
      reached.
"""

from datetime import date, datetime, time, timedelta
from uuid import UUID
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from lunch_kernel.domain.working_days import iso_week_bounds
from lunch_kernel.exceptions import FreezeLimitExceededError
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.services.base import BaseService

DEFAULT_MAX_FREEZES_PER_WEEK = 2


class FreezeRateLimiter(BaseService[Order]):
    """Per-employee, per-ISO-week freeze counter."""

    def __init__(
        self,
        session: Session,
        max_per_week: int = DEFAULT_MAX_FREEZES_PER_WEEK,
    ):
        super().__init__(session)
        if max_per_week < 0:
            raise ValueError(f"max_per_week must be >= 0, got {max_per_week}")
        self.max_per_week = max_per_week

    def used(self, employee_id: UUID, reference_date: date, tz: str = "UTC") -> int:
        """Frozen orders whose freeze happened in the week of ``reference_date``."""
        week_start, week_end = iso_week_bounds(reference_date)
        zone = ZoneInfo(tz)
        # Week bounds as UTC instants; frozen_at is always stored in UTC
        lower = datetime.combine(week_start, time.min, tzinfo=zone).astimezone(ZoneInfo("UTC"))
        upper = datetime.combine(
            week_end + timedelta(days=1), time.min, tzinfo=zone
        ).astimezone(ZoneInfo("UTC"))

        stmt = select(func.count(Order.id)).where(
            Order.employee_id == employee_id,
            Order.status == OrderStatus.FROZEN,
            Order.frozen_at.is_not(None),
            Order.frozen_at >= lower,
            Order.frozen_at < upper,
        )
        return self.session.execute(stmt).scalar_one()

    def remaining(self, employee_id: UUID, reference_date: date, tz: str = "UTC") -> int:
        return max(0, self.max_per_week - self.used(employee_id, reference_date, tz))

    def can_freeze(self, employee_id: UUID, reference_date: date, tz: str = "UTC") -> bool:
        return self.remaining(employee_id, reference_date, tz) > 0

    def ensure_can_freeze(self, employee_id: UUID, reference_date: date, tz: str = "UTC") -> int:
        """Return the remaining allowance, or raise if it is used up."""
        used = self.used(employee_id, reference_date, tz)
        if used >= self.max_per_week:
            week_start, week_end = iso_week_bounds(reference_date)
            raise FreezeLimitExceededError(
                str(employee_id),
                used,
                self.max_per_week,
                week_start.isoformat(),
                week_end.isoformat(),
            )
        return self.max_per_week - used
