"""
SubscriptionSelector -- read queries over subscriptions and their orders.

Responsibility:
    GetById / GetByEmployeeId, the weekly freeze allowance, combo-change
    price previews and order listings.  Every result is a frozen DTO.

Invariants enforced:
    - Read-only: no add, delete, flush or commit.
    - Freeze usage is counted by FreezeRateLimiter.used, the same query the
      lifecycle checks against, so the preview and the enforcement agree.

Failure modes:
    - get_by_id / get_by_employee_id return None when nothing matches.
    - get_freeze_info / get_price_preview raise NotFound errors, since they
      have nothing meaningful to return without the entity.
"""

from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.domain.cutoff import CutoffPolicy
from lunch_kernel.domain.dtos import FreezeInfo, OrderInfo, PricePreview, SubscriptionInfo
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.domain.working_days import iso_week_bounds
from lunch_kernel.exceptions import (
    EmployeeNotFoundError,
    ProjectNotFoundError,
    SubscriptionNotFoundError,
)
from lunch_kernel.models.employee import Employee
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.models.project import Project
from lunch_kernel.models.subscription import LunchSubscription
from lunch_kernel.selectors.base import BaseSelector
from lunch_kernel.services.freeze_rate_limiter import (
    DEFAULT_MAX_FREEZES_PER_WEEK,
    FreezeRateLimiter,
)
from lunch_kernel.services.order_set import PAID_STATUSES, subscription_orders_query

RECENT_FROZEN_LIMIT = 10

_UPCOMING = (OrderStatus.ACTIVE, OrderStatus.FROZEN, OrderStatus.PAUSED)


class SubscriptionSelector(BaseSelector[LunchSubscription]):
    """Read-side access to lunch subscriptions."""

    def __init__(
        self,
        session,
        clock: Clock | None = None,
        *,
        max_freezes_per_week: int = DEFAULT_MAX_FREEZES_PER_WEEK,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._limiter = FreezeRateLimiter(session, max_freezes_per_week)

    def get_by_id(self, subscription_id: UUID) -> SubscriptionInfo | None:
        subscription = self.session.get(LunchSubscription, subscription_id)
        return SubscriptionInfo.from_model(subscription) if subscription else None

    def get_by_employee_id(self, employee_id: UUID) -> SubscriptionInfo | None:
        subscription = self.session.execute(
            select(LunchSubscription).where(LunchSubscription.employee_id == employee_id)
        ).scalar_one_or_none()
        return SubscriptionInfo.from_model(subscription) if subscription else None

    def remaining_days(self, subscription_id: UUID) -> int:
        """Orders dated today or later that are still Active, Frozen or Paused."""
        subscription = self._require(subscription_id)
        project = self.session.get(Project, subscription.project_id)
        today = self._clock.today(project.timezone)
        stmt = select(func.count(Order.id)).where(
            Order.subscription_id == subscription.id,
            Order.order_date >= today,
            Order.status.in_(_UPCOMING),
        )
        return self.session.execute(stmt).scalar_one()

    def get_freeze_info(self, employee_id: UUID) -> FreezeInfo:
        """This week's freeze usage and the employee's latest frozen orders."""
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        tz = self._timezone_of(employee)
        today = self._clock.today(tz)
        week_start, week_end = iso_week_bounds(today)

        used = self._limiter.used(employee.id, today, tz)
        limit = self._limiter.max_per_week
        frozen = self.session.execute(
            select(Order)
            .where(Order.employee_id == employee.id, Order.status == OrderStatus.FROZEN)
            .order_by(Order.frozen_at.desc())
            .limit(RECENT_FROZEN_LIMIT)
        ).scalars().all()

        return FreezeInfo(
            employee_id=employee.id,
            used=used,
            limit=limit,
            remaining=max(0, limit - used),
            week_start=week_start,
            week_end=week_end,
            frozen_orders=tuple(OrderInfo.from_model(o) for o in frozen),
        )

    def get_price_preview(
        self,
        subscription_id: UUID,
        new_combo_type: str,
        pricing: ComboPricingTable,
    ) -> PricePreview:
        """
        What switching to ``new_combo_type`` would cost.

        Affected orders are the ones a combo change re-bills: Active or
        Paused orders from the first modifiable date on.
        """
        subscription = self._require(subscription_id)
        project = self.session.get(Project, subscription.project_id)
        if project is None:
            raise ProjectNotFoundError(str(subscription.project_id))
        new_price = pricing.price_of(new_combo_type)
        current_price = pricing.price_of(subscription.combo_type)
        policy = CutoffPolicy(project.cutoff_time, project.timezone)

        affected = self.session.execute(
            subscription_orders_query(
                subscription.employee_id,
                PAID_STATUSES,
                policy.first_modifiable_date(self._clock.now_utc()),
            )
        ).scalars().all()
        impact = sum((new_price - Decimal(o.price) for o in affected), Decimal("0"))

        return PricePreview(
            subscription_id=subscription.id,
            current_combo=subscription.combo_type,
            new_combo=new_combo_type,
            current_price=current_price,
            new_price=new_price,
            price_difference=new_price - current_price,
            affected_orders=len(affected),
            total_impact=impact,
        )

    def list_orders(
        self,
        employee_id: UUID,
        start_date: date | None = None,
        end_date: date | None = None,
        *,
        statuses: tuple[OrderStatus, ...] | None = None,
    ) -> list[OrderInfo]:
        stmt = select(Order).where(Order.employee_id == employee_id)
        if start_date is not None:
            stmt = stmt.where(Order.order_date >= start_date)
        if end_date is not None:
            stmt = stmt.where(Order.order_date <= end_date)
        if statuses:
            stmt = stmt.where(Order.status.in_(statuses))
        stmt = stmt.order_by(Order.order_date, Order.created_at)
        return [OrderInfo.from_model(o) for o in self.session.execute(stmt).scalars()]

    def _require(self, subscription_id: UUID) -> LunchSubscription:
        subscription = self.session.get(LunchSubscription, subscription_id)
        if subscription is None:
            raise SubscriptionNotFoundError(str(subscription_id))
        return subscription

    def _timezone_of(self, employee: Employee) -> str:
        project = (
            self.session.get(Project, employee.project_id)
            if employee.project_id is not None else None
        )
        return project.timezone if project is not None else "UTC"
