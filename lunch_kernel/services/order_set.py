"""
OrderSet -- the daily orders generated for a subscription.

Responsibility:
    Creates, cancels, re-prices, pauses and relocates subscription orders.
    Knows nothing about money: callers turn the returned counts and totals
    into BudgetLedger calls.

Invariants enforced:
    - Idempotent creation: a date that already carries a non-cancelled
      order for the employee is skipped, so creating the same range twice
      creates the orders once.
    - Past dates (before the project's local "today") never get orders.
    - Guest orders are never touched here.

Failure modes:
    - None of its own; it flushes inside the caller's transaction.
"""

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.domain.working_days import enumerate_working_days
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.employee import Employee
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.models.project import Project
from lunch_kernel.models.subscription import LunchSubscription
from lunch_kernel.services.base import BaseService

logger = get_logger("services.order_set")

_CANCELLABLE = (OrderStatus.ACTIVE, OrderStatus.FROZEN, OrderStatus.PAUSED)
# Statuses whose price is still owed to the subscriber; a frozen order's
# value lives on in its replacement.
PAID_STATUSES = (OrderStatus.ACTIVE, OrderStatus.PAUSED)


def subscription_orders_query(
    employee_id: UUID,
    statuses: Iterable[OrderStatus],
    from_date: date | None = None,
) -> Select:
    """Non-guest orders of one employee in the given statuses, oldest first."""
    stmt = select(Order).where(
        Order.employee_id == employee_id,
        Order.is_guest_order.is_(False),
        Order.status.in_(tuple(statuses)),
    )
    if from_date is not None:
        stmt = stmt.where(Order.order_date >= from_date)
    return stmt.order_by(Order.order_date)


class OrderSet(BaseService[Order]):
    """Batch operations over one employee's subscription orders."""

    def __init__(
        self,
        session: Session,
        pricing: ComboPricingTable,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._pricing = pricing
        self._clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    def create_for_range(
        self,
        subscription: LunchSubscription,
        employee: Employee,
        project: Project,
        start: date,
        end: date,
    ) -> int:
        """Create one Active order per working day in [max(start, today), end]."""
        today = self._clock.today(project.timezone)
        dates = enumerate_working_days(employee.working_days, max(start, today), end)
        return len(self._create_on_dates(subscription, employee, project, dates, today))

    def create_for_custom_dates(
        self,
        subscription: LunchSubscription,
        employee: Employee,
        project: Project,
        dates: Iterable[date],
    ) -> int:
        """Same as create_for_range but over an explicit date set."""
        today = self._clock.today(project.timezone)
        return len(self._create_on_dates(subscription, employee, project, sorted(set(dates)), today))

    def eligible_dates(
        self,
        employee: Employee,
        project: Project,
        dates: Iterable[date],
    ) -> list[date]:
        """Dates from ``dates`` that would get a new order (not past, not taken)."""
        today = self._clock.today(project.timezone)
        candidates = sorted(d for d in set(dates) if d >= today)
        if not candidates:
            return []
        taken = self.occupied_dates(employee.id, candidates[0], candidates[-1])
        return [d for d in candidates if d not in taken]

    def create_replacement(
        self,
        subscription: LunchSubscription,
        frozen_order: Order,
        on_date: date,
    ) -> Order:
        """Active order appended at the end of the window for a frozen one."""
        replacement = Order(
            id=uuid4(),
            employee_id=frozen_order.employee_id,
            project_id=frozen_order.project_id,
            subscription_id=subscription.id,
            combo_type=frozen_order.combo_type,
            price=frozen_order.price,
            currency_code=frozen_order.currency_code,
            status=OrderStatus.ACTIVE,
            order_date=on_date,
            is_guest_order=False,
        )
        self.session.add(replacement)
        self.session.flush()
        return replacement

    def _create_on_dates(
        self,
        subscription: LunchSubscription,
        employee: Employee,
        project: Project,
        dates: Iterable[date],
        today: date,
    ) -> list[Order]:
        candidates = [d for d in dates if d >= today]
        if not candidates:
            return []

        taken = self.occupied_dates(employee.id, candidates[0], candidates[-1])
        price = self._pricing.price_of(subscription.combo_type)

        created: list[Order] = []
        for day in candidates:
            if day in taken:
                continue
            order = Order(
                id=uuid4(),
                employee_id=employee.id,
                project_id=project.id,
                subscription_id=subscription.id,
                combo_type=subscription.combo_type,
                price=price,
                currency_code=project.currency_code,
                status=OrderStatus.ACTIVE,
                order_date=day,
                is_guest_order=False,
            )
            self.session.add(order)
            created.append(order)
            taken.add(day)

        self.session.flush()
        logger.info(
            "orders_created",
            extra={
                "subscription_id": str(subscription.id),
                "employee_id": str(employee.id),
                "count": len(created),
                "skipped": len(candidates) - len(created),
            },
        )
        return created

    # ------------------------------------------------------------------
    # Bulk mutation
    # ------------------------------------------------------------------

    def cancel_future_active(
        self, employee_id: UUID, from_date: date
    ) -> tuple[list[Order], Decimal]:
        """
        Cancel Active, Frozen and Paused orders dated on or after ``from_date``.

        Returns the cancelled orders and the refund total.  Frozen orders are
        cancelled without a refund: what was paid for them is carried by
        their replacement, which is cancelled and refunded on its own.
        """
        orders = self._orders(employee_id, from_date, _CANCELLABLE)
        refund = Decimal("0")
        for order in orders:
            if order.status in PAID_STATUSES:
                refund += Decimal(order.price)
            order.status = OrderStatus.CANCELLED
        self.session.flush()
        logger.info(
            "future_orders_cancelled",
            extra={
                "employee_id": str(employee_id),
                "from_date": from_date,
                "count": len(orders),
                "refund_total": str(refund),
            },
        )
        return orders, refund

    def reprice_future(
        self,
        employee_id: UUID,
        new_combo_type: str,
        new_price: Decimal,
        from_date: date,
    ) -> tuple[int, Decimal]:
        """
        Switch every open order from ``from_date`` on to a new combo.

        Returns (updated_count, price_delta).  The delta covers only orders
        whose price is still owed (Active, Paused); Frozen orders are
        relabelled for display but add nothing.
        """
        orders = self._orders(employee_id, from_date, _CANCELLABLE)
        delta = Decimal("0")
        for order in orders:
            if order.status in PAID_STATUSES:
                delta += Decimal(new_price) - Decimal(order.price)
            order.combo_type = new_combo_type
            order.price = new_price
        self.session.flush()
        return len(orders), delta

    def pause_future(self, employee_id: UUID, from_date: date) -> int:
        """Flip Active orders from ``from_date`` on to Paused."""
        orders = self._orders(employee_id, from_date, (OrderStatus.ACTIVE,))
        for order in orders:
            order.status = OrderStatus.PAUSED
        self.session.flush()
        return len(orders)

    def paused_orders(self, employee_id: UUID) -> list[Order]:
        return self._orders(employee_id, None, (OrderStatus.PAUSED,))

    # ------------------------------------------------------------------
    # Queries used by the lifecycle
    # ------------------------------------------------------------------

    def occupied_dates(self, employee_id: UUID, start: date, end: date) -> set[date]:
        """Dates in [start, end] that already carry a non-cancelled employee order."""
        stmt = select(Order.order_date).where(
            Order.employee_id == employee_id,
            Order.is_guest_order.is_(False),
            Order.status != OrderStatus.CANCELLED,
            Order.order_date >= start,
            Order.order_date <= end,
        )
        return set(self.session.execute(stmt).scalars().all())

    def order_on(self, employee_id: UUID, day: date) -> Order | None:
        """The open (not cancelled, not completed) order on ``day``, if any."""
        stmt = select(Order).where(
            Order.employee_id == employee_id,
            Order.is_guest_order.is_(False),
            Order.order_date == day,
            Order.status.in_(_CANCELLABLE),
        )
        return self.session.execute(stmt).scalars().first()

    def latest_counted_date(self, subscription: LunchSubscription) -> date | None:
        """Date of the last order that counts towards TotalDays."""
        stmt = (
            select(Order.order_date)
            .where(
                Order.subscription_id == subscription.id,
                Order.status.not_in((OrderStatus.CANCELLED, OrderStatus.FROZEN)),
                Order.order_date >= subscription.start_date,
            )
            .order_by(Order.order_date.desc())
            .limit(1)
        )
        return self.session.execute(stmt).scalar_one_or_none()

    def _orders(
        self,
        employee_id: UUID,
        from_date: date | None,
        statuses: tuple[OrderStatus, ...],
    ) -> list[Order]:
        stmt = subscription_orders_query(employee_id, statuses, from_date)
        return list(self.session.execute(stmt).scalars().all())
