"""
GuestOrders -- one-off lunch orders paid directly from a project's budget.

Responsibility:
    Places orders for visitors who are not employees and cancels them.  Each
    guest order is paid by its own GUEST_ORDER ledger row so a single order
    can later be refunded on its own.

Invariants enforced:
    - Guest orders never belong to a subscription and never count towards a
      subscription's totals.
    - Orders dated today are accepted or cancelled only before the project's
      cutoff.
    - Creating N orders either debits N times or changes nothing (the whole
      request runs in one savepoint).
"""

from datetime import date
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.domain.cutoff import CutoffPolicy
from lunch_kernel.domain.dtos import GuestOrderOutcome, OrderInfo
from lunch_kernel.domain.pricing import ComboPricingTable
from lunch_kernel.exceptions import (
    CutoffPassedError,
    InvalidAmountError,
    OrderNotCancellableError,
    OrderNotFoundError,
    PastDateError,
    ProjectNotFoundError,
)
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.models.project import Project
from lunch_kernel.models.transaction import TransactionType
from lunch_kernel.services.audit_sink import AuditSink, NullAuditSink
from lunch_kernel.services.base import BaseService
from lunch_kernel.services.budget_ledger import BudgetLedger

logger = get_logger("services.guest_orders")


class GuestOrders(BaseService[Order]):
    """Create and cancel guest orders."""

    def __init__(
        self,
        session: Session,
        pricing: ComboPricingTable,
        clock: Clock | None = None,
        *,
        audit_sink: AuditSink | None = None,
        actor_id: UUID | None = None,
    ):
        super().__init__(session)
        self._pricing = pricing
        self._clock = clock or SystemClock()
        self._audit = audit_sink or NullAuditSink()
        self._actor_id = actor_id
        self.ledger = BudgetLedger(session, self._clock)

    def create(
        self,
        project_id: UUID,
        guest_name: str,
        combo_type: str,
        quantity: int,
        order_date: date,
    ) -> GuestOrderOutcome:
        if quantity < 1:
            raise InvalidAmountError(quantity)
        project = self.session.get(Project, project_id)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        price = self._pricing.price_of(combo_type)
        policy = CutoffPolicy(project.cutoff_time, project.timezone)
        now = self._clock.now_utc()

        today = policy.today(now)
        if order_date < today:
            raise PastDateError(order_date.isoformat(), today.isoformat())
        if policy.is_locked(order_date, now):
            raise CutoffPassedError(order_date.isoformat(), policy.cutoff_label, policy.timezone)

        orders = []
        transactions = []
        with self.session.begin_nested():
            for _ in range(quantity):
                order = Order(
                    id=uuid4(),
                    employee_id=None,
                    project_id=project.id,
                    subscription_id=None,
                    combo_type=combo_type,
                    price=price,
                    currency_code=project.currency_code,
                    status=OrderStatus.ACTIVE,
                    order_date=order_date,
                    is_guest_order=True,
                    guest_name=guest_name,
                )
                self.session.add(order)
                self.session.flush()
                posting = self.ledger.debit(
                    project.id,
                    price,
                    f"Guest order {combo_type} for {guest_name} on {order_date.isoformat()}",
                    transaction_type=TransactionType.GUEST_ORDER,
                    order_id=order.id,
                )
                orders.append(OrderInfo.from_model(order))
                transactions.append(posting.transaction)

        total = price * quantity
        self._audit.record(
            "guest_order.created", "Project", project.id, self._actor_id,
            new_value={"guest_name": guest_name, "combo_type": combo_type,
                       "quantity": quantity, "order_date": order_date, "total": total},
        )
        logger.info(
            "guest_orders_created",
            extra={
                "project_id": str(project.id),
                "quantity": quantity,
                "combo_type": combo_type,
                "total_cost": str(total),
            },
        )
        return GuestOrderOutcome(
            orders=tuple(orders), transactions=tuple(transactions), total_cost=total
        )

    def cancel(self, order_id: UUID) -> OrderInfo:
        """Cancel a guest order and refund its price to the project."""
        order = self.session.get(Order, order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        if not order.is_guest_order:
            # Subscription orders are cancelled only through deactivation
            raise OrderNotCancellableError(
                str(order.id), order.status.value, order.order_date.isoformat()
            )

        project = self.session.get(Project, order.project_id)
        policy = CutoffPolicy(project.cutoff_time, project.timezone)
        now = self._clock.now_utc()
        if order.is_terminal or order.order_date < policy.today(now):
            raise OrderNotCancellableError(
                str(order.id), order.status.value, order.order_date.isoformat()
            )
        if policy.is_locked(order.order_date, now):
            raise CutoffPassedError(
                order.order_date.isoformat(), policy.cutoff_label, policy.timezone
            )

        with self.session.begin_nested():
            order.status = OrderStatus.CANCELLED
            self.ledger.credit(
                project.id,
                Decimal(order.price),
                f"Refund for cancelled guest order of {order.guest_name}",
                transaction_type=TransactionType.REFUND,
                order_id=order.id,
            )

        self._audit.record(
            "guest_order.cancelled", "Order", order.id, self._actor_id,
            old_value={"status": OrderStatus.ACTIVE.value},
            new_value={"status": OrderStatus.CANCELLED.value},
        )
        logger.info(
            "guest_order_cancelled",
            extra={"order_id": str(order.id), "refund": str(order.price)},
        )
        return OrderInfo.from_model(order)
