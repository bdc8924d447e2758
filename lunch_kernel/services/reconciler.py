"""
SubscriptionReconciler -- recompute a subscription's summary from its orders.

Responsibility:
    Derives TotalDays, TotalPrice and RemainingDays from the order set and
    writes the first two back onto the subscription row.  Every lifecycle
    transition ends with ``apply`` so the cached columns cannot drift.

Counting rules:
    - TotalDays / TotalPrice: orders of the subscription dated within
      [start_date, end_date] whose status is neither Cancelled nor Frozen.
      A frozen order is superseded by its replacement, so a freeze leaves
      both numbers unchanged.
    - RemainingDays: orders dated today or later in Active, Frozen or
      Paused status.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import func, select

from lunch_kernel.domain.dtos import ReconciledTotals
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.order import Order, OrderStatus
from lunch_kernel.models.subscription import LunchSubscription
from lunch_kernel.services.base import BaseService

logger = get_logger("services.reconciler")

_UNCOUNTED = (OrderStatus.CANCELLED, OrderStatus.FROZEN)
_UPCOMING = (OrderStatus.ACTIVE, OrderStatus.FROZEN, OrderStatus.PAUSED)


class SubscriptionReconciler(BaseService[LunchSubscription]):
    """Single source of truth for a subscription's derived totals."""

    def recompute(self, subscription: LunchSubscription, today: date) -> ReconciledTotals:
        self.session.flush()

        counted = select(
            func.count(Order.id),
            func.coalesce(func.sum(Order.price), 0),
        ).where(
            Order.subscription_id == subscription.id,
            Order.order_date >= subscription.start_date,
            Order.order_date <= subscription.end_date,
            Order.status.not_in(_UNCOUNTED),
        )
        total_days, total_price = self.session.execute(counted).one()

        remaining = select(func.count(Order.id)).where(
            Order.subscription_id == subscription.id,
            Order.order_date >= today,
            Order.status.in_(_UPCOMING),
        )
        remaining_days = self.session.execute(remaining).scalar_one()

        return ReconciledTotals(
            total_days=int(total_days),
            total_price=Decimal(str(total_price)),
            remaining_days=int(remaining_days),
        )

    def apply(self, subscription: LunchSubscription, today: date) -> ReconciledTotals:
        """Recompute and store TotalDays / TotalPrice on the subscription."""
        totals = self.recompute(subscription, today)
        if (
            subscription.total_days != totals.total_days
            or Decimal(subscription.total_price or 0) != totals.total_price
        ):
            logger.debug(
                "subscription_totals_reconciled",
                extra={
                    "subscription_id": str(subscription.id),
                    "total_days": totals.total_days,
                    "total_price": str(totals.total_price),
                    "previous_total_days": subscription.total_days,
                },
            )
        subscription.total_days = totals.total_days
        subscription.total_price = totals.total_price
        self.session.flush()
        return totals
