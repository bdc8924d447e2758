"""
Module: lunch_kernel.models.order
Responsibility: ORM persistence for a single meal on a single date, either
    generated by a subscription or placed as a guest order.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (upstream, by OrderSet / SubscriptionLifecycle):
    - At most one non-cancelled subscription order per employee and date.
    - Only ACTIVE, non-guest orders dated today or later can be frozen.
    - A frozen order's replacement_order_id points at the order created on
      the subscription's new end date.  Deleting the replacement (unfreeze)
      nulls the link (ON DELETE SET NULL).
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import TrackedBase, UUIDString, str_enum


class OrderStatus(str, Enum):
    """Order status.

    ACTIVE -> FROZEN -> ACTIVE (unfreeze)
    ACTIVE -> PAUSED -> ACTIVE (subscription pause / resume)
    ACTIVE | FROZEN | PAUSED -> CANCELLED (terminal)
    ACTIVE -> COMPLETED (delivered, terminal)
    """

    ACTIVE = "active"
    PAUSED = "paused"
    FROZEN = "frozen"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


TERMINAL_ORDER_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.COMPLETED})


class Order(TrackedBase):
    """One meal unit on one calendar date."""

    __tablename__ = "orders"

    __table_args__ = (
        Index("idx_order_employee_date", "employee_id", "order_date"),
        Index("idx_order_subscription", "subscription_id"),
        Index("idx_order_project_date", "project_id", "order_date"),
        Index("idx_order_frozen_at", "employee_id", "frozen_at"),
    )

    # NULL for guest orders
    employee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    subscription_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lunch_subscriptions.id"),
        nullable=True,
    )

    combo_type: Mapped[str] = mapped_column(String(50), nullable=False)
    price: Mapped[Decimal] = mapped_column(nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        str_enum(OrderStatus),
        nullable=False,
        default=OrderStatus.ACTIVE,
    )

    order_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_guest_order: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    guest_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Freeze bookkeeping; frozen_at drives the weekly freeze counter
    frozen_at: Mapped[datetime | None] = mapped_column(nullable=True)
    frozen_reason: Mapped[str | None] = mapped_column(String(500), nullable=True)

    replacement_order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id", ondelete="SET NULL"),
        nullable=True,
    )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_ORDER_STATUSES

    def __repr__(self) -> str:
        who = self.guest_name if self.is_guest_order else self.employee_id
        return f"<Order {who} {self.order_date} {self.combo_type} ({self.status})>"
