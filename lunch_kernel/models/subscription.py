"""
Module: lunch_kernel.models.subscription
Responsibility: ORM persistence for an employee's recurring lunch
    subscription and its cached summary fields.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - One row per employee (uq_subscription_employee).  A completed
      subscription is reused by Reactivate instead of inserting a new row.
    - total_days / total_price are caches.  SubscriptionReconciler rewrites
      them from the order set after every mutation; nothing else assigns them.
    - end_date moves by one working day per freeze / unfreeze and by the
      paused calendar days on resume.

Failure modes:
    - IntegrityError on a second row for the same employee.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Boolean, Date, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import TrackedBase, UUIDString, str_enum


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle status.

    ACTIVE <-> PAUSED, either -> COMPLETED (terminal until Reactivate).
    """

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"


class LunchSubscription(TrackedBase):
    """One employee's subscription to a recurring meal combo."""

    __tablename__ = "lunch_subscriptions"

    __table_args__ = (
        UniqueConstraint("employee_id", name="uq_subscription_employee"),
        Index("idx_subscription_project", "project_id"),
        Index("idx_subscription_status", "status"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=False,
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    combo_type: Mapped[str] = mapped_column(String(50), nullable=False)

    status: Mapped[SubscriptionStatus] = mapped_column(
        str_enum(SubscriptionStatus),
        nullable=False,
        default=SubscriptionStatus.ACTIVE,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Inclusive window
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # End date as requested, before any freeze or pause shifted it
    original_end_date: Mapped[date] = mapped_column(Date, nullable=False)

    # Derived caches, rewritten by SubscriptionReconciler
    total_days: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_price: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    schedule_type: Mapped[str] = mapped_column(String(20), nullable=False)

    # ISO dates for CUSTOM schedules
    custom_days: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    frozen_days_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    paused_at: Mapped[datetime | None] = mapped_column(nullable=True)
    paused_days_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_completed(self) -> bool:
        return self.status == SubscriptionStatus.COMPLETED

    def __repr__(self) -> str:
        return (
            f"<LunchSubscription {self.employee_id} {self.combo_type} "
            f"{self.start_date}..{self.end_date} ({self.status})>"
        )
