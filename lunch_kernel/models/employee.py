"""
Module: lunch_kernel.models.employee
Responsibility: ORM persistence for the subset of employee data the
    subscription engine reads: working-day mask, service type, activity flags
    and project assignment.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced (upstream, by SubscriptionLifecycle):
    - An employee holds at most one non-completed lunch subscription.
    - An employee cannot hold an active lunch subscription while their
      service_type is COMPENSATION.

The employee row doubles as the per-employee lock: every lifecycle
transition selects it FOR UPDATE before touching the subscription or orders.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import JSON, Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import TrackedBase, UUIDString, str_enum


class ServiceType(str, Enum):
    """Which benefit the employee receives. None means not yet chosen."""

    LUNCH = "lunch"
    COMPENSATION = "compensation"


class Employee(TrackedBase):
    """Employee as seen by the lunch subscription engine."""

    __tablename__ = "employees"

    __table_args__ = (
        Index("idx_employee_project", "project_id"),
    )

    full_name: Mapped[str] = mapped_column(String(255), nullable=False)

    project_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=True,
    )

    service_type: Mapped[ServiceType | None] = mapped_column(
        str_enum(ServiceType),
        nullable=True,
    )

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Soft delete marker
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    # Weekday numbers, 0=Sunday .. 6=Saturday; NULL or empty means Mon-Fri
    working_days: Mapped[list[int] | None] = mapped_column(JSON, nullable=True)

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def __repr__(self) -> str:
        return f"<Employee {self.full_name} ({self.service_type})>"
