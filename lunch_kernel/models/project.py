"""
Module: lunch_kernel.models.project
Responsibility: ORM persistence for the project that owns a lunch budget.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - budget may go negative, but no debit may take it below -overdraft_limit.
      The ORM does not check this; BudgetLedger.debit applies it inside a
      single conditional UPDATE.
    - budget is only ever changed through BudgetLedger, and every change is
      paired with a CompanyTransaction row.

Failure modes:
    - InsufficientFundsError (upstream) when a debit has no headroom.
"""

from datetime import time
from decimal import Decimal

from sqlalchemy import String, Time
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import TrackedBase

DEFAULT_CURRENCY = "TJS"
DEFAULT_TIMEZONE = "Asia/Dushanbe"
DEFAULT_CUTOFF_TIME = time(10, 30)


class Project(TrackedBase):
    """
    Budget holder for a group of employees.

    Guarantees:
        - available == budget + overdraft_limit.
        - cutoff_time is interpreted in the project's own timezone.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Shared mutable balance; may be negative down to -overdraft_limit
    budget: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    overdraft_limit: Mapped[Decimal] = mapped_column(
        nullable=False,
        default=Decimal("0"),
    )

    currency_code: Mapped[str] = mapped_column(
        String(3),
        nullable=False,
        default=DEFAULT_CURRENCY,
    )

    # Daily deadline after which today's orders are locked
    cutoff_time: Mapped[time] = mapped_column(
        Time,
        nullable=False,
        default=DEFAULT_CUTOFF_TIME,
    )

    timezone: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        default=DEFAULT_TIMEZONE,
    )

    @property
    def available(self) -> Decimal:
        return self.budget + self.overdraft_limit

    def __repr__(self) -> str:
        return f"<Project {self.name}: {self.budget} {self.currency_code}>"
