"""
Module: lunch_kernel.models.transaction
Responsibility: ORM persistence for the append-only budget ledger.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: db/immutability.py rejects UPDATE and DELETE.
    - Created only by BudgetLedger, in the same flush as the budget change.
    - For a project, the sum of amount equals budget minus its initial value.

Audit relevance:
    balance_after is the project budget right after this row's change,
    as returned by the conditional UPDATE that applied it.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import Base, UUIDString, str_enum


class TransactionType(str, Enum):
    """Why the budget moved."""

    DEPOSIT = "deposit"
    LUNCH_DEDUCTION = "lunch_deduction"
    GUEST_ORDER = "guest_order"
    REFUND = "refund"
    ADJUSTMENT = "adjustment"


class CompanyTransaction(Base):
    """Immutable record of one budget mutation (amount is signed)."""

    __tablename__ = "company_transactions"

    __table_args__ = (
        Index("idx_transaction_project", "project_id", "created_at"),
    )

    project_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("projects.id"),
        nullable=False,
    )

    type: Mapped[TransactionType] = mapped_column(
        str_enum(TransactionType),
        nullable=False,
    )

    # Negative for debits, positive for credits
    amount: Mapped[Decimal] = mapped_column(nullable=False)
    balance_after: Mapped[Decimal] = mapped_column(nullable=False)
    currency_code: Mapped[str] = mapped_column(String(3), nullable=False)

    description: Mapped[str] = mapped_column(String(500), nullable=False)

    order_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id"),
        nullable=True,
    )

    subscription_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("lunch_subscriptions.id"),
        nullable=True,
    )

    employee_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("employees.id"),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    @property
    def is_debit(self) -> bool:
        return self.amount < 0

    def __repr__(self) -> str:
        return f"<CompanyTransaction {self.type} {self.amount} -> {self.balance_after}>"
