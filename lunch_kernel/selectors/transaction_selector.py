"""
TransactionSelector -- read access to the company_transactions ledger.

The ledger is append-only, so its sum for a project always equals the
movement of that project's budget since it was opened.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select

from lunch_kernel.domain.dtos import TransactionInfo
from lunch_kernel.models.transaction import CompanyTransaction, TransactionType
from lunch_kernel.selectors.base import BaseSelector


class TransactionSelector(BaseSelector[CompanyTransaction]):
    """Queries over a project's ledger rows."""

    def list_for_project(
        self,
        project_id: UUID,
        *,
        types: tuple[TransactionType, ...] | None = None,
        limit: int | None = None,
    ) -> list[TransactionInfo]:
        """Ledger rows of a project, oldest first."""
        stmt = select(CompanyTransaction).where(CompanyTransaction.project_id == project_id)
        if types:
            stmt = stmt.where(CompanyTransaction.type.in_(types))
        stmt = stmt.order_by(CompanyTransaction.created_at, CompanyTransaction.id)
        if limit is not None:
            stmt = stmt.limit(limit)
        return [TransactionInfo.from_model(t) for t in self.session.execute(stmt).scalars()]

    def sum_for_project(
        self,
        project_id: UUID,
        *,
        types: tuple[TransactionType, ...] | None = None,
    ) -> Decimal:
        """Signed sum of a project's transaction amounts."""
        stmt = select(func.coalesce(func.sum(CompanyTransaction.amount), 0)).where(
            CompanyTransaction.project_id == project_id
        )
        if types:
            stmt = stmt.where(CompanyTransaction.type.in_(types))
        return Decimal(str(self.session.execute(stmt).scalar_one()))

    def count_for_subscription(self, subscription_id: UUID) -> int:
        stmt = select(func.count(CompanyTransaction.id)).where(
            CompanyTransaction.subscription_id == subscription_id
        )
        return self.session.execute(stmt).scalar_one()
