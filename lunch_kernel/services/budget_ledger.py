"""
BudgetLedger -- atomic debit / credit of a project's lunch budget.

Responsibility:
    The only code path that changes ``Project.budget``.  Every change is a
    single conditional UPDATE paired with an immutable CompanyTransaction
    row carrying the post-change balance.

Architecture position:
    Kernel > Services -- imperative shell.  Called by SubscriptionLifecycle,
    GuestOrders and the FinancialOperations facade.

Invariants enforced:
    - Overdraft floor: a debit applies only if
      ``budget + overdraft_limit >= amount``, evaluated by the database in
      the same UPDATE statement that subtracts the amount.  There is no
      read-check-write window, so two concurrent debits against the same
      project cannot both spend the last of its headroom.
    - Paper trail: the sum of a project's transaction amounts equals the
      movement of its budget.

Failure modes:
    - InvalidAmountError: amount <= 0.
    - ProjectNotFoundError: no such project.
    - InsufficientFundsError: the conditional UPDATE matched nothing.  The
      follow-up read only shapes the message; the refusal was already
      decided by the UPDATE.
"""

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import update
from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.domain.dtos import BudgetInfo, LedgerPosting, TransactionInfo
from lunch_kernel.exceptions import (
    InsufficientFundsError,
    InvalidAmountError,
    ProjectNotFoundError,
)
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.project import Project
from lunch_kernel.models.transaction import CompanyTransaction, TransactionType
from lunch_kernel.services.base import BaseService

logger = get_logger("services.budget_ledger")


class BudgetLedger(BaseService[Project]):
    """
    Atomic debit / credit primitive with overdraft.

    Guarantees:
        - ``debit`` never takes a budget below ``-overdraft_limit``.
        - Each successful call appends exactly one CompanyTransaction.
        - A refused debit changes nothing and records nothing.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def debit(
        self,
        project_id: UUID,
        amount: Decimal,
        description: str,
        *,
        transaction_type: TransactionType = TransactionType.LUNCH_DEDUCTION,
        order_id: UUID | None = None,
        subscription_id: UUID | None = None,
        employee_id: UUID | None = None,
    ) -> LedgerPosting:
        """Subtract ``amount`` if the project has headroom for it."""
        amount = self._positive(amount)
        self.session.flush()

        stmt = (
            update(Project)
            .where(
                Project.id == project_id,
                Project.budget + Project.overdraft_limit >= amount,
            )
            .values(budget=Project.budget - amount)
            .returning(Project.budget, Project.currency_code)
            .execution_options(synchronize_session="fetch")
        )
        row = self.session.execute(stmt).one_or_none()

        if row is None:
            budget = self.get_available(project_id)
            logger.warning(
                "budget_debit_rejected",
                extra={
                    "project_id": str(project_id),
                    "amount": str(amount),
                    "available": str(budget.available),
                },
            )
            raise InsufficientFundsError(
                str(project_id), amount, budget.available, budget.currency_code
            )

        transaction = self._record(
            project_id=project_id,
            amount=-amount,
            balance_after=Decimal(row.budget),
            currency_code=row.currency_code,
            transaction_type=transaction_type,
            description=description,
            order_id=order_id,
            subscription_id=subscription_id,
            employee_id=employee_id,
        )
        logger.info(
            "budget_debited",
            extra={
                "project_id": str(project_id),
                "amount": str(amount),
                "balance_after": str(transaction.balance_after),
                "transaction_type": transaction.type,
            },
        )
        return LedgerPosting(new_balance=transaction.balance_after, transaction=transaction)

    def credit(
        self,
        project_id: UUID,
        amount: Decimal,
        description: str,
        *,
        transaction_type: TransactionType = TransactionType.REFUND,
        order_id: UUID | None = None,
        subscription_id: UUID | None = None,
        employee_id: UUID | None = None,
    ) -> LedgerPosting:
        """Add ``amount`` to the budget.  Credits are unconditional."""
        amount = self._positive(amount)
        self.session.flush()

        stmt = (
            update(Project)
            .where(Project.id == project_id)
            .values(budget=Project.budget + amount)
            .returning(Project.budget, Project.currency_code)
            .execution_options(synchronize_session="fetch")
        )
        row = self.session.execute(stmt).one_or_none()
        if row is None:
            raise ProjectNotFoundError(str(project_id))

        transaction = self._record(
            project_id=project_id,
            amount=amount,
            balance_after=Decimal(row.budget),
            currency_code=row.currency_code,
            transaction_type=transaction_type,
            description=description,
            order_id=order_id,
            subscription_id=subscription_id,
            employee_id=employee_id,
        )
        logger.info(
            "budget_credited",
            extra={
                "project_id": str(project_id),
                "amount": str(amount),
                "balance_after": str(transaction.balance_after),
                "transaction_type": transaction.type,
            },
        )
        return LedgerPosting(new_balance=transaction.balance_after, transaction=transaction)

    def deposit(self, project_id: UUID, amount: Decimal, description: str) -> LedgerPosting:
        """Top up a project's budget."""
        return self.credit(
            project_id,
            amount,
            description,
            transaction_type=TransactionType.DEPOSIT,
        )

    def get_available(self, project_id: UUID) -> BudgetInfo:
        project = self.session.get(Project, project_id, populate_existing=True)
        if project is None:
            raise ProjectNotFoundError(str(project_id))
        return BudgetInfo.from_model(project)

    @staticmethod
    def _positive(amount: Decimal) -> Decimal:
        value = Decimal(str(amount))
        if value <= 0:
            raise InvalidAmountError(value)
        return value

    def _record(
        self,
        *,
        project_id: UUID,
        amount: Decimal,
        balance_after: Decimal,
        currency_code: str,
        transaction_type: TransactionType,
        description: str,
        order_id: UUID | None,
        subscription_id: UUID | None,
        employee_id: UUID | None,
    ) -> TransactionInfo:
        row = CompanyTransaction(
            id=uuid4(),
            project_id=project_id,
            type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            currency_code=currency_code,
            description=description,
            order_id=order_id,
            subscription_id=subscription_id,
            employee_id=employee_id,
            created_at=self._clock.now_utc(),
        )
        self.session.add(row)
        self.session.flush()
        return TransactionInfo.from_model(row)
