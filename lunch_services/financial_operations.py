"""
FinancialOperations -- idempotent budget movements for external callers.

Responsibility:
    Debit, credit and deposit requests arriving from outside (compensation
    payouts, budget top-ups) are often retried by their senders.  Each one
    runs through the IdempotencyStore under a key built from the subject,
    the amount, a timestamp bucket and the description, so a retry inside
    the bucket returns the first result instead of moving money twice.

Result values:
    ``LifecycleResult.value`` is always the JSON-safe form of the
    LedgerPosting, for a first run and a replay alike.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from lunch_config import get_active_config, idempotency_ttl
from lunch_config.schema import LunchSettings
from lunch_kernel.domain.clock import Clock
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.transaction import TransactionType
from lunch_kernel.services.budget_ledger import BudgetLedger
from lunch_kernel.services.idempotency_store import SqlIdempotencyStore
from lunch_kernel.utils.idempotency import financial_operation_key
from lunch_kernel.utils.serialization import json_safe
from lunch_services.base import TransactionalFacade
from lunch_services.results import LifecycleResult

logger = get_logger("services.financial_operations")


class FinancialOperations(TransactionalFacade):
    def __init__(
        self,
        session: Session,
        settings: LunchSettings | None = None,
        clock: Clock | None = None,
        *,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
    ):
        super().__init__(session, clock, actor_id=actor_id, auto_commit=auto_commit)
        self._settings = settings or get_active_config()
        self._ttl = idempotency_ttl(self._settings)
        self._ledger = BudgetLedger(session, self._clock)
        self._store = SqlIdempotencyStore(session, self._clock)

    def debit(
        self,
        project_id: UUID,
        amount: Decimal,
        description: str,
        *,
        subject_id: UUID | None = None,
        transaction_type: TransactionType = TransactionType.ADJUSTMENT,
        employee_id: UUID | None = None,
    ) -> LifecycleResult:
        return self._once(
            "debit",
            project_id,
            subject_id or project_id,
            amount,
            description,
            lambda: self._ledger.debit(
                project_id, amount, description,
                transaction_type=transaction_type, employee_id=employee_id,
            ),
        )

    def credit(
        self,
        project_id: UUID,
        amount: Decimal,
        description: str,
        *,
        subject_id: UUID | None = None,
        transaction_type: TransactionType = TransactionType.ADJUSTMENT,
        employee_id: UUID | None = None,
    ) -> LifecycleResult:
        return self._once(
            "credit",
            project_id,
            subject_id or project_id,
            amount,
            description,
            lambda: self._ledger.credit(
                project_id, amount, description,
                transaction_type=transaction_type, employee_id=employee_id,
            ),
        )

    def deposit(self, project_id: UUID, amount: Decimal, description: str) -> LifecycleResult:
        return self._once(
            "deposit",
            project_id,
            project_id,
            amount,
            description,
            lambda: self._ledger.deposit(project_id, amount, description),
        )

    def budget(self, project_id: UUID) -> LifecycleResult:
        return self._run(
            "get_budget",
            lambda: self._ledger.get_available(project_id),
            read_only=True,
            project_id=project_id,
        )

    def purge_expired_keys(self) -> LifecycleResult:
        return self._run("purge_idempotency_keys", self._store.purge_expired)

    def _once(self, operation, project_id, subject_id, amount, description, fn) -> LifecycleResult:
        key = financial_operation_key(
            f"{operation}:{subject_id}",
            amount,
            self._clock.now_utc(),
            description,
            self._settings.idempotency.bucket_seconds,
        )
        logger.debug("financial_operation_key", extra={"idempotency_key": key})
        return self._run(
            f"financial_{operation}",
            lambda: json_safe(self._store.execute_once(key, self._ttl, fn)),
            project_id=project_id,
        )
