"""
TransactionalFacade -- transaction boundary shared by the lunch services.

Every public facade call goes through ``_run``:

    - binds LogContext (correlation id, operation, employee / subscription)
    - runs the kernel call
    - commits on success (when auto_commit)
    - rolls back and returns a REJECTED result on LunchKernelError
    - rolls back, logs and re-raises anything else
"""

import time
from collections.abc import Callable
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.exceptions import LunchKernelError
from lunch_kernel.logging_config import LogContext, get_logger
from lunch_services.results import LifecycleResult

logger = get_logger("services.facade")


class TransactionalFacade:
    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        *,
        actor_id: UUID | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._actor_id = actor_id
        self._auto_commit = auto_commit

    @property
    def session(self) -> Session:
        return self._session

    def _run(
        self,
        operation: str,
        fn: Callable[[], Any],
        *,
        read_only: bool = False,
        employee_id: UUID | None = None,
        subscription_id: UUID | None = None,
        project_id: UUID | None = None,
    ) -> LifecycleResult:
        with LogContext.bind(
            correlation_id=str(uuid4()),
            operation=operation,
            actor_id=str(self._actor_id) if self._actor_id else None,
            employee_id=str(employee_id) if employee_id else None,
            subscription_id=str(subscription_id) if subscription_id else None,
            project_id=str(project_id) if project_id else None,
        ):
            t0 = time.monotonic()
            try:
                value = fn()
                if self._auto_commit and not read_only:
                    self._session.commit()
            except LunchKernelError as exc:
                if self._auto_commit:
                    self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.info(
                    "lifecycle_operation_rejected",
                    extra={
                        "error_code": exc.code,
                        "error_kind": exc.kind,
                        "reason": str(exc),
                        "duration_ms": duration_ms,
                    },
                )
                return LifecycleResult.rejected(exc)
            except Exception:
                if self._auto_commit:
                    self._session.rollback()
                duration_ms = round((time.monotonic() - t0) * 1000, 2)
                logger.error(
                    "lifecycle_operation_failed",
                    extra={"duration_ms": duration_ms},
                    exc_info=True,
                )
                raise

            duration_ms = round((time.monotonic() - t0) * 1000, 2)
            if not read_only:
                logger.info(
                    "lifecycle_operation_completed",
                    extra={"duration_ms": duration_ms},
                )
            return LifecycleResult.success(value)
