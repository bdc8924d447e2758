"""
AuditSink -- fire-and-forget record of lifecycle actions.

Responsibility:
    Lifecycle services call ``record`` after each state transition.  They
    do not depend on the result: a sink that fails logs the failure and
    returns, and the operation it describes carries on.

Implementations:
    SqlAuditSink   -- appends an AuditLogEntry row inside a SAVEPOINT, so a
                      failed insert cannot poison the caller's transaction.
    NullAuditSink  -- discards everything.
"""

from typing import Any, Protocol, runtime_checkable
from uuid import UUID, uuid4

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.audit_log import AuditLogEntry
from lunch_kernel.utils.serialization import json_safe

logger = get_logger("services.audit_sink")


@runtime_checkable
class AuditSink(Protocol):
    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: UUID | str | None = None,
        actor_id: UUID | None = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> None: ...


class NullAuditSink:
    """Sink that drops every record."""

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: UUID | str | None = None,
        actor_id: UUID | None = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> None:
        return None


class SqlAuditSink:
    """Sink that appends AuditLogEntry rows in the caller's session."""

    def __init__(self, session: Session, clock: Clock | None = None):
        self.session = session
        self._clock = clock or SystemClock()

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: UUID | str | None = None,
        actor_id: UUID | None = None,
        old_value: Any = None,
        new_value: Any = None,
    ) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(
                    AuditLogEntry(
                        id=uuid4(),
                        actor_id=actor_id,
                        action=action,
                        entity_type=entity_type,
                        entity_id=str(entity_id) if entity_id is not None else None,
                        old_value=json_safe(old_value),
                        new_value=json_safe(new_value),
                        created_at=self._clock.now_utc(),
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "audit_record_failed",
                extra={"action": action, "entity_type": entity_type},
                exc_info=True,
            )
