"""
ORM-Level Immutability Enforcement for ledger and audit rows.

===============================================================================
WHY THIS EXISTS
===============================================================================

Every change to a project's budget is paired with a CompanyTransaction row,
and every lifecycle transition may leave an AuditLogEntry behind.  Both are
the paper trail: the sum of a project's transaction amounts must equal the
movement of its budget.  A row that can be edited after the fact breaks that
equation silently, so corrections are new rows (REFUND, ADJUSTMENT), never
edits.

===============================================================================
HOW IT WORKS
===============================================================================

    session.flush()
         |
         v
    [before_update event] --> _reject_*_update() --> ImmutabilityViolationError
         |
         v
    [before_delete event] --> _reject_*_delete() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable          | Why
--------------------|-------------------------|--------------------------------
CompanyTransaction  | ALWAYS (from creation)  | Budget paper trail
AuditLogEntry       | ALWAYS (from creation)  | Audit trail

===============================================================================
USAGE
===============================================================================

    from lunch_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event

from lunch_kernel.exceptions import ImmutabilityViolationError
from lunch_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _block(entity_type: str, target, operation: str, reason: str) -> None:
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "db_operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _reject_transaction_update(mapper, connection, target):
    """Ledger rows are append-only."""
    _block(
        "CompanyTransaction", target, "UPDATE",
        "Company transactions are immutable; post a correcting transaction instead",
    )


def _reject_transaction_delete(mapper, connection, target):
    _block(
        "CompanyTransaction", target, "DELETE",
        "Company transactions cannot be deleted",
    )


def _reject_audit_entry_update(mapper, connection, target):
    _block(
        "AuditLogEntry", target, "UPDATE",
        "Audit log entries are immutable and cannot be modified",
    )


def _reject_audit_entry_delete(mapper, connection, target):
    _block(
        "AuditLogEntry", target, "DELETE",
        "Audit log entries cannot be deleted",
    )


def _listeners():
    from lunch_kernel.models.audit_log import AuditLogEntry
    from lunch_kernel.models.transaction import CompanyTransaction

    return [
        (CompanyTransaction, "before_update", _reject_transaction_update),
        (CompanyTransaction, "before_delete", _reject_transaction_delete),
        (AuditLogEntry, "before_update", _reject_audit_entry_update),
        (AuditLogEntry, "before_delete", _reject_audit_entry_delete),
    ]


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners.

    Call once after the models are importable and before any database
    operation.  Registering twice is a no-op.
    """
    for target, event_name, fn in _listeners():
        if not event.contains(target, event_name, fn):
            event.listen(target, event_name, fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: only for tests that must violate immutability on purpose.
    """
    for target, event_name, fn in _listeners():
        if event.contains(target, event_name, fn):
            event.remove(target, event_name, fn)
