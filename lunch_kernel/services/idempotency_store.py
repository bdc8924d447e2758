"""
IdempotencyStore -- run an operation at most once per key.

Responsibility:
    ``execute_once(key, ttl, fn)`` returns the stored result of an earlier
    run with the same key while that record is live, and otherwise calls
    ``fn`` and stores its (JSON-safe) result with an expiry.

Invariants enforced:
    - One record per key (uq_idempotency_key).  An expired record is
      replaced in place.
    - The record is written in the same transaction as ``fn``'s effects, so
      a rollback forgets both and a retry runs again.

Failure modes:
    - Exceptions raised by ``fn`` propagate and nothing is stored.
"""

from collections.abc import Callable
from datetime import timedelta
from typing import Any, Protocol, TypeVar
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.orm import Session

from lunch_kernel.domain.clock import Clock, SystemClock, ensure_utc
from lunch_kernel.logging_config import get_logger
from lunch_kernel.models.idempotency import IdempotencyRecord
from lunch_kernel.services.base import BaseService
from lunch_kernel.utils.serialization import json_safe

logger = get_logger("services.idempotency")

T = TypeVar("T")

DEFAULT_TTL = timedelta(hours=24)


class IdempotencyStore(Protocol):
    def execute_once(self, key: str, ttl: timedelta, fn: Callable[[], Any]) -> Any: ...


class SqlIdempotencyStore(BaseService[IdempotencyRecord]):
    """IdempotencyStore backed by the idempotency_records table."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def execute_once(
        self,
        key: str,
        ttl: timedelta,
        fn: Callable[[], T],
    ) -> T | Any:
        """
        Run ``fn`` unless a live record for ``key`` exists.

        Returns ``fn()``'s result on the first call.  Repeat calls within
        ``ttl`` return the JSON-safe form of that result as stored.
        """
        now = self._clock.now_utc()
        record = self.session.execute(
            select(IdempotencyRecord)
            .where(IdempotencyRecord.key == key)
            .with_for_update()
        ).scalar_one_or_none()

        if record is not None and ensure_utc(record.expires_at) > now:
            logger.info("idempotent_replay", extra={"idempotency_key": key})
            return record.result

        result = fn()

        if record is None:
            record = IdempotencyRecord(id=uuid4(), key=key)
            self.session.add(record)
        else:
            logger.debug("idempotency_record_expired", extra={"idempotency_key": key})
        record.result = json_safe(result)
        record.created_at = now
        record.expires_at = now + ttl
        self.session.flush()

        logger.info(
            "idempotent_operation_recorded",
            extra={"idempotency_key": key, "ttl_seconds": int(ttl.total_seconds())},
        )
        return result

    def purge_expired(self) -> int:
        """Delete expired records; returns how many were removed."""
        now = self._clock.now_utc()
        expired = self.session.execute(
            select(IdempotencyRecord).where(IdempotencyRecord.expires_at <= now)
        ).scalars().all()
        for record in expired:
            self.session.delete(record)
        self.session.flush()
        return len(expired)
