"""
Module: lunch_kernel.models.idempotency
Responsibility: ORM persistence for SqlIdempotencyStore.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - key is unique (uq_idempotency_key): an operation key maps to at most one
      stored result.  Expired rows are replaced, not duplicated.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import Base


class IdempotencyRecord(Base):
    """Stored result of an operation that has already run once."""

    __tablename__ = "idempotency_records"

    __table_args__ = (
        UniqueConstraint("key", name="uq_idempotency_key"),
    )

    key: Mapped[str] = mapped_column(String(255), nullable=False)

    result: Mapped[Any] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<IdempotencyRecord {self.key} until {self.expires_at}>"
