"""
Module: lunch_kernel.models.audit_log
Responsibility: ORM persistence for the write-only audit trail fed by
    SqlAuditSink.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: db/immutability.py rejects UPDATE and DELETE.
"""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from lunch_kernel.db.base import Base, UUIDString


class AuditLogEntry(Base):
    """One recorded lifecycle action."""

    __tablename__ = "audit_log"

    __table_args__ = (
        Index("idx_audit_entity", "entity_type", "entity_id"),
    )

    actor_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    # e.g. "subscription.created", "order.frozen"
    action: Mapped[str] = mapped_column(String(100), nullable=False)

    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[str | None] = mapped_column(String(36), nullable=True)

    old_value: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    new_value: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditLogEntry {self.action} {self.entity_type}:{self.entity_id}>"
