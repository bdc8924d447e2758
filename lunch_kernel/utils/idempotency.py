"""
Idempotency key generation utilities.

Externally retried financial operations (a compensation payment, a budget
top-up) must take effect once.  The key built here identifies "the same
operation" as: same subject, same amount, same description, submitted within
the same timestamp bucket.
"""

import hashlib
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from lunch_kernel.domain.clock import ensure_utc

DEFAULT_BUCKET_SECONDS = 60


def _description_hash(description: str | None) -> str:
    text = (description or "").strip().lower()
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:16]


def financial_operation_key(
    subject_id: UUID | str,
    amount: Decimal,
    at: datetime,
    description: str | None = None,
    bucket_seconds: int = DEFAULT_BUCKET_SECONDS,
) -> str:
    """
    Generate an idempotency key for a financial operation.

    Format: fin:{subject}:{amount}:{bucket}:{description hash}

    Two submissions whose timestamps fall in the same ``bucket_seconds``
    window produce the same key.

    Example:
        >>> financial_operation_key(uuid, Decimal("25.00"), now, "lunch refund")
        "fin:550e8400-...:25:29471040:9c1185a5c5e9fc54"
    """
    if bucket_seconds <= 0:
        raise ValueError(f"bucket_seconds must be positive, got {bucket_seconds}")
    bucket = int(ensure_utc(at).timestamp()) // bucket_seconds
    normalized = Decimal(str(amount)).normalize()
    return f"fin:{subject_id}:{normalized:f}:{bucket}:{_description_hash(description)}"

