"""
LifecycleResult -- what the facade hands back to its callers.

Kernel errors never escape the facade: a ``LunchKernelError`` becomes a
REJECTED result carrying the machine-readable code, the error kind, the
human message and the error's structured attributes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lunch_kernel.exceptions import LunchKernelError
from lunch_kernel.utils.serialization import json_safe


class LifecycleStatus(str, Enum):
    SUCCESS = "success"
    REJECTED = "rejected"


@dataclass(frozen=True)
class LifecycleResult:
    """Outcome of one facade call."""

    status: LifecycleStatus
    value: Any = None
    error_code: str | None = None
    error_kind: str | None = None
    message: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_success(self) -> bool:
        return self.status == LifecycleStatus.SUCCESS

    @classmethod
    def success(cls, value: Any = None) -> "LifecycleResult":
        return cls(status=LifecycleStatus.SUCCESS, value=value)

    @classmethod
    def rejected(cls, error: LunchKernelError) -> "LifecycleResult":
        details = {k: json_safe(v) for k, v in vars(error).items() if not k.startswith("_")}
        return cls(
            status=LifecycleStatus.REJECTED,
            error_code=error.code,
            error_kind=error.kind,
            message=str(error),
            details=details,
        )
