"""
LunchSettings schema.

Frozen dataclasses parsed from a YAML settings set by ``lunch_config.loader``.
Nothing here touches the kernel; ``lunch_config.bridges`` turns settings into
kernel inputs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from decimal import Decimal


@dataclass(frozen=True)
class FreezeSettings:
    max_per_week: int = 2


@dataclass(frozen=True)
class CutoffSettings:
    """Defaults applied to projects created without their own cutoff."""

    default_time: time = time(10, 30)
    default_timezone: str = "Asia/Dushanbe"


@dataclass(frozen=True)
class SubscriptionSettings:
    default_months: int = 1


@dataclass(frozen=True)
class IdempotencySettings:
    ttl_seconds: int = 86400
    bucket_seconds: int = 60


@dataclass(frozen=True)
class LunchSettings:
    """Complete runtime configuration of the lunch kernel."""

    config_id: str
    version: int
    checksum: str
    currency: str
    combos: tuple[tuple[str, Decimal], ...]
    freeze: FreezeSettings = field(default_factory=FreezeSettings)
    cutoff: CutoffSettings = field(default_factory=CutoffSettings)
    subscription: SubscriptionSettings = field(default_factory=SubscriptionSettings)
    idempotency: IdempotencySettings = field(default_factory=IdempotencySettings)

    @property
    def combo_prices(self) -> dict[str, Decimal]:
        return dict(self.combos)
