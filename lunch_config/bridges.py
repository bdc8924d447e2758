"""
Bridges from LunchSettings to kernel inputs.

The kernel never imports lunch_config; these helpers build the plain values
its services take.
"""

from __future__ import annotations

from datetime import timedelta

from lunch_config.schema import LunchSettings
from lunch_kernel.domain.pricing import ComboPricingTable


def build_pricing_table(settings: LunchSettings) -> ComboPricingTable:
    return ComboPricingTable(settings.combo_prices)


def idempotency_ttl(settings: LunchSettings) -> timedelta:
    return timedelta(seconds=settings.idempotency.ttl_seconds)
