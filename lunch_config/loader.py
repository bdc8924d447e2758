"""
Settings loader (``lunch_config.loader``).

Responsibility
--------------
Reads one YAML settings file and parses it into a frozen ``LunchSettings``.
Runtime callers go through ``lunch_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys  -> ``KeyError``.
* Out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml

from lunch_config.schema import (
    CutoffSettings,
    FreezeSettings,
    IdempotencySettings,
    LunchSettings,
    SubscriptionSettings,
)
from lunch_kernel.domain.cutoff import parse_cutoff_time


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data or {}


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON form of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def parse_settings(data: dict[str, Any]) -> LunchSettings:
    combos = _parse_combos(data["combos"])

    freeze = data.get("freeze", {})
    max_per_week = int(freeze.get("max_per_week", FreezeSettings.max_per_week))
    if max_per_week < 0:
        raise ValueError(f"freeze.max_per_week must be >= 0, got {max_per_week}")

    cutoff = data.get("cutoff", {})
    timezone = str(cutoff.get("default_timezone", CutoffSettings.default_timezone))
    try:
        ZoneInfo(timezone)
    except ZoneInfoNotFoundError:
        raise ValueError(f"Unknown timezone in cutoff.default_timezone: {timezone}") from None
    default_time = parse_cutoff_time(str(cutoff.get("default_time", "10:30")))

    subscription = data.get("subscription", {})
    default_months = int(subscription.get("default_months", SubscriptionSettings.default_months))
    if default_months < 1:
        raise ValueError(f"subscription.default_months must be >= 1, got {default_months}")

    idem = data.get("idempotency", {})
    ttl_seconds = int(idem.get("ttl_seconds", IdempotencySettings.ttl_seconds))
    bucket_seconds = int(idem.get("bucket_seconds", IdempotencySettings.bucket_seconds))
    if ttl_seconds <= 0 or bucket_seconds <= 0:
        raise ValueError("idempotency.ttl_seconds and bucket_seconds must be positive")

    currency = str(data["currency"]["default"])
    if len(currency) != 3:
        raise ValueError(f"currency.default must be a 3-letter code, got {currency!r}")

    return LunchSettings(
        config_id=str(data.get("config_id", "unnamed")),
        version=int(data.get("version", 1)),
        checksum=compute_checksum(data),
        currency=currency,
        combos=combos,
        freeze=FreezeSettings(max_per_week=max_per_week),
        cutoff=CutoffSettings(default_time=default_time, default_timezone=timezone),
        subscription=SubscriptionSettings(default_months=default_months),
        idempotency=IdempotencySettings(ttl_seconds=ttl_seconds, bucket_seconds=bucket_seconds),
    )


def _parse_combos(raw: dict[str, Any]) -> tuple[tuple[str, Decimal], ...]:
    if not raw:
        raise ValueError("combos must define at least one combo")
    combos = []
    for name, price in raw.items():
        try:
            value = Decimal(str(price))
        except InvalidOperation:
            raise ValueError(f"Combo {name!r} has a non-numeric price: {price!r}") from None
        if value <= 0:
            raise ValueError(f"Combo {name!r} must have a positive price, got {value}")
        combos.append((str(name), value))
    return tuple(sorted(combos))
