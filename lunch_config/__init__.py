"""
lunch_config -- single public entrypoint for lunch configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains settings.
    It loads a YAML settings set into a frozen ``LunchSettings``.

Architecture position:
    Configuration.  Sits above ``lunch_kernel`` and below ``lunch_services``.
    The kernel never imports from ``lunch_config``; ``lunch_config.bridges``
    translates settings into kernel inputs.

Audit relevance:
    Every successful ``get_active_config()`` call emits a
    ``LUNCH_CONFIG_TRACE`` log entry carrying the config id, version and
    checksum.
"""

from __future__ import annotations

from pathlib import Path

from lunch_config.bridges import build_pricing_table, idempotency_ttl
from lunch_config.loader import load_yaml_file, parse_settings
from lunch_config.schema import LunchSettings
from lunch_kernel.logging_config import get_logger

_logger = get_logger("config")

_DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(config_path: Path | str | None = None) -> LunchSettings:
    """
    Load and validate the active settings set.

    Raises:
        FileNotFoundError: the settings file does not exist.
        KeyError: a required key is missing.
        ValueError: a value is out of range.
    """
    path = Path(config_path) if config_path is not None else _DEFAULT_CONFIG_PATH
    settings = parse_settings(load_yaml_file(path))

    _logger.info(
        "LUNCH_CONFIG_TRACE",
        extra={
            "trace_type": "LUNCH_CONFIG_TRACE",
            "config_set_id": settings.config_id,
            "config_set_version": settings.version,
            "checksum": settings.checksum,
            "combo_count": len(settings.combos),
            "path": str(path),
        },
    )
    return settings


__all__ = [
    "LunchSettings",
    "build_pricing_table",
    "get_active_config",
    "idempotency_ttl",
]
