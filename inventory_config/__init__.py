"""
inventory_config -- single public entrypoint for runtime configuration.

Responsibility:
    ``get_active_config()`` is the ONLY place that reads configuration files
    or environment variables.  Everything else receives an
    ``InventoryConfig`` (or pieces of it) by injection.

Environment:
    INVENTORY_CONFIG          path of a YAML file merged over the defaults
    INVENTORY_DATABASE_URL    overrides database.url

Audit relevance:
    Every call logs ``inventory_config_loaded`` with the source and the
    checksum of the merged document.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

from inventory_config.loader import compute_checksum, load_config, parse_config
from inventory_config.schema import (
    DatabaseConfig,
    InventoryConfig,
    LedgerConfig,
    QueueConfig,
)
from inventory_kernel.logging_config import get_logger

_logger = get_logger("config")

CONFIG_PATH_ENV = "INVENTORY_CONFIG"
DATABASE_URL_ENV = "INVENTORY_DATABASE_URL"


def get_active_config(
    path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> InventoryConfig:
    """
    Resolve the active configuration.

    An explicit ``path`` wins over ``INVENTORY_CONFIG``.  ``environ`` defaults
    to ``os.environ``.

    Raises:
        FileNotFoundError: If the override file does not exist.
        ValueError: If the merged document is invalid.
    """
    env = os.environ if environ is None else environ

    override = path if path is not None else env.get(CONFIG_PATH_ENV)
    config = load_config(
        override_path=Path(override) if override else None,
        database_url=env.get(DATABASE_URL_ENV),
    )

    _logger.info(
        "inventory_config_loaded",
        extra={
            "source": config.source,
            "checksum": config.checksum,
            "lock_timeout_ms": config.ledger.lock_timeout_ms,
            "integrations": len(config.integration_locations),
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "InventoryConfig",
    "LedgerConfig",
    "QueueConfig",
    "compute_checksum",
    "get_active_config",
    "parse_config",
]
