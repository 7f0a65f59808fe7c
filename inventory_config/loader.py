"""
Configuration Loader (``inventory_config.loader``).

Responsibility
--------------
Loads YAML documents, deep-merges an override over the packaged defaults,
and parses the result into the frozen dataclasses of
``inventory_config.schema``.  Runtime callers go through
``inventory_config.get_active_config()``; this module does not look at the
environment.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown top-level sections are rejected, so a typo cannot silently fall
  back to a default.
* ``compute_checksum`` produces a deterministic SHA-256 hash of the merged
  document for configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Wrong shapes or out-of-range values  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from inventory_config.schema import (
    DatabaseConfig,
    InventoryConfig,
    LedgerConfig,
    QueueConfig,
)

DEFAULTS_PATH = Path(__file__).parent / "defaults.yaml"

_SECTIONS = frozenset({"database", "ledger", "queue", "integrations"})


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the document is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``override`` merged in; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ValueError(f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def parse_integrations(data: dict[str, Any]) -> MappingProxyType:
    """integration id -> location code, both normalized to strings."""
    return MappingProxyType(
        {str(integration): str(code) for integration, code in data.items()}
    )


def parse_config(data: dict[str, Any], source: str = "defaults") -> InventoryConfig:
    """
    Parse a merged configuration document.

    Raises:
        ValueError: on unknown sections, wrong shapes, or invalid values.
    """
    unknown = set(data) - _SECTIONS
    if unknown:
        raise ValueError(f"Unknown configuration section(s): {sorted(unknown)}")

    db = _section(data, "database")
    ledger = _section(data, "ledger")
    queue = _section(data, "queue")

    return InventoryConfig(
        database=DatabaseConfig(
            url=str(db.get("url", "")),
            echo=bool(db.get("echo", False)),
            pool_size=int(db.get("pool_size", 20)),
        ),
        ledger=LedgerConfig(
            lock_timeout_ms=int(ledger.get("lock_timeout_ms", 5000)),
        ),
        queue=QueueConfig(
            max_attempts=int(queue.get("max_attempts", 3)),
            backoff_seconds=float(queue.get("backoff_seconds", 5)),
            workers=int(queue.get("workers", 2)),
        ),
        integration_locations=parse_integrations(_section(data, "integrations")),
        checksum=compute_checksum(data),
        source=source,
    )


def load_config(
    override_path: Path | None = None,
    database_url: str | None = None,
) -> InventoryConfig:
    """
    Load defaults, merge the optional override file and database URL, parse.
    """
    data = load_yaml_file(DEFAULTS_PATH)
    source = "defaults"

    if override_path is not None:
        data = deep_merge(data, load_yaml_file(override_path))
        source = str(override_path)

    if database_url:
        data = deep_merge(data, {"database": {"url": database_url}})

    return parse_config(data, source=source)
