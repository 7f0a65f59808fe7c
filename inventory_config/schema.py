"""
Inventory configuration schema.

Frozen dataclasses produced by ``inventory_config.loader`` from the merged
YAML document.  Validation lives in ``__post_init__`` so an invalid value can
never exist as a config object.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings for ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20

    def __post_init__(self) -> None:
        if not self.url:
            raise ValueError("database.url must not be empty")
        if self.pool_size < 1:
            raise ValueError(f"database.pool_size must be >= 1, got {self.pool_size}")


@dataclass(frozen=True)
class LedgerConfig:
    """Settings for the adjust() read-modify-write sequence."""

    lock_timeout_ms: int = 5000

    def __post_init__(self) -> None:
        if self.lock_timeout_ms <= 0:
            raise ValueError(
                f"ledger.lock_timeout_ms must be positive, got {self.lock_timeout_ms}"
            )


@dataclass(frozen=True)
class QueueConfig:
    """Delivery policy for the lifecycle queue worker."""

    max_attempts: int = 3
    backoff_seconds: float = 5
    workers: int = 2

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"queue.max_attempts must be >= 1, got {self.max_attempts}")
        if self.backoff_seconds < 0:
            raise ValueError(
                f"queue.backoff_seconds must not be negative, got {self.backoff_seconds}"
            )
        if self.workers < 1:
            raise ValueError(f"queue.workers must be >= 1, got {self.workers}")


@dataclass(frozen=True)
class InventoryConfig:
    """The runtime configuration artifact returned by ``get_active_config()``."""

    database: DatabaseConfig
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    queue: QueueConfig = field(default_factory=QueueConfig)
    # integration id -> location code
    integration_locations: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    checksum: str = ""
    source: str = "defaults"
