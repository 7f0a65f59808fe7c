"""Default subscriptions for the lifecycle queue."""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

from inventory_config.schema import InventoryConfig
from inventory_kernel.domain.clock import Clock

from inventory_lifecycle.adapters import (
    CancellationAdapter,
    PurchaseReceiptAdapter,
    ReturnAdapter,
    SaleAdapter,
)
from inventory_lifecycle.bus import EventBus
from inventory_lifecycle.worker import QueueWorker


def build_default_bus(config: InventoryConfig, clock: Clock | None = None) -> EventBus:
    """
    Bus with the sale, cancellation, return and purchase-receipt adapters.

    Manual adjustments are deliberately absent: they have no duplicate guard
    and must not be redelivered.
    """
    options = {
        "clock": clock,
        "integration_locations": config.integration_locations,
        "lock_timeout_ms": config.ledger.lock_timeout_ms,
    }
    bus = EventBus()
    for adapter in (
        SaleAdapter(**options),
        CancellationAdapter(**options),
        ReturnAdapter(**options),
        PurchaseReceiptAdapter(**options),
    ):
        bus.subscribe(adapter.event_class, adapter)
    return bus


def build_worker(
    bus: EventBus,
    config: InventoryConfig,
    session_factory: Callable[[], Session],
) -> QueueWorker:
    return QueueWorker(
        bus,
        session_factory,
        max_attempts=config.queue.max_attempts,
        backoff_seconds=config.queue.backoff_seconds,
        workers=config.queue.workers,
    )
