"""
Lifecycle layer: turns order, return and purchase events into ledger writes.

Sits above ``inventory_kernel`` and ``inventory_config``.  The kernel never
imports from here.
"""

from inventory_lifecycle.adapters import (
    AdapterOutcome,
    AdapterStatus,
    CancellationAdapter,
    LifecycleAdapter,
    ManualAdjustmentHandler,
    PurchaseReceiptAdapter,
    ReturnAdapter,
    SaleAdapter,
)
from inventory_lifecycle.bus import Envelope, EventBus
from inventory_lifecycle.events import (
    LifecycleEvent,
    ManualAdjustmentRequested,
    OrderItemCreated,
    OrderStatus,
    OrderStatusChanged,
    PurchaseItemReceived,
    ReturnLine,
    ReturnStatus,
    ReturnStatusChanged,
)
from inventory_lifecycle.wiring import build_default_bus, build_worker
from inventory_lifecycle.worker import DeadLetter, QueueWorker

__all__ = [
    "AdapterOutcome",
    "AdapterStatus",
    "CancellationAdapter",
    "DeadLetter",
    "Envelope",
    "EventBus",
    "LifecycleAdapter",
    "LifecycleEvent",
    "ManualAdjustmentHandler",
    "ManualAdjustmentRequested",
    "OrderItemCreated",
    "OrderStatus",
    "OrderStatusChanged",
    "PurchaseItemReceived",
    "PurchaseReceiptAdapter",
    "QueueWorker",
    "ReturnAdapter",
    "ReturnLine",
    "ReturnStatus",
    "ReturnStatusChanged",
    "SaleAdapter",
    "build_default_bus",
    "build_worker",
]
