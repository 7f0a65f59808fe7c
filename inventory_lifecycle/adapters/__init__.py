"""Ledger hooks for order, return, purchase and manual events."""

from inventory_lifecycle.adapters.base import AdapterOutcome, AdapterStatus, LifecycleAdapter
from inventory_lifecycle.adapters.cancellation import CancellationAdapter
from inventory_lifecycle.adapters.manual import ManualAdjustmentHandler
from inventory_lifecycle.adapters.purchasing import PurchaseReceiptAdapter
from inventory_lifecycle.adapters.returns import ReturnAdapter
from inventory_lifecycle.adapters.sale import SaleAdapter

__all__ = [
    "AdapterOutcome",
    "AdapterStatus",
    "CancellationAdapter",
    "LifecycleAdapter",
    "ManualAdjustmentHandler",
    "PurchaseReceiptAdapter",
    "ReturnAdapter",
    "SaleAdapter",
]
