"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.aggregate_service import AggregateService
from inventory_kernel.services.inventory_service import InventoryService, validate_delta
from inventory_kernel.services.location_resolver import LocationResolver
from inventory_kernel.services.reconciliation_service import ReconciliationService

__all__ = [
    "AggregateService",
    "InventoryService",
    "LocationResolver",
    "ReconciliationService",
    "validate_delta",
]
