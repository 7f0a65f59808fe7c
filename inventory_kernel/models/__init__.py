"""ORM models for the inventory kernel."""

from inventory_kernel.models.inventory_movement import InventoryMovement, MovementType
from inventory_kernel.models.location import Location
from inventory_kernel.models.location_inventory import LocationInventory
from inventory_kernel.models.variant import ProductVariant

__all__ = [
    "InventoryMovement",
    "Location",
    "LocationInventory",
    "MovementType",
    "ProductVariant",
    "import_all_models",
]


def import_all_models() -> list[type]:
    """Return every mapped class so Base.metadata is fully populated."""
    return [Location, ProductVariant, LocationInventory, InventoryMovement]
