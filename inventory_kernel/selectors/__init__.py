"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.movement_selector import MovementSelector, to_movement_record
from inventory_kernel.selectors.stock_selector import StockSelector, to_location_info

__all__ = [
    "MovementSelector",
    "StockSelector",
    "to_location_info",
    "to_movement_record",
]
