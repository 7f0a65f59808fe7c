"""
Pure domain layer.

Data transfer objects, enums and the clock abstraction, with no
dependencies on the ORM or the database.
"""

from inventory_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from inventory_kernel.domain.dtos import (
    AdjustmentReason,
    ChainBreak,
    LocationInfo,
    LocationReconciliation,
    LocationStock,
    MovementRecord,
    MovementType,
    OrderRef,
    VariantReconciliation,
)

__all__ = [
    "AdjustmentReason",
    "ChainBreak",
    "Clock",
    "DeterministicClock",
    "LocationInfo",
    "LocationReconciliation",
    "LocationStock",
    "MovementRecord",
    "MovementType",
    "OrderRef",
    "SystemClock",
    "VariantReconciliation",
]
