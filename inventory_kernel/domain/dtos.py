"""
Data Transfer Objects for the inventory kernel.

Frozen dataclasses and enums passed between services, selectors and the
lifecycle layer.  No ORM, no database, no clock.  Selectors build these from
ORM rows; services return them to callers so that nothing outside the kernel
holds a live mapped instance.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class MovementType(str, Enum):
    """Closed set of movement kinds; descriptive only, never changes arithmetic."""

    SALE = "sale"
    RETURN = "return"
    CANCELLATION = "cancellation"
    ADJUSTMENT = "adjustment"
    PURCHASE_RECEIVED = "purchase_received"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @property
    def conventional_sign(self) -> int:
        """+1 or -1 for types with a fixed direction, 0 when either is valid."""
        if self is MovementType.SALE:
            return -1
        if self is MovementType.ADJUSTMENT:
            return 0
        return 1


class AdjustmentReason(str, Enum):
    """
    Operator-facing reason for a manual adjustment.

    The reason fixes the sign of the entered quantity so an operator typing
    "5 damaged" cannot accidentally add stock.
    """

    RECEIVED = "received"
    RETURNED = "returned"
    SOLD = "sold"
    DAMAGED = "damaged"
    CORRECTION = "correction"

    def signed_delta(self, quantity: int) -> int:
        """Apply the reason's sign convention to an entered quantity."""
        if self in (AdjustmentReason.RECEIVED, AdjustmentReason.RETURNED):
            return abs(quantity)
        if self in (AdjustmentReason.SOLD, AdjustmentReason.DAMAGED):
            return -abs(quantity)
        return quantity


@dataclass(frozen=True)
class OrderRef:
    """The parts of an order the ledger reads: identity and sales channel."""

    order_id: int
    integration_id: str | None = None
    order_number: str | None = None

    @property
    def display_number(self) -> str:
        return self.order_number or str(self.order_id)


@dataclass(frozen=True)
class LocationInfo:
    """Read-only view of a stock-holding location."""

    location_id: int
    code: str
    name: str
    is_active: bool = True
    is_default: bool = False


@dataclass(frozen=True)
class MovementRecord:
    """Immutable view of one written ledger movement."""

    movement_id: int
    variant_id: int
    location_id: int
    movement_type: MovementType
    quantity: int
    quantity_before: int
    quantity_after: int
    created_at: datetime
    order_id: int | None = None
    order_item_id: int | None = None
    purchase_order_item_id: int | None = None
    reference: str | None = None
    notes: str | None = None

    @property
    def is_oversold(self) -> bool:
        return self.quantity_after < 0


@dataclass(frozen=True)
class LocationStock:
    """Projection row for one location of a variant."""

    location_id: int
    location_code: str
    quantity: int


@dataclass(frozen=True)
class ChainBreak:
    """Adjacent movements on one pair whose before/after do not line up."""

    location_id: int
    movement_id: int
    expected_before: int
    actual_before: int


@dataclass(frozen=True)
class LocationReconciliation:
    """Projection versus ledger for one (location, variant) pair."""

    location_id: int
    projection_quantity: int
    ledger_quantity: int
    chain_breaks: tuple[ChainBreak, ...] = ()

    @property
    def drift(self) -> int:
        return self.projection_quantity - self.ledger_quantity

    @property
    def is_consistent(self) -> bool:
        return self.drift == 0 and not self.chain_breaks


@dataclass(frozen=True)
class VariantReconciliation:
    """Full consistency report for one variant."""

    variant_id: int
    sku: str
    aggregate_quantity: int
    projection_total: int
    locations: tuple[LocationReconciliation, ...] = field(default_factory=tuple)

    @property
    def aggregate_drift(self) -> int:
        return self.aggregate_quantity - self.projection_total

    @property
    def issues(self) -> tuple[str, ...]:
        found: list[str] = []
        if self.aggregate_drift:
            found.append(
                f"aggregate {self.aggregate_quantity} != location total "
                f"{self.projection_total}"
            )
        for loc in self.locations:
            if loc.drift:
                found.append(
                    f"location {loc.location_id}: projection "
                    f"{loc.projection_quantity} != ledger {loc.ledger_quantity}"
                )
            for brk in loc.chain_breaks:
                found.append(
                    f"location {loc.location_id}: movement {brk.movement_id} "
                    f"starts at {brk.actual_before}, expected {brk.expected_before}"
                )
        return tuple(found)

    @property
    def is_consistent(self) -> bool:
        return not self.issues
