"""
Inbound lifecycle events.

Frozen dataclasses describing the business facts the ledger reacts to.  The
order, return and purchase-order domains live elsewhere; these events carry
only identifiers, statuses and quantities.

Every event gets a unique ``event_id`` for log correlation.  Redelivery of the
same fact reuses the same event object (or an equal one); the adapters'
ledger guards, not the event id, make redelivery harmless.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar
from uuid import UUID, uuid4

from inventory_kernel.domain.dtos import AdjustmentReason, MovementType, OrderRef


class OrderStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    ON_HOLD = "on_hold"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"
    REFUNDED = "refunded"
    FAILED = "failed"


# Order statuses that put sold stock back on the shelf
REVERSING_ORDER_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REJECTED})


class ReturnStatus(str, Enum):
    REQUESTED = "requested"
    PENDING_REVIEW = "pending_review"
    APPROVED = "approved"
    LABEL_GENERATED = "label_generated"
    IN_TRANSIT = "in_transit"
    RECEIVED = "received"
    INSPECTING = "inspecting"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


def _require_positive(name: str, value: int) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValueError(f"{name} must be a positive integer, got {value!r}")


@dataclass(frozen=True)
class LifecycleEvent:
    """Base class; ``event_type`` names the event in logs."""

    event_type: ClassVar[str] = "lifecycle_event"

    event_id: UUID = field(default_factory=uuid4, kw_only=True)


@dataclass(frozen=True)
class OrderItemCreated(LifecycleEvent):
    event_type: ClassVar[str] = "order_item_created"

    order_id: int
    order_item_id: int | None
    variant_id: int
    quantity: int
    order_number: str | None = None
    integration_id: str | None = None

    def __post_init__(self) -> None:
        _require_positive("quantity", self.quantity)

    @property
    def order(self) -> OrderRef:
        return OrderRef(
            order_id=self.order_id,
            integration_id=self.integration_id,
            order_number=self.order_number,
        )


@dataclass(frozen=True)
class OrderStatusChanged(LifecycleEvent):
    event_type: ClassVar[str] = "order_status_changed"

    order_id: int
    new_status: OrderStatus
    previous_status: OrderStatus | None = None
    order_number: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "new_status", OrderStatus(self.new_status))
        if self.previous_status is not None:
            object.__setattr__(self, "previous_status", OrderStatus(self.previous_status))

    @property
    def reverses_stock(self) -> bool:
        return self.new_status in REVERSING_ORDER_STATUSES

    @property
    def display_number(self) -> str:
        return self.order_number or str(self.order_id)


@dataclass(frozen=True)
class ReturnLine:
    """One returned order line, already resolved to its variant."""

    order_item_id: int | None
    variant_id: int
    quantity: int

    def __post_init__(self) -> None:
        _require_positive("quantity", self.quantity)


@dataclass(frozen=True)
class ReturnStatusChanged(LifecycleEvent):
    event_type: ClassVar[str] = "return_status_changed"

    return_id: int
    return_number: str
    order_id: int
    new_status: ReturnStatus
    items: tuple[ReturnLine, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "new_status", ReturnStatus(self.new_status))
        object.__setattr__(self, "items", tuple(self.items))

    @property
    def reference(self) -> str:
        """Ledger reference naming this specific return."""
        return f"Return #{self.return_number}"

    def quantities_by_variant(self) -> dict[int, int]:
        """Returned quantity per variant, in first-appearance order."""
        totals: dict[int, int] = {}
        for line in self.items:
            totals[line.variant_id] = totals.get(line.variant_id, 0) + line.quantity
        return totals


@dataclass(frozen=True)
class PurchaseItemReceived(LifecycleEvent):
    event_type: ClassVar[str] = "purchase_item_received"

    purchase_order_id: int
    purchase_order_item_id: int
    receipt_reference: str
    variant_id: int
    quantity: int
    location_id: int | None = None

    def __post_init__(self) -> None:
        _require_positive("quantity", self.quantity)

    @property
    def reference(self) -> str:
        return f"PO receipt {self.receipt_reference}"


@dataclass(frozen=True)
class ManualAdjustmentRequested(LifecycleEvent):
    """
    Operator-entered stock change.

    With a ``reason``, the sign of ``quantity_delta`` is set by the reason
    (received/returned add, sold/damaged remove, correction keeps it).
    """

    event_type: ClassVar[str] = "manual_adjustment_requested"

    variant_id: int
    quantity_delta: int
    movement_type: MovementType = MovementType.ADJUSTMENT
    reference: str | None = None
    location_id: int | None = None
    reason: AdjustmentReason | None = None
    notes: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "movement_type", MovementType(self.movement_type))
        if self.reason is not None:
            object.__setattr__(self, "reason", AdjustmentReason(self.reason))

    @property
    def signed_delta(self) -> int:
        if self.reason is None:
            return self.quantity_delta
        return self.reason.signed_delta(self.quantity_delta)
