"""Deducts stock when an order item is created."""

from __future__ import annotations

from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService

from inventory_lifecycle.adapters.base import AdapterOutcome, AdapterStatus, LifecycleAdapter
from inventory_lifecycle.events import OrderItemCreated


class SaleAdapter(LifecycleAdapter):
    """
    Contract:
        One Sale movement of ``-quantity`` per order item.  The guard matches
        on order and variant, and on the order item when the event carries
        one, so two lines of the same variant on one order each deduct.
    """

    event_class = OrderItemCreated

    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: OrderItemCreated,
    ) -> AdapterOutcome:
        service.lock_variant(event.variant_id)

        if self.already_recorded(
            movements,
            event.variant_id,
            MovementType.SALE,
            order_id=event.order_id,
            order_item_id=event.order_item_id,
        ):
            return AdapterOutcome(AdapterStatus.DUPLICATE)

        location = service.resolve_location_for_order(event.order, event.variant_id)
        record = service.adjust(
            event.variant_id,
            location.location_id,
            -event.quantity,
            MovementType.SALE,
            order_id=event.order_id,
            order_item_id=event.order_item_id,
            reference=f"Order #{event.order.display_number}",
            notes=f"Order item created - deducted {event.quantity} units",
        )
        return AdapterOutcome(AdapterStatus.APPLIED, (record,))
