"""Adds stock received against a purchase order line."""

from __future__ import annotations

from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService

from inventory_lifecycle.adapters.base import AdapterOutcome, AdapterStatus, LifecycleAdapter
from inventory_lifecycle.events import PurchaseItemReceived


class PurchaseReceiptAdapter(LifecycleAdapter):
    """
    Contract:
        One PurchaseReceived movement per (purchase order item, receipt).
        A line received in several deliveries gets one movement per receipt
        reference.  Without an explicit location the default location is used.
    """

    event_class = PurchaseItemReceived

    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: PurchaseItemReceived,
    ) -> AdapterOutcome:
        service.lock_variant(event.variant_id)

        if self.already_recorded(
            movements,
            event.variant_id,
            MovementType.PURCHASE_RECEIVED,
            purchase_order_item_id=event.purchase_order_item_id,
            reference=event.reference,
        ):
            return AdapterOutcome(AdapterStatus.DUPLICATE)

        location_id = event.location_id
        if location_id is None:
            location_id = service.resolver.default_location().location_id

        record = service.adjust(
            event.variant_id,
            location_id,
            event.quantity,
            MovementType.PURCHASE_RECEIVED,
            purchase_order_item_id=event.purchase_order_item_id,
            reference=event.reference,
            notes=f"Received against purchase order {event.purchase_order_id}",
        )
        return AdapterOutcome(AdapterStatus.APPLIED, (record,))
