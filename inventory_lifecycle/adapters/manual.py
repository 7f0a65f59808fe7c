"""Operator stock adjustments, applied synchronously."""

from __future__ import annotations

from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService, validate_delta

from inventory_lifecycle.adapters.base import AdapterOutcome, AdapterStatus, LifecycleAdapter
from inventory_lifecycle.events import ManualAdjustmentRequested


class ManualAdjustmentHandler(LifecycleAdapter):
    """
    Contract:
        Applies the request exactly once per call; there is no duplicate
        guard, so this handler is invoked inline and never subscribed to the
        redelivering queue.  Errors (for example a zero quantity) reach the
        operator unchanged.
    """

    event_class = ManualAdjustmentRequested

    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: ManualAdjustmentRequested,
    ) -> AdapterOutcome:
        validate_delta(event.quantity_delta)

        location_id = event.location_id
        if location_id is None:
            location_id = service.resolver.default_location().location_id

        notes = event.notes
        if notes is None and event.reason is not None:
            notes = f"Manual adjustment: {event.reason.value}"

        record = service.adjust(
            event.variant_id,
            location_id,
            event.signed_delta,
            event.movement_type,
            reference=event.reference,
            notes=notes,
        )
        return AdapterOutcome(AdapterStatus.APPLIED, (record,))
