"""Restores stock when a customer return is completed."""

from __future__ import annotations

from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService

from inventory_lifecycle.adapters.base import (
    AdapterOutcome,
    AdapterStatus,
    LifecycleAdapter,
    net_by_location,
)
from inventory_lifecycle.events import ReturnStatus, ReturnStatusChanged

logger = get_logger("lifecycle.returns")


class ReturnAdapter(LifecycleAdapter):
    """
    Contract:
        On transition to Completed, Return movements referenced
        ``Return #<return_number>`` for each returned variant (lines of the
        same variant are summed).  Stock goes back to the locations the Sale
        movements took it from, one movement per location; without a Sale,
        to the variant's highest-stock location.
        A variant already carrying a Return movement with this reference for
        the order is skipped.
    """

    event_class = ReturnStatusChanged

    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: ReturnStatusChanged,
    ) -> AdapterOutcome:
        if event.new_status is not ReturnStatus.COMPLETED:
            return AdapterOutcome.ignored()

        outcomes = [
            self._restore_variant(service, movements, event, variant_id, quantity)
            for variant_id, quantity in event.quantities_by_variant().items()
        ]
        if not outcomes:
            logger.info("return_without_items", extra={"return_id": event.return_id})
            return AdapterOutcome.ignored()
        return AdapterOutcome.combine(outcomes)

    def _restore_variant(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: ReturnStatusChanged,
        variant_id: int,
        quantity: int,
    ) -> AdapterOutcome:
        service.lock_variant(variant_id)

        if self.already_recorded(
            movements,
            variant_id,
            MovementType.RETURN,
            order_id=event.order_id,
            reference=event.reference,
        ):
            return AdapterOutcome(AdapterStatus.DUPLICATE)

        allocation = self._allocate(service, movements, event, variant_id, quantity)

        records = tuple(
            service.adjust(
                variant_id,
                location_id,
                restore,
                MovementType.RETURN,
                order_id=event.order_id,
                reference=event.reference,
                notes=f"Return completed - restored {restore} units",
            )
            for location_id, restore in allocation.items()
        )
        return AdapterOutcome(AdapterStatus.APPLIED, records)

    def _allocate(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: ReturnStatusChanged,
        variant_id: int,
        quantity: int,
    ) -> dict[int, int]:
        """
        Split a returned quantity over the locations the order sold from.

        Each sale location takes back at most what it sold, less what earlier
        returns for the order already put back there, in sale order.  Any
        excess goes to the first sale location.  Without a Sale movement the
        whole quantity goes to the highest-stock location.
        """
        sold = net_by_location(movements.sales_for_order(event.order_id, variant_id))
        if not sold:
            location_id = service.resolver.highest_stock_location(variant_id).location_id
            logger.info(
                "return_location_fallback",
                extra={
                    "return_id": event.return_id,
                    "variant_id": variant_id,
                    "location_id": location_id,
                },
            )
            return {location_id: quantity}

        returned = net_by_location(
            movements.for_order(event.order_id, MovementType.RETURN, variant_id)
        )
        allocation: dict[int, int] = {}
        remaining = quantity
        for location_id, sold_quantity in sold.items():
            capacity = -sold_quantity - returned.get(location_id, 0)
            take = min(remaining, capacity)
            if take > 0:
                allocation[location_id] = take
                remaining -= take

        if remaining > 0:
            first = next(iter(sold))
            allocation[first] = allocation.get(first, 0) + remaining
            logger.warning(
                "return_exceeds_sold_quantity",
                extra={
                    "return_id": event.return_id,
                    "variant_id": variant_id,
                    "excess": remaining,
                },
            )
        return allocation
