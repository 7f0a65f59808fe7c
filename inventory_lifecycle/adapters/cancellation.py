"""Restores sold stock when an order is cancelled or rejected."""

from __future__ import annotations

from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.exceptions import MissingCorrelationError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService

from inventory_lifecycle.adapters.base import (
    AdapterOutcome,
    AdapterStatus,
    LifecycleAdapter,
    net_by_location,
)
from inventory_lifecycle.events import OrderStatusChanged

logger = get_logger("lifecycle.cancellation")


class CancellationAdapter(LifecycleAdapter):
    """
    Contract:
        For each variant the order sold, one Cancellation movement per
        location that puts back what the Sale movements took from that
        location.  Variants already cancelled for this order are skipped.
        An order with no Sale movements is a logged no-op.
    """

    event_class = OrderStatusChanged

    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: OrderStatusChanged,
    ) -> AdapterOutcome:
        if not event.reverses_stock:
            return AdapterOutcome.ignored()

        variant_ids = list(
            dict.fromkeys(s.variant_id for s in movements.sales_for_order(event.order_id))
        )
        if not variant_ids:
            return self.log_missing_correlation(
                MissingCorrelationError(event.order_id, None, MovementType.CANCELLATION.value)
            )

        outcomes = []
        for variant_id in variant_ids:
            try:
                outcomes.append(self._reverse_variant(service, movements, event, variant_id))
            except MissingCorrelationError as exc:
                outcomes.append(self.log_missing_correlation(exc))
        return AdapterOutcome.combine(outcomes)

    def _reverse_variant(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: OrderStatusChanged,
        variant_id: int,
    ) -> AdapterOutcome:
        service.lock_variant(variant_id)

        if self.already_recorded(
            movements, variant_id, MovementType.CANCELLATION, order_id=event.order_id
        ):
            return AdapterOutcome(AdapterStatus.DUPLICATE)

        # Re-read under the lock.
        sales = movements.sales_for_order(event.order_id, variant_id)
        if not sales:
            raise MissingCorrelationError(
                event.order_id, variant_id, MovementType.CANCELLATION.value
            )

        # Each warehouse gets back what was taken from it
        restores = {
            location_id: -sold
            for location_id, sold in net_by_location(sales).items()
            if sold < 0
        }
        if not restores:
            logger.warning(
                "cancellation_nothing_to_restore",
                extra={
                    "variant_id": variant_id,
                    "sold_quantity": -sum(s.quantity for s in sales),
                },
            )
            return AdapterOutcome(AdapterStatus.NO_CORRELATION)

        records = tuple(
            service.adjust(
                variant_id,
                location_id,
                restore,
                MovementType.CANCELLATION,
                order_id=event.order_id,
                reference=f"Order #{event.display_number} {event.new_status.value}",
                notes=f"Order {event.new_status.value} - restored {restore} units",
            )
            for location_id, restore in restores.items()
        )
        return AdapterOutcome(AdapterStatus.APPLIED, records)
