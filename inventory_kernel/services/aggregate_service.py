"""
AggregateService -- keeps ProductVariant.inventory_quantity equal to the sum
of the variant's LocationInventory rows.

Responsibility:
    Re-derives the cached aggregate from the projection.  Called at the end
    of every adjust() inside the same unit of work, and on its own as the
    repair path when the cached value has drifted (direct data fixes,
    imports, projection repair).

Architecture position:
    Kernel > Services.  Uses StockSelector for the sum.

Invariants enforced:
    - The aggregate is written only while the variant row is locked, and the
      sum is read in the same transaction after the projection write has been
      flushed, so no writer can observe an updated projection with a stale
      aggregate.
    - The cached value is never trusted as input; it is always overwritten
      with the fresh sum.
"""

from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.variant import ProductVariant
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.projection import lock_variant_row

logger = get_logger("services.aggregate")


class AggregateService(BaseService[ProductVariant]):
    """
    Contract:
        ``resync(variant_id)`` returns the freshly summed quantity after
        persisting it on the variant row.

    Non-goals:
        - Does NOT take a lock timeout or translate lock errors; callers
          that run it standalone go through InventoryService.resync().
    """

    def resync(self, variant_id: int) -> int:
        """
        Recompute and persist the aggregate for one variant.

        Raises:
            VariantNotFoundError: If the variant does not exist.
        """
        variant = lock_variant_row(self.session, variant_id)
        self.session.flush()

        total = StockSelector(self.session).projection_total(variant_id)
        previous = variant.inventory_quantity

        if previous != total:
            variant.inventory_quantity = total
            self.session.flush()

        logger.debug(
            "aggregate_resynced",
            extra={
                "variant_id": variant_id,
                "sku": variant.sku,
                "previous_quantity": previous,
                "quantity": total,
                "drift": previous - total,
            },
        )
        return total
