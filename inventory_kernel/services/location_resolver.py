"""
LocationResolver -- which location a lifecycle event should move stock at.

Responsibility:
    Implements the location-selection policy for order-driven movements:

    1. The order's integration (sales channel) has a configured location that
       exists and is active -> use it.
    2. Otherwise the active location holding the most stock of the variant
       (quantity > 0); equal quantities go to the lowest location id.
    3. Otherwise the default location: the default-flagged active location,
       else the lowest-id active location.

Architecture position:
    Kernel > Services.  Read-only; uses StockSelector.  The integration
    mapping is injected (from inventory_config) rather than read here.

Invariants enforced:
    - Deterministic: same database state and mapping, same answer.
    - Inactive locations are never chosen.
    - Reversals (cancellation, return) do not call step 2 when a Sale
      movement exists; they reuse that movement's location, which keeps the
      reversal at the sale's location even after stock levels shift.

Failure modes:
    - LocationNotFoundError when no active location exists at all.
"""

from collections.abc import Mapping

from sqlalchemy.orm import Session

from inventory_kernel.domain.dtos import LocationInfo, OrderRef
from inventory_kernel.exceptions import LocationNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.selectors.stock_selector import StockSelector

logger = get_logger("services.location_resolver")


class LocationResolver:
    """Location-selection policy for sales, cancellations and returns."""

    def __init__(
        self,
        session: Session,
        integration_locations: Mapping[str, str] | None = None,
    ):
        self._stock = StockSelector(session)
        self._integration_locations = dict(integration_locations or {})

    def resolve_for_order(self, order: OrderRef, variant_id: int) -> LocationInfo:
        """Pick the location a sale of ``variant_id`` on ``order`` draws from."""
        if order.integration_id is not None:
            location = self._integration_location(order)
            if location is not None:
                return location
        return self.highest_stock_location(variant_id)

    def highest_stock_location(self, variant_id: int) -> LocationInfo:
        """Location with the most stock of the variant, else the default."""
        location_id = self._stock.highest_stock_location_id(variant_id)
        if location_id is not None:
            location = self._stock.location(location_id)
            if location is not None:
                return location
        return self.default_location()

    def default_location(self) -> LocationInfo:
        location = self._stock.default_location()
        if location is None:
            raise LocationNotFoundError(None, "no active locations configured")
        return location

    def _integration_location(self, order: OrderRef) -> LocationInfo | None:
        code = self._integration_locations.get(str(order.integration_id))
        if code is None:
            return None

        location = self._stock.location_by_code(code)
        if location is not None and location.is_active:
            return location

        logger.warning(
            "integration_location_unavailable",
            extra={
                "integration_id": str(order.integration_id),
                "location_code": code,
                "order_id": order.order_id,
                "reason": "inactive" if location is not None else "unknown code",
            },
        )
        return None
