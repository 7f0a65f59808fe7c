"""
Module: inventory_kernel.selectors.stock_selector
Responsibility: Read access to the quantity projection, the variant aggregate,
    and the location catalog.
Architecture position: Kernel > Selectors.
"""

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import LocationInfo, LocationStock
from inventory_kernel.models.location import Location
from inventory_kernel.models.location_inventory import LocationInventory
from inventory_kernel.models.variant import ProductVariant
from inventory_kernel.selectors.base import BaseSelector


def to_location_info(location: Location) -> LocationInfo:
    return LocationInfo(
        location_id=location.id,
        code=location.code,
        name=location.name,
        is_active=location.is_active,
        is_default=location.is_default,
    )


class StockSelector(BaseSelector[LocationInventory]):
    """Projection, aggregate and location lookups."""

    # -------------------------------------------------------------------------
    # Projection
    # -------------------------------------------------------------------------

    def quantity_at(self, location_id: int, variant_id: int) -> int:
        """Projected quantity for the pair; 0 when no movement touched it yet."""
        quantity = self.session.execute(
            select(LocationInventory.quantity).where(
                LocationInventory.location_id == location_id,
                LocationInventory.variant_id == variant_id,
            )
        ).scalar_one_or_none()
        return int(quantity) if quantity is not None else 0

    def by_location(self, variant_id: int) -> list[LocationStock]:
        rows = self.session.execute(
            select(LocationInventory.location_id, Location.code, LocationInventory.quantity)
            .join(Location, Location.id == LocationInventory.location_id)
            .where(LocationInventory.variant_id == variant_id)
            .order_by(LocationInventory.location_id)
        ).all()
        return [
            LocationStock(location_id=lid, location_code=code, quantity=int(qty))
            for lid, code, qty in rows
        ]

    def projection_total(self, variant_id: int) -> int:
        total = self.session.execute(
            select(func.coalesce(func.sum(LocationInventory.quantity), 0)).where(
                LocationInventory.variant_id == variant_id
            )
        ).scalar_one()
        return int(total)

    def highest_stock_location_id(self, variant_id: int) -> int | None:
        """
        Active location holding the most positive stock of the variant.

        Ties go to the lowest location id.
        """
        return self.session.execute(
            select(LocationInventory.location_id)
            .join(Location, Location.id == LocationInventory.location_id)
            .where(
                LocationInventory.variant_id == variant_id,
                LocationInventory.quantity > 0,
                Location.is_active.is_(True),
            )
            .order_by(LocationInventory.quantity.desc(), LocationInventory.location_id)
            .limit(1)
        ).scalar_one_or_none()

    # -------------------------------------------------------------------------
    # Variants
    # -------------------------------------------------------------------------

    def aggregate_quantity(self, variant_id: int) -> int | None:
        """Cached total on the variant row, or None for an unknown variant."""
        return self.session.execute(
            select(ProductVariant.inventory_quantity).where(ProductVariant.id == variant_id)
        ).scalar_one_or_none()

    def variant_id_for_sku(self, sku: str) -> int | None:
        return self.session.execute(
            select(ProductVariant.id).where(ProductVariant.sku == sku)
        ).scalar_one_or_none()

    def all_variant_ids(self) -> list[int]:
        return list(
            self.session.execute(select(ProductVariant.id).order_by(ProductVariant.id)).scalars()
        )

    # -------------------------------------------------------------------------
    # Locations
    # -------------------------------------------------------------------------

    def location(self, location_id: int) -> LocationInfo | None:
        location = self.session.get(Location, location_id)
        return to_location_info(location) if location is not None else None

    def location_by_code(self, code: str) -> LocationInfo | None:
        location = self.session.execute(
            select(Location).where(Location.code == code)
        ).scalar_one_or_none()
        return to_location_info(location) if location is not None else None

    def default_location(self) -> LocationInfo | None:
        """
        The default-flagged active location, else the lowest-id active one.
        """
        location = self.session.execute(
            select(Location)
            .where(Location.is_active.is_(True))
            .order_by(Location.is_default.desc(), Location.id)
            .limit(1)
        ).scalar_one_or_none()
        return to_location_info(location) if location is not None else None
