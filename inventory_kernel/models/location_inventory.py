"""
Module: inventory_kernel.models.location_inventory
Responsibility: ORM persistence for the per-(location, variant) quantity
    projection.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - (location_id, variant_id) is unique (uq_location_variant).
    - quantity equals the sum of InventoryMovement.quantity for the pair.
      Only InventoryService (under a row lock) and the reconciliation repair
      path write it.
    - quantity may be negative (oversold stock).

Failure modes:
    - IntegrityError on a concurrent first-movement insert for the same pair;
      InventoryService retries the lookup under lock.
"""

from sqlalchemy import BigInteger, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase


class LocationInventory(TimestampedBase):
    """
    Current quantity of one variant at one location.

    Created lazily with quantity 0 the first time a movement touches the pair.
    """

    __tablename__ = "location_inventory"

    __table_args__ = (
        UniqueConstraint("location_id", "variant_id", name="uq_location_variant"),
        Index("idx_location_inventory_variant", "variant_id"),
    )

    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id"),
        nullable=False,
    )

    variant_id: Mapped[int] = mapped_column(
        ForeignKey("product_variants.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    def __repr__(self) -> str:
        return (
            f"<LocationInventory location={self.location_id} "
            f"variant={self.variant_id} qty={self.quantity}>"
        )
