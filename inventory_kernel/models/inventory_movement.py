"""
Module: inventory_kernel.models.inventory_movement
Responsibility: ORM persistence for the append-only movement ledger, the
    source of truth for every quantity in the system.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - Append-only: rows are never updated or deleted (ORM listeners in
      db/immutability.py).  Reversal is a new, opposite-signed movement.
    - quantity is non-zero and quantity_after = quantity_before + quantity
      (CHECK constraints).
    - For one (location, variant) pair, each movement's quantity_before equals
      the previous movement's quantity_after.  Guaranteed by writing under
      the projection row lock.
    - id is insertion-ordered; it is the total order within a pair.

Audit relevance:
    The correlation columns (order_id, order_item_id, purchase_order_item_id,
    reference) tie a movement back to the business event that produced it and
    double as the lifecycle adapters' duplicate-detection index.
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base
from inventory_kernel.domain.dtos import MovementType


class InventoryMovement(Base):
    """
    One immutable, signed quantity change against a (location, variant) pair.

    Contract:
        Written only by InventoryService.adjust() while it holds the
        projection row lock, so quantity_before is the projection value the
        lock holder observed.

    Non-goals:
        - Not foreign-keyed to a LocationInventory row; the projection may be
          rebuilt while history stays put.
    """

    __tablename__ = "inventory_movements"

    __table_args__ = (
        Index("idx_movement_variant_location_created", "variant_id", "location_id", "created_at"),
        Index("idx_movement_order_variant_type", "order_id", "variant_id", "movement_type"),
        Index("idx_movement_order_item", "order_item_id"),
        Index("idx_movement_po_item", "purchase_order_item_id"),
        CheckConstraint("quantity <> 0", name="ck_movement_nonzero"),
        CheckConstraint(
            "quantity_after = quantity_before + quantity",
            name="ck_movement_arithmetic",
        ),
    )

    variant_id: Mapped[int] = mapped_column(
        ForeignKey("product_variants.id"),
        nullable=False,
    )

    location_id: Mapped[int] = mapped_column(
        ForeignKey("locations.id"),
        nullable=False,
    )

    # Stored as the enum value string
    movement_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Signed delta
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    quantity_before: Mapped[int] = mapped_column(BigInteger, nullable=False)

    quantity_after: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # Correlation to the business event that caused the movement
    order_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    order_item_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    purchase_order_item_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    reference: Mapped[str | None] = mapped_column(String(255), nullable=True)

    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # From the injected clock, not the server
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    @property
    def type(self) -> MovementType:
        return MovementType(self.movement_type)

    def __repr__(self) -> str:
        return (
            f"<InventoryMovement #{self.id} {self.movement_type} "
            f"{self.quantity_before}->{self.quantity_after}>"
        )
