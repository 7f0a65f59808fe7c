"""
Module: inventory_kernel.models.variant
Responsibility: The slice of the product-variant record the ledger owns:
    identity (sku) and the cached aggregate quantity.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - inventory_quantity equals the sum of LocationInventory.quantity for the
      variant after every adjust() returns.  It is only ever written by
      AggregateService, inside the same transaction as the projection write.
"""

from sqlalchemy import BigInteger, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase


class ProductVariant(TimestampedBase):
    """
    A sellable product variant.

    The catalog (pricing, options, media) lives outside the ledger; only the
    fields the ledger reads or maintains are mapped here.
    """

    __tablename__ = "product_variants"

    sku: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    title: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # Derived total across all locations; never authoritative
    inventory_quantity: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
    )

    def __repr__(self) -> str:
        return f"<ProductVariant {self.sku} qty={self.inventory_quantity}>"
