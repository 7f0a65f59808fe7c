"""
Module: inventory_kernel.models.location
Responsibility: ORM persistence for stock-holding places (warehouses, stores).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - code is unique.
    - The ledger references locations and never mutates them; creation and
      editing belong to administrative tooling.
"""

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TimestampedBase


class Location(TimestampedBase):
    """
    A physical or logical place that holds stock.

    Contract:
        At most one active location should carry is_default; that is upheld
        by the administrative write path.  When several do, the lowest id
        wins wherever a default is needed.
    """

    __tablename__ = "locations"

    __table_args__ = (
        Index("idx_location_active", "is_active"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # Short stable identifier used by config and the CLI
    code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<Location {self.code}: {self.name}>"
