"""
Module: inventory_kernel.db.base
Responsibility: Declarative base for all SQLAlchemy ORM models.  Provides the
    integer primary key convention, the type annotation map for consistent
    column types, and the TimestampedBase mixin.
Architecture position: Kernel > DB.  This is the lowest-level import target
    within the kernel.  ALL model files import from here.  This module MUST NOT
    import from models/, services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Insertion-ordered keys: every model gets an autoincrementing integer
      primary key.  Movement ids are therefore monotonic and double as the
      ledger's total order per (location, variant).
    - Timestamps are timezone-aware (DateTime(timezone=True)).

Failure modes:
    - IntegrityError on constraint violations declared by concrete models.
"""

from datetime import datetime
from typing import ClassVar

from sqlalchemy import BigInteger, DateTime, Integer, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# SQLite only autoincrements an INTEGER PRIMARY KEY column.
BigIntKey = BigInteger().with_variant(Integer(), "sqlite")


class Base(DeclarativeBase):
    """
    Declarative base for all SQLAlchemy models.

    Contract:
        Every ORM model in the system inherits from Base (or TimestampedBase).

    Guarantees:
        - id is an autoincrementing integer, strictly increasing in
          insertion order.
        - datetime maps to DateTime(timezone=True).
        - int maps to BigInteger.
    """

    type_annotation_map: ClassVar[dict] = {
        datetime: DateTime(timezone=True),
        int: BigInteger,
    }

    id: Mapped[int] = mapped_column(
        BigIntKey,
        primary_key=True,
        autoincrement=True,
    )


class TimestampedBase(Base):
    """
    Abstract base with creation and modification timestamps.

    Contract:
        created_at is set by the server on INSERT; updated_at follows every
        UPDATE.  Rows that are append-only (movements) set created_at from
        the injected clock instead and do not use this mixin.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
