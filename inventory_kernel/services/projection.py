"""
Locked access to LocationInventory and ProductVariant rows.

Both helpers follow the same shape: ``SELECT ... FOR UPDATE`` with
``populate_existing`` so the in-memory object reflects the locked row, not a
stale identity-map copy.  The projection helper creates the row on first
touch inside a savepoint and, if a concurrent transaction won the insert,
rolls back the savepoint and re-reads the winner's row under lock.

Lock order everywhere in the kernel: variant row first, then projection row.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import VariantNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.location_inventory import LocationInventory
from inventory_kernel.models.variant import ProductVariant

logger = get_logger("services.projection")


def lock_variant_row(session: Session, variant_id: int) -> ProductVariant:
    """
    Lock the variant row for the rest of the transaction.

    Raises:
        VariantNotFoundError: If no such variant exists.
    """
    variant = session.execute(
        select(ProductVariant)
        .where(ProductVariant.id == variant_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalar_one_or_none()
    if variant is None:
        raise VariantNotFoundError(variant_id)
    return variant


def _select_projection(location_id: int, variant_id: int):
    return (
        select(LocationInventory)
        .where(
            LocationInventory.location_id == location_id,
            LocationInventory.variant_id == variant_id,
        )
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def lock_projection_row(
    session: Session,
    location_id: int,
    variant_id: int,
    initial_quantity: int = 0,
) -> LocationInventory:
    """Lock the (location, variant) projection row, creating it if absent."""
    row = session.execute(
        _select_projection(location_id, variant_id)
    ).scalar_one_or_none()
    if row is not None:
        return row

    savepoint = session.begin_nested()
    try:
        row = LocationInventory(
            location_id=location_id,
            variant_id=variant_id,
            quantity=initial_quantity,
        )
        session.add(row)
        session.flush()
        savepoint.commit()
        logger.debug(
            "projection_created",
            extra={"location_id": location_id, "variant_id": variant_id},
        )
        return row
    except IntegrityError:
        logger.debug(
            "projection_create_race_retry",
            extra={"location_id": location_id, "variant_id": variant_id},
        )
        savepoint.rollback()
        return session.execute(
            _select_projection(location_id, variant_id)
        ).scalar_one()
