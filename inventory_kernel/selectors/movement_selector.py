"""
Module: inventory_kernel.selectors.movement_selector
Responsibility: Read access to the movement ledger: history listings, ledger
    sums, chain verification, and the correlation lookup that every lifecycle
    adapter uses as its duplicate guard.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Ordering is by movement id, which is insertion order.
    - find_correlated() is the single duplicate-detection query; adapters
      do not write their own.
"""

from datetime import datetime, timezone

from sqlalchemy import func, select

from inventory_kernel.domain.dtos import ChainBreak, MovementRecord, MovementType
from inventory_kernel.models.inventory_movement import InventoryMovement
from inventory_kernel.selectors.base import BaseSelector


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes for timezone-aware columns
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_movement_record(movement: InventoryMovement) -> MovementRecord:
    """Build the DTO for a mapped movement row. created_at is always UTC-aware."""
    return MovementRecord(
        movement_id=movement.id,
        variant_id=movement.variant_id,
        location_id=movement.location_id,
        movement_type=MovementType(movement.movement_type),
        quantity=movement.quantity,
        quantity_before=movement.quantity_before,
        quantity_after=movement.quantity_after,
        created_at=_as_utc(movement.created_at),
        order_id=movement.order_id,
        order_item_id=movement.order_item_id,
        purchase_order_item_id=movement.purchase_order_item_id,
        reference=movement.reference,
        notes=movement.notes,
    )


class MovementSelector(BaseSelector[InventoryMovement]):
    """Query helpers over inventory_movements."""

    def get(self, movement_id: int) -> MovementRecord | None:
        movement = self.session.get(InventoryMovement, movement_id)
        return to_movement_record(movement) if movement is not None else None

    def find_correlated(
        self,
        variant_id: int,
        movement_type: MovementType,
        *,
        order_id: int | None = None,
        order_item_id: int | None = None,
        purchase_order_item_id: int | None = None,
        reference: str | None = None,
    ) -> MovementRecord | None:
        """
        Earliest movement of a type tied to the given correlation keys.

        Every key that is not None must match.  At least one key is required;
        a type-only lookup would match unrelated business events.

        Raises:
            ValueError: If no correlation key is given.
        """
        criteria = {
            "order_id": order_id,
            "order_item_id": order_item_id,
            "purchase_order_item_id": purchase_order_item_id,
            "reference": reference,
        }
        given = {k: v for k, v in criteria.items() if v is not None}
        if not given:
            raise ValueError("find_correlated requires at least one correlation key")

        stmt = select(InventoryMovement).where(
            InventoryMovement.variant_id == variant_id,
            InventoryMovement.movement_type == MovementType(movement_type).value,
        )
        for column, value in given.items():
            stmt = stmt.where(getattr(InventoryMovement, column) == value)

        movement = self.session.execute(
            stmt.order_by(InventoryMovement.id).limit(1)
        ).scalar_one_or_none()
        return to_movement_record(movement) if movement is not None else None

    def sales_for_order(
        self, order_id: int, variant_id: int | None = None
    ) -> list[MovementRecord]:
        """Sale movements written for an order, oldest first."""
        return self.for_order(order_id, MovementType.SALE, variant_id)

    def for_order(
        self,
        order_id: int,
        movement_type: MovementType,
        variant_id: int | None = None,
    ) -> list[MovementRecord]:
        """Movements of one type written for an order, oldest first."""
        stmt = select(InventoryMovement).where(
            InventoryMovement.order_id == order_id,
            InventoryMovement.movement_type == MovementType(movement_type).value,
        )
        if variant_id is not None:
            stmt = stmt.where(InventoryMovement.variant_id == variant_id)
        rows = self.session.execute(stmt.order_by(InventoryMovement.id)).scalars()
        return [to_movement_record(m) for m in rows]

    def history(
        self,
        variant_id: int,
        location_id: int | None = None,
        limit: int | None = None,
    ) -> list[MovementRecord]:
        """
        Movements for a variant in insertion order.

        With ``limit``, only the most recent ``limit`` movements are returned
        (still oldest first).
        """
        stmt = select(InventoryMovement).where(InventoryMovement.variant_id == variant_id)
        if location_id is not None:
            stmt = stmt.where(InventoryMovement.location_id == location_id)

        if limit is None:
            rows = self.session.execute(stmt.order_by(InventoryMovement.id)).scalars()
            return [to_movement_record(m) for m in rows]

        rows = self.session.execute(
            stmt.order_by(InventoryMovement.id.desc()).limit(limit)
        ).scalars()
        return [to_movement_record(m) for m in reversed(list(rows))]

    def ledger_sum(self, variant_id: int, location_id: int) -> int:
        """Sum of all deltas for the pair; what the projection must equal."""
        total = self.session.execute(
            select(func.coalesce(func.sum(InventoryMovement.quantity), 0)).where(
                InventoryMovement.variant_id == variant_id,
                InventoryMovement.location_id == location_id,
            )
        ).scalar_one()
        return int(total)

    def ledger_sums_by_location(self, variant_id: int) -> dict[int, int]:
        rows = self.session.execute(
            select(InventoryMovement.location_id, func.sum(InventoryMovement.quantity))
            .where(InventoryMovement.variant_id == variant_id)
            .group_by(InventoryMovement.location_id)
        ).all()
        return {location_id: int(total) for location_id, total in rows}

    def chain_breaks(self, variant_id: int, location_id: int) -> list[ChainBreak]:
        """
        Movements whose quantity_before does not continue the chain.

        The first movement of a pair must start at 0, because projections are
        created with quantity 0 on first touch.
        """
        rows = self.session.execute(
            select(
                InventoryMovement.id,
                InventoryMovement.quantity_before,
                InventoryMovement.quantity_after,
            )
            .where(
                InventoryMovement.variant_id == variant_id,
                InventoryMovement.location_id == location_id,
            )
            .order_by(InventoryMovement.id)
        ).all()

        breaks: list[ChainBreak] = []
        expected = 0
        for movement_id, before, after in rows:
            if before != expected:
                breaks.append(
                    ChainBreak(
                        location_id=location_id,
                        movement_id=movement_id,
                        expected_before=expected,
                        actual_before=before,
                    )
                )
            expected = after
        return breaks
