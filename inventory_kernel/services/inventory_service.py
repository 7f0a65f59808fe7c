"""
InventoryService -- the single write path for stock quantities.

Responsibility:
    Every quantity change in the system goes through ``adjust()``: lock the
    rows, compute before/after, update the projection, append the movement,
    and re-derive the variant aggregate.  Lifecycle adapters, manual
    adjustments and purchase receipts all converge here.

Architecture position:
    Kernel > Services -- imperative shell.  Uses AggregateService for the
    aggregate, LocationResolver for order-driven location choice, and the
    db.locking helpers for the lock budget.

Invariants enforced:
    - Projection equals ledger: the projection row is updated by exactly the
      delta recorded in the appended movement, under the same lock.
    - Strict chain: quantity_before is read from the locked projection row,
      so concurrent writers on a pair build on each other's quantity_after.
    - Aggregate freshness: the aggregate is resummed inside the same
      savepoint, after the projection write is flushed.
    - All-or-nothing: the whole sequence runs in a savepoint.  On any
      failure nothing from the call is left in the session.
    - Lock order: variant row, then projection row.  Adapters that lock the
      variant before their duplicate guard follow the same order, so no
      wait cycle can form.

Failure modes:
    - InvalidDeltaError: zero or non-integer delta, before any lock.
    - VariantNotFoundError / LocationNotFoundError: nothing written.
    - LockTimeoutError: lock not obtained within the budget; nothing
      written; safe to retry.

Audit relevance:
    Each successful call logs ``inventory_movement_recorded`` with sku,
    location, type, delta, before/after and the correlated order.  A
    resulting quantity below zero is permitted (oversell) and additionally
    logs ``negative_inventory_after_adjustment`` at WARNING.
"""

from sqlalchemy.orm import Session

from inventory_kernel.db.engine import get_lock_timeout_ms
from inventory_kernel.db.locking import apply_lock_timeout, translate_lock_errors
from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import LocationInfo, MovementRecord, MovementType, OrderRef
from inventory_kernel.exceptions import InvalidDeltaError, LocationNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.inventory_movement import InventoryMovement
from inventory_kernel.models.location import Location
from inventory_kernel.selectors.movement_selector import to_movement_record
from inventory_kernel.services.aggregate_service import AggregateService
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.location_resolver import LocationResolver
from inventory_kernel.services.projection import lock_projection_row, lock_variant_row

logger = get_logger("services.inventory")


def validate_delta(quantity: object) -> int:
    """Reject zero, bool and non-integer deltas."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity == 0:
        raise InvalidDeltaError(quantity)
    return quantity


class InventoryService(BaseService[InventoryMovement]):
    """
    Orchestrates every stock mutation.

    Contract:
        ``adjust()`` appends exactly one movement and returns it; the caller
        commits.

    Guarantees:
        - Movements for one (location, variant) pair are totally ordered by
          lock acquisition.
        - The variant aggregate equals the sum of its projection rows when
          ``adjust()`` returns.

    Non-goals:
        - Does NOT deduplicate; idempotency belongs to the lifecycle
          adapters, which check the ledger before calling ``adjust()``.
        - Does NOT block negative stock.

    Usage:
        with session_scope() as session:
            service = InventoryService(session)
            record = service.adjust(variant_id, location_id, -10, MovementType.SALE,
                                    order_id=42)
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        lock_timeout_ms: int | None = None,
        location_resolver: LocationResolver | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._lock_timeout_ms = lock_timeout_ms or get_lock_timeout_ms()
        self._aggregates = AggregateService(session)
        self._resolver = location_resolver or LocationResolver(session)

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def adjust(
        self,
        variant_id: int,
        location_id: int,
        quantity: int,
        movement_type: MovementType | str,
        *,
        order_id: int | None = None,
        order_item_id: int | None = None,
        purchase_order_item_id: int | None = None,
        reference: str | None = None,
        notes: str | None = None,
    ) -> MovementRecord:
        """
        Apply a signed delta at one location and record it.

        Preconditions:
            - ``quantity`` is a non-zero int.
            - ``movement_type`` is a MovementType or its value.

        Postconditions:
            - projection(location, variant) increased by ``quantity``.
            - One movement appended with before/after from the locked row.
            - variant.inventory_quantity == sum of the variant's projections.

        Raises:
            InvalidDeltaError, VariantNotFoundError, LocationNotFoundError,
            LockTimeoutError, ValueError (unknown movement type).
        """
        validate_delta(quantity)
        movement_type = MovementType(movement_type)

        with translate_lock_errors("LocationInventory", f"{location_id}:{variant_id}"):
            with self.session.begin_nested():
                apply_lock_timeout(self.session, self._lock_timeout_ms)

                variant = lock_variant_row(self.session, variant_id)
                location = self.session.get(Location, location_id)
                if location is None:
                    raise LocationNotFoundError(location_id)

                row = lock_projection_row(self.session, location_id, variant_id)
                quantity_before = row.quantity
                quantity_after = quantity_before + quantity
                row.quantity = quantity_after

                movement = InventoryMovement(
                    variant_id=variant_id,
                    location_id=location_id,
                    movement_type=movement_type.value,
                    quantity=quantity,
                    quantity_before=quantity_before,
                    quantity_after=quantity_after,
                    order_id=order_id,
                    order_item_id=order_item_id,
                    purchase_order_item_id=purchase_order_item_id,
                    reference=reference,
                    notes=notes,
                    created_at=self._clock.now(),
                )
                self.session.add(movement)
                self.session.flush()

                variant_quantity = self._aggregates.resync(variant_id)

        record = to_movement_record(movement)
        self._log_movement(record, variant.sku, location.code, variant_quantity)
        return record

    def lock_variant(self, variant_id: int) -> None:
        """
        Take the variant row lock for the rest of the caller's transaction.

        Lifecycle adapters call this before their duplicate guard so that two
        deliveries of the same event cannot both pass the guard.

        Raises:
            VariantNotFoundError, LockTimeoutError.
        """
        with translate_lock_errors("ProductVariant", variant_id):
            apply_lock_timeout(self.session, self._lock_timeout_ms)
            lock_variant_row(self.session, variant_id)

    def resync(self, variant_id: int) -> int:
        """
        Recompute the variant aggregate from its projection rows.

        The administrative repair path; adjust() already does this on every
        call.

        Raises:
            VariantNotFoundError, LockTimeoutError.
        """
        with translate_lock_errors("ProductVariant", variant_id):
            with self.session.begin_nested():
                apply_lock_timeout(self.session, self._lock_timeout_ms)
                previous = lock_variant_row(self.session, variant_id).inventory_quantity
                quantity = self._aggregates.resync(variant_id)

        if previous != quantity:
            logger.info(
                "aggregate_repaired",
                extra={
                    "variant_id": variant_id,
                    "previous_quantity": previous,
                    "quantity": quantity,
                },
            )
        return quantity

    # -------------------------------------------------------------------------
    # Location policy
    # -------------------------------------------------------------------------

    def resolve_location_for_order(self, order: OrderRef, variant_id: int) -> LocationInfo:
        """See LocationResolver.resolve_for_order."""
        return self._resolver.resolve_for_order(order, variant_id)

    @property
    def resolver(self) -> LocationResolver:
        return self._resolver

    # -------------------------------------------------------------------------
    # Observability
    # -------------------------------------------------------------------------

    def _log_movement(
        self,
        record: MovementRecord,
        sku: str,
        location_code: str,
        variant_quantity: int,
    ) -> None:
        fields = {
            "movement_id": record.movement_id,
            "sku": sku,
            "variant_id": record.variant_id,
            "location_id": record.location_id,
            "location_code": location_code,
            "movement_type": record.movement_type.value,
            "delta": record.quantity,
            "quantity_before": record.quantity_before,
            "quantity_after": record.quantity_after,
            "order_id": record.order_id,
            "reference": record.reference,
            "variant_quantity": variant_quantity,
        }
        logger.info("inventory_movement_recorded", extra=fields)

        if record.quantity_after < 0:
            logger.warning("negative_inventory_after_adjustment", extra=fields)
