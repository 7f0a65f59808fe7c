"""
ReconciliationService -- verifies the projection and aggregate against the
movement ledger, and repairs the derived values when they drift.

Responsibility:
    - verify: for each (location, variant) pair, projection == ledger sum and
      the before/after chain is continuous; for the variant,
      aggregate == sum of projections.
    - repair: rewrite drifted projections to their ledger sums, then resync
      the aggregate.  The ledger itself is never rewritten; chain breaks are
      reported only.

Architecture position:
    Kernel > Services.  Reads through MovementSelector and StockSelector;
    writes through the projection helpers and AggregateService.

Invariants enforced:
    - Repair follows the kernel lock order (variant, then projection).
    - Repair converges: a second verify after repair reports no drift, only
      chain breaks that pre-existed.

Audit relevance:
    Every projection rewrite logs ``projection_repaired`` at WARNING with the
    old and new quantities, so an out-of-band data fix stays traceable.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.db.engine import get_lock_timeout_ms
from inventory_kernel.db.locking import apply_lock_timeout, translate_lock_errors
from inventory_kernel.domain.dtos import LocationReconciliation, VariantReconciliation
from inventory_kernel.exceptions import VariantNotFoundError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.location_inventory import LocationInventory
from inventory_kernel.models.variant import ProductVariant
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_kernel.services.aggregate_service import AggregateService
from inventory_kernel.services.base import BaseService
from inventory_kernel.services.projection import lock_projection_row, lock_variant_row

logger = get_logger("services.reconciliation")


class ReconciliationService(BaseService[LocationInventory]):
    """
    Contract:
        ``verify_variant()`` / ``verify_all()`` are read-only.
        ``repair_variant()`` flushes; the caller commits.
    """

    def __init__(self, session: Session, lock_timeout_ms: int | None = None):
        super().__init__(session)
        self._movements = MovementSelector(session)
        self._stock = StockSelector(session)
        self._aggregates = AggregateService(session)
        self._lock_timeout_ms = lock_timeout_ms or get_lock_timeout_ms()

    def verify_variant(self, variant_id: int) -> VariantReconciliation:
        variant = self.session.execute(
            select(ProductVariant)
            .where(ProductVariant.id == variant_id)
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if variant is None:
            raise VariantNotFoundError(variant_id)

        projections = {s.location_id: s.quantity for s in self._stock.by_location(variant_id)}
        ledger = self._movements.ledger_sums_by_location(variant_id)

        locations = tuple(
            LocationReconciliation(
                location_id=location_id,
                projection_quantity=projections.get(location_id, 0),
                ledger_quantity=ledger.get(location_id, 0),
                chain_breaks=tuple(self._movements.chain_breaks(variant_id, location_id)),
            )
            for location_id in sorted(set(projections) | set(ledger))
        )

        return VariantReconciliation(
            variant_id=variant_id,
            sku=variant.sku,
            aggregate_quantity=variant.inventory_quantity,
            projection_total=sum(projections.values()),
            locations=locations,
        )

    def verify_all(self) -> list[VariantReconciliation]:
        reports = [self.verify_variant(vid) for vid in self._stock.all_variant_ids()]
        inconsistent = [r for r in reports if not r.is_consistent]
        logger.info(
            "reconciliation_completed",
            extra={
                "variants_checked": len(reports),
                "variants_inconsistent": len(inconsistent),
            },
        )
        for report in inconsistent:
            logger.warning(
                "reconciliation_issue",
                extra={
                    "variant_id": report.variant_id,
                    "sku": report.sku,
                    "issues": list(report.issues),
                },
            )
        return reports

    def repair_variant(self, variant_id: int) -> VariantReconciliation:
        """
        Bring projection and aggregate back in line with the ledger.

        Returns the post-repair report.

        Raises:
            VariantNotFoundError, LockTimeoutError.
        """
        with translate_lock_errors("ProductVariant", variant_id):
            with self.session.begin_nested():
                apply_lock_timeout(self.session, self._lock_timeout_ms)
                lock_variant_row(self.session, variant_id)

                report = self.verify_variant(variant_id)
                for location in report.locations:
                    if location.drift:
                        self._repair_projection(variant_id, location)

                self._aggregates.resync(variant_id)

        return self.verify_variant(variant_id)

    def _repair_projection(self, variant_id: int, location: LocationReconciliation) -> None:
        row = lock_projection_row(
            self.session,
            location.location_id,
            variant_id,
            initial_quantity=location.ledger_quantity,
        )
        row.quantity = location.ledger_quantity
        self.session.flush()

        logger.warning(
            "projection_repaired",
            extra={
                "variant_id": variant_id,
                "location_id": location.location_id,
                "previous_quantity": location.projection_quantity,
                "quantity": location.ledger_quantity,
            },
        )
