"""
LifecycleAdapter -- shared shape of every ledger hook.

Contract:
    An adapter consumes one lifecycle event inside its own unit of work:

        lock variant -> duplicate guard -> resolve location -> adjust()

    then commits.  Any exception rolls the whole unit back and propagates to
    the caller (the queue worker decides whether to retry).

Invariants enforced:
    - Idempotency under at-least-once delivery: the guard is a ledger query
      (MovementSelector.find_correlated), run while the variant row is
      locked, so two deliveries of the same event cannot both pass it.
    - Lock order matches InventoryService.adjust(): variant, then projection.
    - A missing Sale movement on a reversal is a logged no-op, not a failure.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import MovementRecord, MovementType
from inventory_kernel.exceptions import MissingCorrelationError
from inventory_kernel.logging_config import LogContext, get_logger
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.services.inventory_service import InventoryService
from inventory_kernel.services.location_resolver import LocationResolver

from inventory_lifecycle.events import LifecycleEvent

logger = get_logger("lifecycle.adapter")


class AdapterStatus(str, Enum):
    APPLIED = "applied"
    DUPLICATE = "duplicate"
    NO_CORRELATION = "no_correlation"
    IGNORED = "ignored"


# Precedence when one event touches several variants
_STATUS_PRECEDENCE = (
    AdapterStatus.APPLIED,
    AdapterStatus.DUPLICATE,
    AdapterStatus.NO_CORRELATION,
    AdapterStatus.IGNORED,
)


@dataclass(frozen=True)
class AdapterOutcome:
    """Result of handling one event."""

    status: AdapterStatus
    movements: tuple[MovementRecord, ...] = ()

    @property
    def applied(self) -> bool:
        return self.status is AdapterStatus.APPLIED

    @classmethod
    def ignored(cls) -> AdapterOutcome:
        return cls(AdapterStatus.IGNORED)

    @classmethod
    def combine(cls, outcomes: Iterable[AdapterOutcome]) -> AdapterOutcome:
        """Merge per-variant outcomes of one event."""
        outcomes = list(outcomes)
        movements = tuple(m for o in outcomes for m in o.movements)
        for status in _STATUS_PRECEDENCE:
            if any(o.status is status for o in outcomes):
                return cls(status, movements)
        return cls(AdapterStatus.IGNORED, movements)


def net_by_location(records: Iterable[MovementRecord]) -> dict[int, int]:
    """Summed quantity per location, in order of first appearance."""
    totals: dict[int, int] = {}
    for record in records:
        totals[record.location_id] = totals.get(record.location_id, 0) + record.quantity
    return totals


class LifecycleAdapter(ABC):
    """
    Base class for the sale, cancellation, return and purchase hooks.

    Subclasses implement ``apply()``; ``handle()`` owns the transaction.
    """

    event_class: ClassVar[type[LifecycleEvent]] = LifecycleEvent

    def __init__(
        self,
        clock: Clock | None = None,
        integration_locations: Mapping[str, str] | None = None,
        lock_timeout_ms: int | None = None,
    ):
        self._clock = clock or SystemClock()
        self._integration_locations = dict(integration_locations or {})
        self._lock_timeout_ms = lock_timeout_ms

    def __call__(self, session: Session, event: LifecycleEvent) -> AdapterOutcome:
        return self.handle(session, event)

    def handle(self, session: Session, event: LifecycleEvent) -> AdapterOutcome:
        """Apply the event and commit, or roll back and re-raise."""
        with LogContext.bind(
            event_id=str(event.event_id),
            event_type=event.event_type,
            order_id=getattr(event, "order_id", None),
        ):
            try:
                outcome = self.apply(
                    self.inventory_service(session),
                    MovementSelector(session),
                    event,
                )
                session.commit()
            except Exception:
                session.rollback()
                raise

            logger.info(
                "lifecycle_event_handled",
                extra={
                    "adapter": type(self).__name__,
                    "status": outcome.status.value,
                    "movement_ids": [m.movement_id for m in outcome.movements],
                },
            )
        return outcome

    @abstractmethod
    def apply(
        self,
        service: InventoryService,
        movements: MovementSelector,
        event: LifecycleEvent,
    ) -> AdapterOutcome:
        """Translate the event into ledger writes; do not commit."""

    def inventory_service(self, session: Session) -> InventoryService:
        return InventoryService(
            session,
            clock=self._clock,
            lock_timeout_ms=self._lock_timeout_ms,
            location_resolver=LocationResolver(session, self._integration_locations),
        )

    # -------------------------------------------------------------------------
    # Shared guard
    # -------------------------------------------------------------------------

    def already_recorded(
        self,
        movements: MovementSelector,
        variant_id: int,
        movement_type: MovementType,
        **correlation: int | str | None,
    ) -> bool:
        """
        True when the ledger already holds this event's movement.

        Call only while holding the variant lock.
        """
        existing = movements.find_correlated(variant_id, movement_type, **correlation)
        if existing is None:
            return False
        logger.info(
            "lifecycle_event_skipped_duplicate",
            extra={
                "variant_id": variant_id,
                "movement_type": movement_type.value,
                "existing_movement_id": existing.movement_id,
                **{k: v for k, v in correlation.items() if v is not None},
            },
        )
        return True

    @staticmethod
    def log_missing_correlation(exc: MissingCorrelationError) -> AdapterOutcome:
        logger.warning(
            "missing_correlation",
            extra={
                "order_id": exc.order_id,
                "variant_id": exc.variant_id,
                "movement_type": exc.movement_type,
                "code": exc.code,
            },
        )
        return AdapterOutcome(AdapterStatus.NO_CORRELATION)
