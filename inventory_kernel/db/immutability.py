"""
ORM-Level Immutability Enforcement for the movement ledger.

Inventory movements are the audit trail behind every stock figure.  Once a
movement row is written it must never change: a wrong movement is corrected
by appending an opposite-signed one, which leaves a visible trail.

SQLAlchemy fires mapper events before UPDATE/DELETE statements reach the
database.  The listeners below intercept them for InventoryMovement:

    session.flush()
         |
         v
    [before_update] --> _check_movement_immutability() --> ImmutabilityViolationError
         |
         v
    [before_delete] --> _check_movement_delete() ---------> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

The raised error aborts the flush; the database is never modified.

Bulk Core statements (``session.execute(update(...))``) bypass mapper events.
The kernel never issues them against inventory_movements.

Usage:
    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # Called once at startup

    # In tests that need to fabricate broken history:
    unregister_immutability_listeners()
    ...
    register_immutability_listeners()
"""

from sqlalchemy import event

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")


def _check_movement_immutability(mapper, connection, target):
    """Prevent any updates to InventoryMovement records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryMovement",
            "entity_id": str(target.id),
            "operation": "UPDATE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryMovement",
        entity_id=str(target.id),
        reason="Inventory movements are append-only; record a reversing movement instead",
    )


def _check_movement_delete(mapper, connection, target):
    """Prevent deletion of InventoryMovement records."""
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": "InventoryMovement",
            "entity_id": str(target.id),
            "operation": "DELETE",
        },
    )
    raise ImmutabilityViolationError(
        entity_type="InventoryMovement",
        entity_id=str(target.id),
        reason="Inventory movements cannot be deleted",
    )


def register_immutability_listeners():
    """
    Register immutability enforcement listeners (idempotent).

    Call after models are imported and before any database operations begin.
    """
    from inventory_kernel.models.inventory_movement import InventoryMovement

    if not event.contains(InventoryMovement, "before_update", _check_movement_immutability):
        event.listen(InventoryMovement, "before_update", _check_movement_immutability)
    if not event.contains(InventoryMovement, "before_delete", _check_movement_delete):
        event.listen(InventoryMovement, "before_delete", _check_movement_delete)


def _safe_remove_listener(target, event_name, listener_fn):
    """Remove an event listener, ignoring it if not registered."""
    if event.contains(target, event_name, listener_fn):
        event.remove(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement listeners.

    WARNING: Only use this in tests that intentionally corrupt history to
    verify that reconciliation detects it.
    """
    from inventory_kernel.models.inventory_movement import InventoryMovement

    _safe_remove_listener(InventoryMovement, "before_update", _check_movement_immutability)
    _safe_remove_listener(InventoryMovement, "before_delete", _check_movement_delete)
