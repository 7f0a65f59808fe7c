"""
Typed Exception Hierarchy for the Inventory Kernel.

Every error raised by the kernel is a typed class carrying a machine-readable
``code`` and its structured data as attributes, so callers catch by type and
log or display by field rather than by parsing messages:

    try:
        service.adjust(variant_id, location_id, 0, MovementType.ADJUSTMENT)
    except InvalidDeltaError as e:
        api_response(code=e.code, quantity=e.quantity)

Hierarchy:

    InventoryKernelError (base)
    |
    +-- NotFoundError
    |   +-- VariantNotFoundError
    |   +-- LocationNotFoundError
    |
    +-- InvalidDeltaError
    |
    +-- ConcurrencyError                (retryable)
    |   +-- LockTimeoutError
    |
    +-- CorrelationError
    |   +-- MissingCorrelationError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

Retry semantics:
    ``retryable`` is a class attribute.  The lifecycle queue worker redelivers
    an event only when the raised error has ``retryable = True``; everything
    else is dead-lettered on first failure.
"""


class InventoryKernelError(Exception):
    """
    Base exception for all inventory kernel errors.

    All subclasses must have a ``code`` class attribute for
    machine-readable error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"
    retryable: bool = False


# Lookup failures


class NotFoundError(InventoryKernelError):
    """Base exception for references that do not resolve."""

    code: str = "NOT_FOUND"


class VariantNotFoundError(NotFoundError):
    """Referenced product variant does not exist."""

    code: str = "VARIANT_NOT_FOUND"

    def __init__(self, variant_ref: int | str):
        self.variant_ref = variant_ref
        super().__init__(f"Product variant not found: {variant_ref}")


class LocationNotFoundError(NotFoundError):
    """Referenced location does not exist, or no location is usable."""

    code: str = "LOCATION_NOT_FOUND"

    def __init__(self, location_ref: int | str | None, reason: str | None = None):
        self.location_ref = location_ref
        self.reason = reason
        if location_ref is None:
            message = f"No location available: {reason or 'none configured'}"
        else:
            message = f"Location not found: {location_ref}"
            if reason:
                message = f"{message} ({reason})"
        super().__init__(message)


# Input validation


class InvalidDeltaError(InventoryKernelError):
    """Quantity delta is zero or not an integer."""

    code: str = "INVALID_DELTA"

    def __init__(self, quantity: object):
        self.quantity = quantity
        if quantity == 0:
            message = "Quantity cannot be zero"
        else:
            message = f"Quantity must be a non-zero integer, got {quantity!r}"
        super().__init__(message)


# Concurrency


class ConcurrencyError(InventoryKernelError):
    """Base exception for contention on ledger rows."""

    code: str = "CONCURRENCY_ERROR"
    retryable: bool = True


class LockTimeoutError(ConcurrencyError):
    """Row lock could not be acquired within the configured wait budget."""

    code: str = "LOCK_TIMEOUT"

    def __init__(self, entity_type: str, entity_id: str, detail: str | None = None):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        message = f"Lock wait exceeded on {entity_type} {entity_id}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


# Lifecycle correlation


class CorrelationError(InventoryKernelError):
    """Base exception for lifecycle events that cannot be tied to the ledger."""

    code: str = "CORRELATION_ERROR"


class MissingCorrelationError(CorrelationError):
    """
    No Sale movement exists for an order and variant being reversed.

    Lifecycle adapters log this and treat the event as a no-op; there is
    nothing to reverse.
    """

    code: str = "MISSING_CORRELATION"

    def __init__(self, order_id: int, variant_id: int | None, movement_type: str):
        self.order_id = order_id
        self.variant_id = variant_id
        self.movement_type = movement_type
        target = f"order {order_id}"
        if variant_id is not None:
            target = f"{target} variant {variant_id}"
        super().__init__(
            f"No sale movement for {target}; {movement_type} has nothing to reverse"
        )


# Immutability


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Inventory movements are append-only; reversal is a new movement.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
