"""
Module: inventory_kernel.db.locking
Responsibility: Lock wait budget and lock-failure translation for the
    row-locking read-modify-write sequences in the service layer.
Architecture position: Kernel > DB.  Imports exceptions and logging only.

Invariants enforced:
    - A lock that cannot be taken within the budget surfaces as
      LockTimeoutError (retryable), never as a raw driver error.
    - Deadlock victims are reported the same way; the caller's savepoint
      has already discarded the partial work.

Failure modes:
    - Any OperationalError that is not lock contention propagates unchanged.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from inventory_kernel.exceptions import LockTimeoutError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.locking")

# lock_not_available, deadlock_detected
_PG_LOCK_SQLSTATES = frozenset({"55P03", "40P01"})


def is_lock_contention(exc: OperationalError) -> bool:
    """True when the driver error means "could not get the lock in time"."""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode in _PG_LOCK_SQLSTATES
    return "database is locked" in str(exc.orig).lower()


def apply_lock_timeout(session: Session, timeout_ms: int) -> None:
    """
    Bound lock waits for the rest of the current transaction.

    PostgreSQL only; SQLite applies its busy timeout per connection.
    """
    if session.get_bind().dialect.name == "postgresql":
        # SET does not take bind parameters.
        session.execute(text(f"SET LOCAL lock_timeout = '{int(timeout_ms)}ms'"))


@contextmanager
def translate_lock_errors(
    entity_type: str, entity_id: object
) -> Generator[None, None, None]:
    """Re-raise lock contention inside the block as LockTimeoutError."""
    try:
        yield
    except OperationalError as exc:
        if not is_lock_contention(exc):
            raise
        logger.warning(
            "lock_wait_exceeded",
            extra={
                "entity_type": entity_type,
                "entity_id": str(entity_id),
                "pgcode": getattr(exc.orig, "pgcode", None),
            },
        )
        raise LockTimeoutError(
            entity_type, str(entity_id), detail=str(exc.orig)
        ) from exc
