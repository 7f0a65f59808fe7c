"""Database layer - engine, base classes and lock handling."""

from inventory_kernel.db.base import Base, BigIntKey, TimestampedBase
from inventory_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    get_session_factory,
    session_scope,
)
from inventory_kernel.db.locking import apply_lock_timeout, translate_lock_errors

__all__ = [
    "get_engine",
    "get_session",
    "get_session_factory",
    "session_scope",
    "create_tables",
    "Base",
    "BigIntKey",
    "TimestampedBase",
    "apply_lock_timeout",
    "translate_lock_errors",
]
