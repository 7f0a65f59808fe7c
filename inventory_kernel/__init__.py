"""
Inventory Kernel

An append-only stock ledger for product variants held across locations:
- Immutable movement history as the source of truth
- Per-location quantity projection maintained under row locks
- Variant aggregate re-derived inside the same unit of work
- Idempotent lifecycle hooks for sales, cancellations and returns
"""

__version__ = "0.1.0"
