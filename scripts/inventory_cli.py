#!/usr/bin/env python3
"""
Operator command line for the inventory ledger.

Usage:
    python3 scripts/inventory_cli.py verify [--sku SKU] [--detailed] [--repair]
    python3 scripts/inventory_cli.py resync (--sku SKU | --all)
    python3 scripts/inventory_cli.py history --sku SKU [--location CODE] [--limit N]
    python3 scripts/inventory_cli.py adjust --sku SKU --quantity N [--location CODE]
                                            [--reason REASON] [--type TYPE]
                                            [--reference TEXT] [--notes TEXT]
    python3 scripts/inventory_cli.py init-db

Examples:
    # Check every variant; exit status 1 if anything is out of line
    python3 scripts/inventory_cli.py verify --detailed

    # Fix drifted projections and aggregates for one SKU
    python3 scripts/inventory_cli.py verify --sku TSHIRT-RED-M --repair

    # Write off 3 damaged units at the main warehouse
    python3 scripts/inventory_cli.py adjust --sku TSHIRT-RED-M --quantity 3 \\
        --reason damaged --location MAIN

    # Custom configuration / database
    python3 scripts/inventory_cli.py --config prod.yaml --db-url postgresql://... verify
"""

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from sqlalchemy.orm import Session  # noqa: E402

from inventory_kernel.domain.dtos import (  # noqa: E402
    AdjustmentReason,
    MovementType,
    VariantReconciliation,
)
from inventory_kernel.exceptions import (  # noqa: E402
    InventoryKernelError,
    LocationNotFoundError,
    VariantNotFoundError,
)

W = 80


# =============================================================================
# Formatting helpers
# =============================================================================


def banner(title: str) -> None:
    print()
    print("=" * W)
    print(f"  {title}")
    print("=" * W)


def field(name: str, value, indent: int = 4) -> None:
    print(f"{' ' * indent}{name}: {value}")


# =============================================================================
# Lookups
# =============================================================================


def variant_id_for(session: Session, sku: str) -> int:
    from inventory_kernel.selectors.stock_selector import StockSelector

    variant_id = StockSelector(session).variant_id_for_sku(sku)
    if variant_id is None:
        raise VariantNotFoundError(sku)
    return variant_id


def location_id_for(session: Session, code: str) -> int:
    from inventory_kernel.selectors.stock_selector import StockSelector

    location = StockSelector(session).location_by_code(code)
    if location is None:
        raise LocationNotFoundError(code)
    return location.location_id


# =============================================================================
# Commands
# =============================================================================


def print_report(report: VariantReconciliation, detailed: bool) -> None:
    status = "OK" if report.is_consistent else "MISMATCH"
    print(
        f"  {report.sku:<30} aggregate={report.aggregate_quantity:>8} "
        f"locations={report.projection_total:>8}  {status}"
    )
    if detailed:
        for loc in report.locations:
            print(
                f"      location {loc.location_id:>5}  projection={loc.projection_quantity:>8} "
                f"ledger={loc.ledger_quantity:>8}  breaks={len(loc.chain_breaks)}"
            )
    for issue in report.issues:
        print(f"      ! {issue}")


def cmd_verify(session: Session, args: argparse.Namespace) -> int:
    from inventory_kernel.services.reconciliation_service import ReconciliationService

    service = ReconciliationService(session)
    if args.sku:
        reports = [service.verify_variant(variant_id_for(session, args.sku))]
    else:
        reports = service.verify_all()

    if args.repair:
        reports = [
            report if report.is_consistent else service.repair_variant(report.variant_id)
            for report in reports
        ]
        session.commit()

    banner("INVENTORY VERIFICATION")
    for report in reports:
        print_report(report, args.detailed)

    failing = [r for r in reports if not r.is_consistent]
    print()
    field("variants checked", len(reports), indent=2)
    field("variants with issues", len(failing), indent=2)
    return 1 if failing else 0


def cmd_resync(session: Session, args: argparse.Namespace) -> int:
    from inventory_kernel.selectors.stock_selector import StockSelector
    from inventory_kernel.services.inventory_service import InventoryService

    service = InventoryService(session)
    stock = StockSelector(session)
    variant_ids = stock.all_variant_ids() if args.all else [variant_id_for(session, args.sku)]

    banner("AGGREGATE RESYNC")
    for variant_id in variant_ids:
        previous = stock.aggregate_quantity(variant_id)
        quantity = service.resync(variant_id)
        marker = "" if previous == quantity else f"  (was {previous})"
        print(f"  variant {variant_id:>6}: {quantity}{marker}")
    session.commit()
    return 0


def cmd_history(session: Session, args: argparse.Namespace) -> int:
    from inventory_kernel.selectors.movement_selector import MovementSelector

    variant_id = variant_id_for(session, args.sku)
    location_id = location_id_for(session, args.location) if args.location else None
    movements = MovementSelector(session).history(variant_id, location_id, args.limit)

    banner(f"MOVEMENTS: {args.sku}")
    if not movements:
        print("    (none)")
        return 0

    print(f"  {'id':>6}  {'type':<18} {'loc':>5} {'delta':>7} {'before':>7} {'after':>7}  reference")
    for m in movements:
        print(
            f"  {m.movement_id:>6}  {m.movement_type.value:<18} {m.location_id:>5} "
            f"{m.quantity:>+7} {m.quantity_before:>7} {m.quantity_after:>7}  {m.reference or ''}"
        )
    return 0


def cmd_adjust(session: Session, args: argparse.Namespace) -> int:
    from inventory_lifecycle.adapters.manual import ManualAdjustmentHandler
    from inventory_lifecycle.events import ManualAdjustmentRequested

    event = ManualAdjustmentRequested(
        variant_id=variant_id_for(session, args.sku),
        quantity_delta=args.quantity,
        movement_type=MovementType(args.type),
        reference=args.reference,
        location_id=location_id_for(session, args.location) if args.location else None,
        reason=AdjustmentReason(args.reason) if args.reason else None,
        notes=args.notes,
    )
    outcome = ManualAdjustmentHandler(lock_timeout_ms=getattr(args, "lock_timeout_ms", None)).handle(session, event)
    record = outcome.movements[0]

    banner("STOCK ADJUSTED")
    field("movement", record.movement_id)
    field("location", record.location_id)
    field("delta", f"{record.quantity:+d}")
    field("before", record.quantity_before)
    field("after", record.quantity_after)
    if record.is_oversold:
        print()
        print("    WARNING: stock at this location is now negative")
    return 0


def cmd_init_db(session: Session, args: argparse.Namespace) -> int:
    from inventory_kernel.db.engine import create_tables

    create_tables()
    print("  tables created")
    return 0


COMMANDS = {
    "verify": cmd_verify,
    "resync": cmd_resync,
    "history": cmd_history,
    "adjust": cmd_adjust,
    "init-db": cmd_init_db,
}


# =============================================================================
# Entry point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inspect and maintain the inventory ledger.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--config", type=str, default=None, help="YAML override file")
    parser.add_argument("--db-url", type=str, default=None, help="Database URL")
    parser.add_argument("--verbose", action="store_true", help="Emit JSON logs to stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    verify = sub.add_parser("verify", help="Check projections and aggregates against the ledger")
    verify.add_argument("--sku", type=str, help="Only this variant")
    verify.add_argument("--detailed", action="store_true", help="Show every location")
    verify.add_argument("--repair", action="store_true", help="Rewrite drifted derived values")

    resync = sub.add_parser("resync", help="Recompute variant aggregates")
    target = resync.add_mutually_exclusive_group(required=True)
    target.add_argument("--sku", type=str)
    target.add_argument("--all", action="store_true")

    history = sub.add_parser("history", help="List ledger movements")
    history.add_argument("--sku", type=str, required=True)
    history.add_argument("--location", type=str, help="Location code")
    history.add_argument("--limit", type=int, default=None, help="Most recent N only")

    adjust = sub.add_parser("adjust", help="Manual stock adjustment")
    adjust.add_argument("--sku", type=str, required=True)
    adjust.add_argument("--quantity", type=int, required=True)
    adjust.add_argument("--location", type=str, help="Location code (default location if omitted)")
    adjust.add_argument("--reason", choices=[r.value for r in AdjustmentReason])
    adjust.add_argument(
        "--type",
        choices=[t.value for t in MovementType],
        default=MovementType.ADJUSTMENT.value,
    )
    adjust.add_argument("--reference", type=str)
    adjust.add_argument("--notes", type=str)

    sub.add_parser("init-db", help="Create tables")
    return parser


def run(session: Session, args: argparse.Namespace) -> int:
    """Run a parsed command against ``session``; operator errors become exit 1."""
    try:
        return COMMANDS[args.command](session, args)
    except InventoryKernelError as exc:
        session.rollback()
        print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
        return 1


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    from inventory_config import get_active_config
    from inventory_kernel.db.engine import get_session, init_engine_from_url
    from inventory_kernel.db.immutability import register_immutability_listeners
    from inventory_kernel.logging_config import configure_logging

    if args.verbose:
        configure_logging(level=logging.DEBUG)
    else:
        logging.disable(logging.CRITICAL)

    config = get_active_config(args.config)
    args.lock_timeout_ms = config.ledger.lock_timeout_ms
    init_engine_from_url(
        args.db_url or config.database.url,
        echo=config.database.echo,
        pool_size=config.database.pool_size,
        lock_timeout_ms=config.ledger.lock_timeout_ms,
    )
    register_immutability_listeners()

    session = get_session()
    try:
        return run(session, args)
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
