"""Operator CLI commands, driven through the parser against the test session."""

import pytest
from sqlalchemy import update

from inventory_cli import build_parser, run
from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.models.location_inventory import LocationInventory


def _run(session, *argv):
    return run(session, build_parser().parse_args(list(argv)))


@pytest.fixture
def stocked(variant, warehouse_a, warehouse_b, receive_stock, inventory_service):
    receive_stock(variant, warehouse_a, 40)
    receive_stock(variant, warehouse_b, 8)
    inventory_service.adjust(variant.id, warehouse_a.id, -3, MovementType.SALE, order_id=7)
    return variant


class TestParser:
    def test_command_required(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_resync_needs_a_target(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["resync"])

    def test_global_options(self):
        args = build_parser().parse_args(["--db-url", "sqlite://", "--config", "x.yaml", "verify"])
        assert args.db_url == "sqlite://"
        assert args.config == "x.yaml"
        assert args.command == "verify"

    def test_adjust_rejects_unknown_reason(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["adjust", "--sku", "A", "--quantity", "1", "--reason", "lost"])


class TestVerifyCommand:
    def test_clean_ledger_exits_zero(self, session, stocked, capsys):
        assert _run(session, "verify", "--detailed") == 0
        out = capsys.readouterr().out
        assert "TSHIRT-RED-M" in out
        assert "OK" in out

    def test_drift_exits_one(self, session, stocked, warehouse_b, capsys):
        session.execute(
            update(LocationInventory)
            .where(LocationInventory.location_id == warehouse_b.id)
            .values(quantity=2)
        )

        assert _run(session, "verify", "--sku", "TSHIRT-RED-M") == 1
        assert "MISMATCH" in capsys.readouterr().out

    def test_repair_fixes_drift(self, session, stock, stocked, warehouse_b, capsys):
        session.execute(
            update(LocationInventory)
            .where(LocationInventory.location_id == warehouse_b.id)
            .values(quantity=2)
        )

        assert _run(session, "verify", "--repair") == 0
        assert stock.quantity_at(warehouse_b.id, stocked.id) == 8

    def test_unknown_sku(self, session, capsys):
        assert _run(session, "verify", "--sku", "NOPE") == 1
        assert "VARIANT_NOT_FOUND" in capsys.readouterr().err


class TestResyncCommand:
    def test_resync_single_sku(self, session, stock, stocked, capsys):
        assert _run(session, "resync", "--sku", "TSHIRT-RED-M") == 0
        assert stock.aggregate_quantity(stocked.id) == 45

    def test_resync_all_reports_changes(self, session, stocked, capsys):
        from inventory_kernel.models.variant import ProductVariant

        session.execute(
            update(ProductVariant).where(ProductVariant.id == stocked.id).values(inventory_quantity=0)
        )

        assert _run(session, "resync", "--all") == 0
        assert "45  (was 0)" in capsys.readouterr().out


class TestHistoryCommand:
    def test_lists_movements(self, session, stocked, capsys):
        assert _run(session, "history", "--sku", "TSHIRT-RED-M") == 0
        out = capsys.readouterr().out
        assert "sale" in out
        assert "Opening stock" in out

    def test_filters_by_location_and_limit(self, session, stocked, capsys):
        assert _run(session, "history", "--sku", "TSHIRT-RED-M", "--location", "WH-A", "--limit", "1") == 0
        out = capsys.readouterr().out
        assert "sale" in out
        assert "Opening stock" not in out

    def test_unknown_location_code(self, session, stocked, capsys):
        assert _run(session, "history", "--sku", "TSHIRT-RED-M", "--location", "NOPE") == 1
        assert "LOCATION_NOT_FOUND" in capsys.readouterr().err


class TestAdjustCommand:
    def test_damaged_units_at_location(self, session, stock, stocked, warehouse_b, capsys):
        code = _run(
            session, "adjust", "--sku", "TSHIRT-RED-M", "--quantity", "3",
            "--reason", "damaged", "--location", "WH-B",
        )

        assert code == 0
        assert stock.quantity_at(warehouse_b.id, stocked.id) == 5
        out = capsys.readouterr().out
        assert "-3" in out
        assert "WARNING" not in out

    def test_oversell_warns(self, session, stocked, capsys):
        assert _run(session, "adjust", "--sku", "TSHIRT-RED-M", "--quantity", "-500") == 0
        assert "WARNING: stock at this location is now negative" in capsys.readouterr().out

    def test_zero_quantity_is_an_operator_error(self, session, stocked, capsys):
        assert _run(session, "adjust", "--sku", "TSHIRT-RED-M", "--quantity", "0") == 1
        assert "Quantity cannot be zero" in capsys.readouterr().err

    def test_movement_type_option(self, session, movements, stocked, warehouse_a, capsys):
        _run(
            session, "adjust", "--sku", "TSHIRT-RED-M", "--quantity", "6",
            "--type", "purchase_received", "--reference", "PO-77",
        )

        last = movements.history(stocked.id, warehouse_a.id)[-1]
        assert last.movement_type is MovementType.PURCHASE_RECEIVED
        assert last.reference == "PO-77"
