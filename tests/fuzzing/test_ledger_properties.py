"""
Hypothesis-based property tests for the ledger invariants.

Properties checked after arbitrary sequences of signed adjustments and
redelivered lifecycle events:
- projection(l, v) == sum of movement deltas for (l, v)
- aggregate(v) == sum of projections for v
- adjacent movements on a pair chain before/after without gaps
- replaying a lifecycle event never adds a second movement
"""

from uuid import uuid4

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from inventory_kernel.domain.dtos import MovementType
from inventory_kernel.exceptions import InvalidDeltaError
from inventory_kernel.models.variant import ProductVariant
from inventory_kernel.services.inventory_service import validate_delta
from inventory_kernel.services.reconciliation_service import ReconciliationService
from inventory_lifecycle.adapters import CancellationAdapter, SaleAdapter
from inventory_lifecycle.events import OrderItemCreated, OrderStatus, OrderStatusChanged

nonzero_deltas = st.integers(min_value=-500, max_value=500).filter(lambda q: q != 0)
movement_types = st.sampled_from(list(MovementType))

FIXTURE_SETTINGS = dict(
    max_examples=40,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
)


def _fresh_variant(session) -> ProductVariant:
    variant = ProductVariant(sku=f"FUZZ-{uuid4().hex[:12]}", inventory_quantity=0)
    session.add(variant)
    session.flush()
    return variant


class TestLedgerInvariants:
    @settings(**FIXTURE_SETTINGS)
    @given(
        steps=st.lists(
            st.tuples(st.booleans(), nonzero_deltas, movement_types), min_size=1, max_size=25
        )
    )
    def test_projection_aggregate_and_chain_hold(
        self, session, inventory_service, movements, stock, warehouse_a, warehouse_b, steps
    ):
        variant = _fresh_variant(session)
        expected = {warehouse_a.id: 0, warehouse_b.id: 0}

        for use_a, delta, movement_type in steps:
            location_id = warehouse_a.id if use_a else warehouse_b.id
            record = inventory_service.adjust(variant.id, location_id, delta, movement_type)
            assert record.quantity_after == record.quantity_before + delta
            expected[location_id] += delta
            assert stock.aggregate_quantity(variant.id) == sum(expected.values())

        for location_id, total in expected.items():
            assert stock.quantity_at(location_id, variant.id) == total
            assert movements.ledger_sum(variant.id, location_id) == total
            assert movements.chain_breaks(variant.id, location_id) == []

        assert ReconciliationService(session).verify_variant(variant.id).is_consistent

    @settings(**FIXTURE_SETTINGS)
    @given(
        quantities=st.lists(st.integers(min_value=1, max_value=20), min_size=1, max_size=4),
        replays=st.integers(min_value=1, max_value=4),
    )
    def test_replayed_events_apply_once(
        self, session, movements, stock, warehouse_a, quantities, replays
    ):
        variant = _fresh_variant(session)
        order_id = variant.id
        sale_adapter = SaleAdapter()
        cancellation_adapter = CancellationAdapter()
        sales = [
            OrderItemCreated(
                order_id=order_id, order_item_id=i, variant_id=variant.id, quantity=q
            )
            for i, q in enumerate(quantities)
        ]
        cancel = OrderStatusChanged(order_id=order_id, new_status=OrderStatus.CANCELLED)

        for _ in range(replays):
            for event in sales:
                sale_adapter.handle(session, event)
        assert stock.aggregate_quantity(variant.id) == -sum(quantities)

        for _ in range(replays):
            cancellation_adapter.handle(session, cancel)

        history = movements.history(variant.id)
        assert len(history) == len(quantities) + 1
        assert stock.aggregate_quantity(variant.id) == 0
        assert stock.quantity_at(warehouse_a.id, variant.id) == 0

    @settings(max_examples=50)
    @given(delta=st.one_of(st.just(0), st.floats(allow_nan=False), st.booleans(), st.text()))
    def test_non_integer_or_zero_deltas_rejected(self, delta):
        with pytest.raises(InvalidDeltaError):
            validate_delta(delta)
