"""
EventBus routing and QueueWorker delivery: retry with backoff for retryable
errors, dead-lettering for everything else, and redelivery safety end to end.
"""

import pytest

from inventory_config.loader import load_config
from inventory_kernel.exceptions import LockTimeoutError, VariantNotFoundError
from inventory_kernel.models.location import Location
from inventory_kernel.models.variant import ProductVariant
from inventory_kernel.selectors.movement_selector import MovementSelector
from inventory_kernel.selectors.stock_selector import StockSelector
from inventory_lifecycle.bus import EventBus
from inventory_lifecycle.events import (
    ManualAdjustmentRequested,
    OrderItemCreated,
    OrderStatus,
    OrderStatusChanged,
    PurchaseItemReceived,
)
from inventory_lifecycle.wiring import build_default_bus, build_worker
from inventory_lifecycle.worker import QueueWorker


def _event(order_id=1, variant_id=1, quantity=1):
    return OrderItemCreated(
        order_id=order_id, order_item_id=order_id, variant_id=variant_id, quantity=quantity
    )


@pytest.fixture
def seeded(committed_session_factory):
    """Committed location + variant with 10 units; returns the variant id."""
    session = committed_session_factory()
    location = Location(name="Main", code="MAIN", is_active=True, is_default=True)
    variant = ProductVariant(sku="MUG-BLUE", title="Mug", inventory_quantity=0)
    session.add_all([location, variant])
    session.commit()

    bus = build_default_bus(load_config())
    worker = QueueWorker(bus, committed_session_factory, backoff_seconds=0)
    bus.publish(
        PurchaseItemReceived(
            purchase_order_id=1,
            purchase_order_item_id=1,
            receipt_reference="OPEN",
            variant_id=variant.id,
            quantity=10,
        )
    )
    worker.drain()
    session.close()
    return variant.id


class TestEventBus:
    def test_routes_by_exact_event_class(self):
        bus = EventBus()
        seen = []
        bus.subscribe(OrderItemCreated, lambda session, event: seen.append(event) or "ok")

        event = _event()
        assert bus.dispatch(None, event) == ["ok"]
        assert bus.dispatch(None, OrderStatusChanged(order_id=1, new_status="cancelled")) == []
        assert seen == [event]

    def test_publish_and_outstanding(self):
        bus = EventBus()
        envelope = bus.publish(_event())

        assert envelope.attempt == 1
        assert bus.pending == 1
        assert bus.outstanding == 1
        assert bus.get() is envelope
        assert bus.pending == 0
        assert bus.outstanding == 1
        bus.complete(envelope)
        assert bus.outstanding == 0

    def test_get_returns_none_when_empty(self):
        assert EventBus().get() is None
        assert EventBus().get(timeout=0.01) is None

    def test_default_bus_excludes_manual_adjustments(self):
        bus = build_default_bus(load_config())
        manual = ManualAdjustmentRequested(variant_id=1, quantity_delta=1)
        assert bus.handlers_for(manual) == []
        assert len(bus.handlers_for(_event())) == 1
        assert len(bus.handlers_for(OrderStatusChanged(order_id=1, new_status="cancelled"))) == 1


class TestQueueWorkerRetry:
    def test_retryable_error_is_redelivered(self, committed_session_factory, captured_logs):
        bus = EventBus()
        calls = []

        def flaky(session, event):
            calls.append(event)
            if len(calls) < 3:
                raise LockTimeoutError("ProductVariant", "1")

        bus.subscribe(OrderItemCreated, flaky)
        worker = QueueWorker(bus, committed_session_factory, max_attempts=3, backoff_seconds=0)
        bus.publish(_event())

        assert worker.drain() == 3
        assert len(calls) == 3
        assert worker.dead_letters == []
        assert bus.outstanding == 0
        retries = [r for r in captured_logs() if r["message"] == "event_retry_scheduled"]
        assert [r["attempt"] for r in retries] == [1, 2]
        assert retries[0]["error_code"] == "LOCK_TIMEOUT"

    def test_retries_exhausted_dead_letters(self, committed_session_factory, captured_logs):
        bus = EventBus()

        def always_locked(session, event):
            raise LockTimeoutError("ProductVariant", "1")

        bus.subscribe(OrderItemCreated, always_locked)
        worker = QueueWorker(bus, committed_session_factory, max_attempts=2, backoff_seconds=0)
        bus.publish(_event())
        worker.drain()

        (letter,) = worker.dead_letters
        assert letter.envelope.attempt == 2
        assert letter.error_code == "LOCK_TIMEOUT"
        assert letter.envelope.last_error is not None
        assert bus.outstanding == 0
        assert any(r["message"] == "event_dead_lettered" for r in captured_logs())

    def test_non_retryable_error_dead_letters_immediately(self, committed_session_factory):
        bus = EventBus()
        calls = []

        def missing(session, event):
            calls.append(event)
            raise VariantNotFoundError(event.variant_id)

        bus.subscribe(OrderItemCreated, missing)
        worker = QueueWorker(bus, committed_session_factory, max_attempts=5, backoff_seconds=0)
        bus.publish(_event(variant_id=55))
        worker.drain()

        assert len(calls) == 1
        (letter,) = worker.dead_letters
        assert letter.error_type == "VariantNotFoundError"
        assert letter.error_code == "VARIANT_NOT_FOUND"

    def test_unexpected_exception_is_logged_and_dead_lettered(
        self, committed_session_factory, captured_logs
    ):
        bus = EventBus()

        def broken(session, event):
            raise KeyError("oops")

        bus.subscribe(OrderItemCreated, broken)
        worker = QueueWorker(bus, committed_session_factory, backoff_seconds=0)
        bus.publish(_event())
        worker.drain()

        assert worker.dead_letters[0].error_type == "KeyError"
        assert worker.dead_letters[0].error_code is None
        failed = next(r for r in captured_logs() if r["message"] == "lifecycle_handler_failed")
        assert failed["exc_type"] == "KeyError"

    def test_event_without_handlers(self, committed_session_factory, captured_logs):
        bus = EventBus()
        worker = QueueWorker(bus, committed_session_factory)
        bus.publish(_event())

        assert worker.drain() == 1
        assert bus.outstanding == 0
        assert any(r["message"] == "lifecycle_event_unhandled" for r in captured_logs())


class TestQueueWorkerEndToEnd:
    def test_duplicate_deliveries_apply_once(self, committed_session_factory, seeded):
        bus = build_default_bus(load_config())
        worker = QueueWorker(bus, committed_session_factory, backoff_seconds=0)
        sale = _event(order_id=42, variant_id=seeded, quantity=4)
        cancel = OrderStatusChanged(order_id=42, new_status=OrderStatus.CANCELLED)

        for event in (sale, sale, cancel, cancel):
            bus.publish(event)
        worker.drain()

        session = committed_session_factory()
        history = MovementSelector(session).history(seeded)
        assert [m.movement_type.value for m in history] == [
            "purchase_received",
            "sale",
            "cancellation",
        ]
        assert StockSelector(session).aggregate_quantity(seeded) == 10
        assert worker.dead_letters == []

    def test_background_threads(self, committed_session_factory, seeded):
        config = load_config()
        bus = build_default_bus(config)
        worker = build_worker(bus, config, committed_session_factory)

        worker.start()
        try:
            assert worker.is_running
            for order_id in range(1, 6):
                bus.publish(_event(order_id=order_id, variant_id=seeded, quantity=1))
            assert worker.wait_idle(timeout=30)
        finally:
            worker.stop()

        assert not worker.is_running
        session = committed_session_factory()
        assert StockSelector(session).aggregate_quantity(seeded) == 5
        history = MovementSelector(session).history(seeded)
        for earlier, later in zip(history, history[1:]):
            assert later.quantity_before == earlier.quantity_after
