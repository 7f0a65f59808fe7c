"""
EventBus -- in-process subscription registry and delivery queue.

Contract:
    - ``subscribe(event_class, handler)`` registers a handler for an exact
      event class.  Handlers are called as ``handler(session, event)``.
    - ``publish(event)`` enqueues an envelope for the queue worker.
    - ``dispatch(session, event)`` runs the handlers inline, for callers that
      already own a session.

Non-goals:
    - Not durable.  A process restart drops queued envelopes; durability
      belongs to whatever feeds the bus (the order service's outbox).
"""

from __future__ import annotations

import queue
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from sqlalchemy.orm import Session

from inventory_kernel.logging_config import get_logger

from inventory_lifecycle.events import LifecycleEvent

logger = get_logger("lifecycle.bus")

Handler = Callable[[Session, LifecycleEvent], Any]


@dataclass(frozen=True)
class Envelope:
    """A queued delivery of one event."""

    event: LifecycleEvent
    attempt: int = 1
    # time.monotonic() before which the envelope must not be processed
    not_before: float = 0.0
    last_error: str | None = None
    enqueued_at: float = field(default_factory=time.monotonic)


class EventBus:
    """Routes lifecycle events to their handlers."""

    def __init__(self) -> None:
        self._handlers: dict[type[LifecycleEvent], list[Handler]] = {}
        self._queue: queue.Queue[Envelope] = queue.Queue()
        self._lock = threading.Lock()
        self._outstanding = 0

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    def subscribe(self, event_class: type[LifecycleEvent], handler: Handler) -> None:
        with self._lock:
            self._handlers.setdefault(event_class, []).append(handler)
        logger.debug(
            "handler_subscribed",
            extra={"event_type": event_class.event_type, "handler": _handler_name(handler)},
        )

    def handlers_for(self, event: LifecycleEvent) -> list[Handler]:
        with self._lock:
            return list(self._handlers.get(type(event), ()))

    # -------------------------------------------------------------------------
    # Delivery
    # -------------------------------------------------------------------------

    def publish(self, event: LifecycleEvent) -> Envelope:
        envelope = Envelope(event=event)
        with self._lock:
            self._outstanding += 1
        self._queue.put(envelope)
        logger.debug(
            "lifecycle_event_published",
            extra={"event_id": str(event.event_id), "event_type": event.event_type},
        )
        return envelope

    def requeue(self, envelope: Envelope) -> None:
        self._queue.put(envelope)

    def complete(self, envelope: Envelope) -> None:
        """Mark a published envelope as finished (handled or dead-lettered)."""
        with self._lock:
            self._outstanding -= 1

    def get(self, timeout: float | None = None) -> Envelope | None:
        """Next envelope, or None if none arrives within ``timeout``."""
        try:
            if timeout is None:
                return self._queue.get_nowait()
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    @property
    def pending(self) -> int:
        """Envelopes waiting in the queue."""
        return self._queue.qsize()

    @property
    def outstanding(self) -> int:
        """Published envelopes not yet completed, including ones in flight."""
        with self._lock:
            return self._outstanding

    def dispatch(self, session: Session, event: LifecycleEvent) -> list[Any]:
        """Run every handler for ``event`` inline and return their results."""
        return [handler(session, event) for handler in self.handlers_for(event)]


def _handler_name(handler: Handler) -> str:
    return getattr(handler, "__qualname__", type(handler).__name__)
