"""
QueueWorker -- processes lifecycle envelopes with bounded retry.

Contract:
    - ``drain()`` processes everything queued, on the calling thread (tests,
      CLI replays).
    - ``start()`` / ``stop()`` run N background threads that poll the bus;
      stop is graceful (the envelope in hand is finished).
    - Each handler call gets its own session from ``session_factory``.

Retry policy:
    - An error with ``retryable = True`` (LockTimeoutError) is redelivered
      after ``backoff_seconds * attempt`` until ``max_attempts`` deliveries.
    - Any other error, or exhausting the attempts, dead-letters the envelope
      and logs ``event_dead_lettered``.
    - Redelivery re-runs every handler of the event; the adapters' ledger
      guards make the already-applied ones no-ops.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, replace
from typing import Callable

from sqlalchemy.orm import Session

from inventory_kernel.exceptions import InventoryKernelError
from inventory_kernel.logging_config import LogContext, get_logger

from inventory_lifecycle.bus import Envelope, EventBus

logger = get_logger("lifecycle.worker")


@dataclass(frozen=True)
class DeadLetter:
    envelope: Envelope
    error_type: str
    error_code: str | None
    message: str


class QueueWorker:
    """Pulls envelopes off an EventBus and runs their handlers."""

    def __init__(
        self,
        bus: EventBus,
        session_factory: Callable[[], Session],
        max_attempts: int = 3,
        backoff_seconds: float = 5.0,
        workers: int = 1,
        poll_interval: float = 0.1,
    ):
        self._bus = bus
        self._session_factory = session_factory
        self._max_attempts = max_attempts
        self._backoff = backoff_seconds
        self._workers = workers
        self._poll_interval = poll_interval
        self._stop_event = threading.Event()
        self._threads: list[threading.Thread] = []
        self._state_lock = threading.Lock()
        self._dead_letters: list[DeadLetter] = []

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def dead_letters(self) -> list[DeadLetter]:
        with self._state_lock:
            return list(self._dead_letters)

    def process(self, envelope: Envelope) -> bool:
        """
        Deliver one envelope.

        Returns True when the envelope is finished (handled or dead-lettered),
        False when it was put back for another attempt.
        """
        event = envelope.event
        handlers = self._bus.handlers_for(event)
        if not handlers:
            logger.warning(
                "lifecycle_event_unhandled",
                extra={"event_id": str(event.event_id), "event_type": event.event_type},
            )
            return True

        with LogContext.bind(event_id=str(event.event_id), event_type=event.event_type):
            try:
                for handler in handlers:
                    session = self._session_factory()
                    try:
                        handler(session, event)
                    finally:
                        session.close()
            except InventoryKernelError as exc:
                if exc.retryable and envelope.attempt < self._max_attempts:
                    self._schedule_retry(envelope, exc)
                    return False
                self._dead_letter(envelope, exc)
                return True
            except Exception as exc:
                logger.exception(
                    "lifecycle_handler_failed",
                    extra={"attempt": envelope.attempt},
                )
                self._dead_letter(envelope, exc)
                return True
        return True

    def drain(self) -> int:
        """Process queued envelopes on this thread until the bus is empty."""
        processed = 0
        while (envelope := self._bus.get()) is not None:
            self._wait_until(envelope.not_before)
            self._deliver(envelope)
            processed += 1
        return processed

    def start(self) -> None:
        """Start the worker threads."""
        if any(t.is_alive() for t in self._threads):
            return

        self._stop_event.clear()
        self._threads = [
            threading.Thread(
                target=self._run_loop,
                name=f"inventory-worker-{i}",
                daemon=True,
            )
            for i in range(self._workers)
        ]
        for thread in self._threads:
            thread.start()
        logger.info("queue_worker_started", extra={"workers": self._workers})

    def stop(self, timeout: float = 30.0) -> None:
        """Signal stop and wait for the threads to finish."""
        self._stop_event.set()
        for thread in self._threads:
            if thread.is_alive():
                thread.join(timeout=timeout)
        logger.info("queue_worker_stopped")

    def wait_idle(self, timeout: float = 30.0) -> bool:
        """Block until every published envelope has been completed."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if self._bus.outstanding == 0:
                return True
            time.sleep(self._poll_interval)
        return self._bus.outstanding == 0

    @property
    def is_running(self) -> bool:
        return any(t.is_alive() for t in self._threads)

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _run_loop(self) -> None:
        while not self._stop_event.is_set():
            envelope = self._bus.get(timeout=self._poll_interval)
            if envelope is None:
                continue
            if not self._wait_until(envelope.not_before):
                # Stopping; leave it for the next worker run.
                self._bus.requeue(envelope)
                break
            self._deliver(envelope)

    def _deliver(self, envelope: Envelope) -> None:
        if self.process(envelope):
            self._bus.complete(envelope)

    def _wait_until(self, not_before: float) -> bool:
        """Sleep until ``not_before``; False if stop was requested meanwhile."""
        remaining = not_before - time.monotonic()
        if remaining <= 0:
            return True
        return not self._stop_event.wait(timeout=remaining)

    def _schedule_retry(self, envelope: Envelope, exc: InventoryKernelError) -> None:
        delay = self._backoff * envelope.attempt
        logger.warning(
            "event_retry_scheduled",
            extra={
                "attempt": envelope.attempt,
                "max_attempts": self._max_attempts,
                "delay_seconds": delay,
                "error_code": exc.code,
            },
        )
        self._bus.requeue(
            replace(
                envelope,
                attempt=envelope.attempt + 1,
                not_before=time.monotonic() + delay,
                last_error=str(exc),
            )
        )

    def _dead_letter(self, envelope: Envelope, exc: Exception) -> None:
        letter = DeadLetter(
            envelope=envelope,
            error_type=type(exc).__name__,
            error_code=getattr(exc, "code", None),
            message=str(exc),
        )
        with self._state_lock:
            self._dead_letters.append(letter)
        logger.error(
            "event_dead_lettered",
            extra={
                "attempt": envelope.attempt,
                "error_type": letter.error_type,
                "error_code": letter.error_code,
                "error_message": letter.message,
            },
        )
