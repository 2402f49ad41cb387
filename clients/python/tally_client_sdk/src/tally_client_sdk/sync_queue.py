"""Durable client-side queue that pushes counted movements to the server.

Movements are written to disk before any network call and are removed only
after the server confirms the batch that carried them. A background worker
flushes and then refreshes the shared aggregates on a fixed interval until the
session closes.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable

from .clients.counting_client import CountingClient, new_movement
from .exceptions import ApiError, NotFoundError, SessionClosedError
from .models import Balance, LocationTag, MovementPayload
from .queue_store import QueueStore

logger = logging.getLogger(__name__)

MAX_BATCH = 1000

FLUSH_SENT = "sent"
FLUSH_EMPTY = "empty"
FLUSH_IN_FLIGHT = "in_flight"
FLUSH_FAILED = "failed"
FLUSH_REJECTED = "rejected"
FLUSH_CLOSED = "closed"

AggregatesCallback = Callable[[dict[str, Balance]], None]
ClosedCallback = Callable[[int], None]


@dataclass(frozen=True)
class FlushResult:
    status: str
    sent: int = 0
    accepted: int = 0
    duplicates: int = 0
    error: ApiError | None = None


class SyncQueue:
    def __init__(
        self,
        client: CountingClient,
        session_id: str,
        participant_id: str,
        *,
        store: QueueStore | None = None,
        interval_seconds: float = 5.0,
        on_aggregates: AggregatesCallback | None = None,
        on_session_closed: ClosedCallback | None = None,
    ) -> None:
        self.client = client
        self.session_id = session_id
        self.participant_id = participant_id
        self.store = store or QueueStore(session_id=session_id, participant_id=participant_id)
        self.interval_seconds = interval_seconds
        self.on_aggregates = on_aggregates
        self.on_session_closed = on_session_closed
        self._state = self.store.load()
        self._state_lock = threading.RLock()
        self._flush_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def closed(self) -> bool:
        return self._state.closed

    def pending(self) -> list[MovementPayload]:
        with self._state_lock:
            return list(self._state.entries)

    def enqueue(
        self,
        barcode: str,
        quantity: Decimal | int | str,
        location_tag: LocationTag | str = LocationTag.STORE,
    ) -> MovementPayload:
        if self.closed:
            raise SessionClosedError(
                code="SESSION_CLOSED",
                message="Session is closed for counting",
                details=None,
                trace_id=None,
                status_code=409,
            )
        movement = new_movement(barcode, quantity, location_tag)
        with self._state_lock:
            self._state.entries.append(movement)
            self.store.save(self._state)
        return movement

    def local_balances(self) -> dict[str, Balance]:
        """Last confirmed server balances plus the deltas still queued."""
        with self._state_lock:
            result = {barcode: balance.model_copy() for barcode, balance in self._state.confirmed.items()}
            for entry in self._state.entries:
                balance = result.get(entry.barcode) or Balance(barcode=entry.barcode)
                if entry.location_tag == LocationTag.WAREHOUSE:
                    balance.warehouse += entry.quantity
                else:
                    balance.store += entry.quantity
                balance.total = balance.store + balance.warehouse
                result[entry.barcode] = balance
            return result

    def flush(self) -> FlushResult:
        if self.closed:
            return FlushResult(FLUSH_CLOSED)
        if not self._flush_lock.acquire(blocking=False):
            return FlushResult(FLUSH_IN_FLIGHT)
        try:
            return self._flush_locked()
        finally:
            self._flush_lock.release()

    def _flush_locked(self) -> FlushResult:
        with self._state_lock:
            batch = list(self._state.entries[:MAX_BATCH])
        if not batch:
            return FlushResult(FLUSH_EMPTY)
        try:
            response = self.client.push_movements(self.session_id, self.participant_id, batch)
        except (SessionClosedError, NotFoundError) as exc:
            self._mark_closed(exc)
            return FlushResult(FLUSH_CLOSED, error=exc)
        except ApiError as exc:
            if exc.retryable:
                logger.warning("Movement push failed, keeping %d queued: %s", len(batch), exc)
                return FlushResult(FLUSH_FAILED, error=exc)
            logger.error("Movement batch rejected by server, keeping %d queued: %s", len(batch), exc)
            return FlushResult(FLUSH_REJECTED, error=exc)

        sent_ids = {entry.client_id for entry in batch}
        with self._state_lock:
            self._state.entries = [entry for entry in self._state.entries if entry.client_id not in sent_ids]
            for balance in response.updated_aggregates:
                self._state.confirmed[balance.barcode] = balance
            self.store.save(self._state)
        self._notify_aggregates()
        return FlushResult(
            FLUSH_SENT,
            sent=len(batch),
            accepted=response.accepted_count,
            duplicates=response.duplicate_count,
        )

    def poll_once(self) -> bool:
        """Flush, then refresh the confirmed aggregates. Returns True when refreshed."""
        if self.closed:
            return False
        self.flush()
        if self.closed or not self._flush_lock.acquire(blocking=False):
            return False
        try:
            try:
                snapshot = self.client.aggregates(self.session_id)
            except (SessionClosedError, NotFoundError) as exc:
                self._mark_closed(exc)
                return False
            except ApiError as exc:
                logger.warning("Aggregate refresh failed: %s", exc)
                return False
            with self._state_lock:
                self._state.confirmed = {row.barcode: row for row in snapshot.rows}
                self.store.save(self._state)
        finally:
            self._flush_lock.release()
        self._notify_aggregates()
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"tally-sync-{self.session_id}", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set() and not self.closed:
            try:
                self.poll_once()
            except Exception:
                # The worker outlives a bad tick; the queue file is still intact.
                logger.exception("Sync tick failed")
            self._stop.wait(self.interval_seconds)

    def _mark_closed(self, exc: ApiError) -> None:
        with self._state_lock:
            if self._state.closed:
                return
            abandoned = len(self._state.entries)
            self._state.closed = True
            self._state.entries = []
            self.store.save(self._state)
        self._stop.set()
        logger.warning(
            "Session %s closed (%s); %d queued movements abandoned",
            self.session_id,
            exc.code,
            abandoned,
        )
        if self.on_session_closed:
            self.on_session_closed(abandoned)

    def _notify_aggregates(self) -> None:
        if self.on_aggregates:
            self.on_aggregates(self.local_balances())
