"""Debounced mirroring of local state to the remote store."""

from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable

from till.codec import iso, order_from_document, order_to_document
from till.config import PUSH_DEBOUNCE_SECONDS, SYNC_POLL_SECONDS
from till.errors import SyncFailure
from till.models import Order, utc_now
from till.remote import RemoteStore, Unsubscribe

logger = logging.getLogger(__name__)

Snapshot = Callable[[], dict[str, Any]]
OrderMirrored = Callable[[int, datetime, str], None]
OrdersApplier = Callable[[list[Order]], None]


@dataclass(frozen=True)
class SyncStatus:
    enabled: bool
    in_flight: bool
    pending_push: bool
    queued: int
    last_save_at: datetime | None
    last_load_at: datetime | None
    last_error: str | None
    streaming: bool = False

    def describe(self) -> str:
        if not self.enabled:
            return "Sync: off"
        if self.last_error:
            return f"Sync error: {self.last_error}"
        if self.in_flight or self.pending_push or self.queued:
            return "Sync: saving..."
        if self.last_save_at:
            return f"Synced {self.last_save_at.astimezone().strftime('%H:%M:%S')}"
        return "Sync: idle"


class SyncEngine:
    """
    Coalesces state changes into one full-state push per quiet window and
    runs queued order mirror writes.

    Work happens in ``tick()``; ``start()`` calls it from a daemon thread.
    Failures are recorded in ``status()`` and never touch local state.
    """

    def __init__(
        self,
        store: RemoteStore | None,
        snapshot: Snapshot,
        *,
        debounce_seconds: float = PUSH_DEBOUNCE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        on_order_mirrored: OrderMirrored | None = None,
        presence: Snapshot | None = None,
    ) -> None:
        self.store = store
        self._snapshot = snapshot
        self._presence = presence
        self.debounce_seconds = debounce_seconds
        self._clock = clock
        self._on_order_mirrored = on_order_mirrored

        self._lock = threading.Lock()
        self._run_lock = threading.Lock()
        self._dirty = False
        self._changed_at = 0.0
        self._tasks: deque[tuple[str, Callable[[RemoteStore], None]]] = deque()
        self._remote_ids: dict[tuple[int, str | None], str] = {}
        self._in_flight = False
        self._last_save_at: datetime | None = None
        self._last_load_at: datetime | None = None
        self._last_error: str | None = None
        self._unsubscribe: Unsubscribe | None = None

        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def enabled(self) -> bool:
        return self.store is not None

    def status(self) -> SyncStatus:
        with self._lock:
            return SyncStatus(
                enabled=self.enabled,
                in_flight=self._in_flight,
                pending_push=self._dirty,
                queued=len(self._tasks),
                last_save_at=self._last_save_at,
                last_load_at=self._last_load_at,
                last_error=self._last_error,
                streaming=self._unsubscribe is not None,
            )

    def _record_error(self, message: str) -> None:
        with self._lock:
            self._last_error = message

    def notify_changed(self) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._dirty = True
            self._changed_at = self._clock()

    def _push_due(self) -> bool:
        with self._lock:
            return self._dirty and self._clock() - self._changed_at >= self.debounce_seconds

    def _push(self, store: RemoteStore) -> None:
        with self._lock:
            self._dirty = False
            self._in_flight = True
        try:
            store.merge_state(self._snapshot())
            if self._presence is not None:
                store.write_status(self._presence())
        finally:
            with self._lock:
                self._in_flight = False
        with self._lock:
            self._last_save_at = utc_now()
            self._last_error = None
        logger.debug("state pushed to remote")

    def tick(self) -> None:
        """Run the debounced push if due, then drain queued order writes."""
        store = self.store
        if store is None or not self._run_lock.acquire(blocking=False):
            return
        try:
            if self._push_due():
                try:
                    self._push(store)
                except SyncFailure as exc:
                    self._record_error(str(exc))
            while True:
                with self._lock:
                    if not self._tasks:
                        break
                    label, task = self._tasks.popleft()
                try:
                    task(store)
                except SyncFailure as exc:
                    logger.warning("mirror task failed task=%s: %s", label, exc)
                    self._record_error(f"{label}: {exc}")
        finally:
            self._run_lock.release()

    def _enqueue(self, label: str, task: Callable[[RemoteStore], None]) -> None:
        if not self.enabled:
            return
        with self._lock:
            self._tasks.append((label, task))

    def mirror_order(self, order: Order) -> None:
        """Queue creation of the order's remote copy."""
        document = order_to_document(order)
        key = (order.order_no, iso(order.date))
        order_no, placed_at = order.order_no, order.date

        def _create(store: RemoteStore) -> None:
            remote_id = store.create_order(document)
            with self._lock:
                self._remote_ids[key] = remote_id
            logger.info("order mirrored order_no=%s remote_id=%s", order_no, remote_id)
            if self._on_order_mirrored is not None:
                self._on_order_mirrored(order_no, placed_at, remote_id)

        self._enqueue(f"order #{order_no} create", _create)

    def mirror_order_update(self, order: Order, fields: dict[str, Any]) -> None:
        """Queue a field update; the remote id is resolved when the task runs."""
        known_id = order.remote_id
        key = (order.order_no, iso(order.date))
        order_no, placed_at = order.order_no, order.date
        label = f"order #{order_no} update"

        def _update(store: RemoteStore) -> None:
            with self._lock:
                remote_id = known_id or self._remote_ids.get(key)
            if remote_id is None:
                remote_id = store.find_order_id(order_no, placed_at)
            if remote_id is None:
                raise SyncFailure(f"Order #{order_no} is not in the remote store.")
            if not store.update_order(remote_id, fields):
                raise SyncFailure(f"Order #{order_no} could not be updated remotely.")
            logger.info("order update mirrored order_no=%s", order_no)

        self._enqueue(label, _update)

    def forget_orders(self) -> None:
        with self._lock:
            self._remote_ids.clear()

    def push_now(self) -> None:
        """Push the full state immediately; raises SyncFailure."""
        if self.store is None:
            raise SyncFailure("Remote mirror is not configured.")
        try:
            self._push(self.store)
        except SyncFailure as exc:
            self._record_error(str(exc))
            raise

    def pull(self) -> dict[str, Any]:
        """Read the remote full-state document; raises SyncFailure."""
        if self.store is None:
            raise SyncFailure("Remote mirror is not configured.")
        try:
            document = self.store.read_state()
        except SyncFailure as exc:
            self._record_error(str(exc))
            raise
        if document is None:
            raise SyncFailure("No remote state saved yet.")
        with self._lock:
            self._last_load_at = utc_now()
            self._last_error = None
        logger.info("state pulled from remote keys=%d", len(document))
        return document

    def enable_order_stream(self, apply: OrdersApplier) -> None:
        """Replace the local order list with the remote collection on every change."""
        if self.store is None:
            raise SyncFailure("Remote mirror is not configured.")
        with self._lock:
            if self._unsubscribe is not None:
                return
        failed = threading.Event()

        def _deliver(rows: list[tuple[str, dict[str, Any]]]) -> None:
            apply([order_from_document(remote_id, document) for remote_id, document in rows])

        def _failed(exc: SyncFailure) -> None:
            logger.warning("order stream lost: %s", exc)
            with self._lock:
                failed.set()
                self._last_error = str(exc)
                self._unsubscribe = None

        unsubscribe = self.store.subscribe_orders(_deliver, _failed)
        with self._lock:
            if not failed.is_set():
                self._unsubscribe = unsubscribe
        if failed.is_set():
            unsubscribe()
            return
        logger.info("order stream enabled")

    def disable_order_stream(self) -> None:
        with self._lock:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
        if unsubscribe is None:
            return
        unsubscribe()
        logger.info("order stream disabled")

    def _loop(self) -> None:
        while not self._stop.wait(SYNC_POLL_SECONDS):
            self.tick()

    def start(self) -> None:
        if not self.enabled or self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="till-sync", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self.disable_order_stream()
        if self._thread is None:
            return
        self._stop.set()
        self._thread.join(timeout=2)
        self._thread = None
