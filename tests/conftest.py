from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

from till.codec import iso
from till.data import default_state
from till.errors import SyncFailure
from till.models import DayMeta, Order
from till.orders import OrderLedger
from till.session import TillSession
from till.state import TillState

FIXED_NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

STOCK = {
    "meat": "1000",
    "buns": "20",
    "cheese": "20",
    "potatoes": "1500",
    "chicken": "600",
    "soda": "24",
}


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeRemoteStore:
    """In-memory RemoteStore; set ``fail`` to make every call raise SyncFailure."""

    def __init__(self) -> None:
        self.state: dict[str, Any] | None = None
        self.orders: dict[str, dict[str, Any]] = {}
        self.status: dict[str, Any] = {}
        self.merge_calls = 0
        self.fail = False
        self.subscribers: list = []
        self.stream_broken = False
        self._stream_errors: dict = {}
        self._next_id = 0

    def _check(self) -> None:
        if self.fail:
            raise SyncFailure("remote unavailable")

    def merge_state(self, document: dict[str, Any]) -> None:
        self._check()
        self.merge_calls += 1
        self.state = {**(self.state or {}), **document}

    def read_state(self) -> dict[str, Any] | None:
        self._check()
        return dict(self.state) if self.state is not None else None

    def create_order(self, document: dict[str, Any]) -> str:
        self._check()
        self._next_id += 1
        remote_id = f"r{self._next_id}"
        self.orders[remote_id] = dict(document)
        return remote_id

    def update_order(self, remote_id: str, fields: dict[str, Any]) -> bool:
        self._check()
        if remote_id not in self.orders:
            return False
        self.orders[remote_id].update(fields)
        return True

    def find_order_id(self, order_no: int, placed_at: datetime) -> str | None:
        self._check()
        for remote_id, document in self.orders.items():
            if document.get("orderNo") == order_no and document.get("date") == iso(placed_at):
                return remote_id
        return None

    def list_orders(self) -> list[tuple[str, dict[str, Any]]]:
        self._check()
        return list(reversed(list(self.orders.items())))

    def subscribe_orders(self, callback, on_error=None):
        if self.stream_broken:
            if on_error is not None:
                on_error(SyncFailure("change streams need a replica set"))
            return lambda: None
        self.subscribers.append(callback)
        self._stream_errors[callback] = on_error
        callback(self.list_orders())

        def _unsubscribe() -> None:
            if callback in self.subscribers:
                self.subscribers.remove(callback)

        return _unsubscribe

    def emit(self) -> None:
        for callback in list(self.subscribers):
            callback(self.list_orders())

    def drop_stream(self, message: str = "stream cursor killed") -> None:
        for callback in list(self.subscribers):
            self.subscribers.remove(callback)
            on_error = self._stream_errors.pop(callback, None)
            if on_error is not None:
                on_error(SyncFailure(message))

    def write_status(self, document: dict[str, Any]) -> None:
        self._check()
        self.status = dict(document)


def stock_up(state: TillState, levels: dict[str, str] = STOCK) -> TillState:
    for item_id, qty in levels.items():
        state.inventory.set_qty(item_id, qty)
    return state


def make_order(order_no: int, items_total: str, *, delivery_fee: str = "0", payment: str = "Cash", order_type: str = "Take-Away") -> Order:
    items = Decimal(items_total)
    fee = Decimal(delivery_fee)
    return Order(
        order_no=order_no,
        date=FIXED_NOW + timedelta(minutes=order_no),
        worker="Hassan",
        payment=payment,
        order_type=order_type,
        delivery_fee=fee,
        items_total=items,
        total=items + fee,
        cart=[],
    )


def place(state: TillState, *item_ids: int, payment: str = "Cash", order_type: str = "Take-Away", delivery_fee: object = 0, extras: tuple[int, ...] = ()) -> Order:
    """Add each item to the cart and check out as the active worker."""
    for item_id in item_ids:
        state.cart.add_line(state.catalog.get(item_id), [state.catalog.get(extra) for extra in extras])
    return state.orders.checkout(
        state.cart,
        worker=state.shift.current_worker,
        payment=payment,
        order_type=order_type,
        delivery_fee=delivery_fee,
        inventory=state.inventory,
        day=state.shift.meta,
        now=FIXED_NOW,
    )


@pytest.fixture
def state() -> TillState:
    return stock_up(default_state())


@pytest.fixture
def running(state: TillState) -> TillState:
    state.shift.start_shift("Hassan", inventory=state.inventory, now=FIXED_NOW)
    return state


@pytest.fixture
def active_day() -> DayMeta:
    return DayMeta(started_by="Hassan", started_at=FIXED_NOW)


@pytest.fixture
def ledger() -> OrderLedger:
    return OrderLedger()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def remote() -> FakeRemoteStore:
    return FakeRemoteStore()


class RecordingReport:
    def __init__(self, path: Path) -> None:
        self.path = path
        self.summaries: list = []

    def __call__(self, summary):
        self.summaries.append(summary)
        return self.path


class RecordingPrinter:
    def __init__(self, error: Exception | None = None) -> None:
        self.calls: list = []
        self.error = error

    def __call__(self, order, width_mm, copy):
        if self.error is not None:
            raise self.error
        self.calls.append((order.order_no, width_mm, copy))


@pytest.fixture
def report(tmp_path: Path) -> RecordingReport:
    return RecordingReport(tmp_path / "day_report.pdf")


@pytest.fixture
def printer() -> RecordingPrinter:
    return RecordingPrinter()


@pytest.fixture
def session(state: TillState, remote: FakeRemoteStore, report: RecordingReport, printer: RecordingPrinter, tmp_path: Path) -> TillSession:
    return TillSession.with_remote(
        state,
        remote,
        report=report,
        printer=printer,
        auto_print=True,
        db_path=tmp_path / "till.db",
        clock=lambda: FIXED_NOW,
    )
