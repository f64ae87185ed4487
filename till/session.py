"""The command surface the front end drives."""

from __future__ import annotations

import functools
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, TypeVar

from till.codec import apply_state, order_state_fields, pack_state, unpack_state
from till.config import AUTO_PRINT_CUSTOMER_COPY, DB_PATH
from till.errors import NotAuthorized
from till.models import BankTransaction, BankTxType, CatalogItem, CopyKind, Expense, InventoryItem, Order
from till.persistence import bootstrap_schema, load_snapshot, save_snapshot
from till.printer import ensure_printable, print_order_ticket
from till.report import PdfReportGenerator
from till.shift import DayClose, ReportWriter
from till.state import TillState
from till.sync import SyncEngine, SyncStatus

logger = logging.getLogger(__name__)

Printer = Callable[[Order, int, CopyKind], None]
T = TypeVar("T")


def command(fn: Callable[..., T]) -> Callable[..., T]:
    """Run a state-changing command under the session lock, then mark state dirty."""

    @functools.wraps(fn)
    def wrapper(self: TillSession, *args: Any, **kwargs: Any) -> T:
        with self._lock:
            result = fn(self, *args, **kwargs)
            self._changed()
        return result

    return wrapper


class TillSession:
    """
    Owns one TillState and routes every user action to the aggregate that
    owns the data, passing collaborators explicitly.

    Local state is authoritative: remote mirroring and printing are best
    effort and report problems through ``sync_status()`` / ``last_print_error``.
    """

    def __init__(
        self,
        state: TillState,
        *,
        sync: SyncEngine | None = None,
        report: ReportWriter | None = None,
        printer: Printer | None = print_order_ticket,
        auto_print: bool = AUTO_PRINT_CUSTOMER_COPY,
        db_path: str | Path = DB_PATH,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.state = state
        self._lock = threading.RLock()
        self.sync = sync or SyncEngine(None, self.snapshot)
        self.report = report or PdfReportGenerator()
        self.printer = printer
        self.auto_print = auto_print
        self.db_path = db_path
        self._clock = clock
        self.dirty = False
        self.last_print_error: str | None = None

    @classmethod
    def with_remote(cls, state: TillState, store: Any, **kwargs: Any) -> TillSession:
        """Build a session whose sync engine mirrors to ``store``."""
        session = cls(state, **kwargs)
        session.sync = SyncEngine(
            store,
            session.snapshot,
            on_order_mirrored=session._order_mirrored,
            presence=session.presence,
        )
        return session

    def _now(self) -> datetime | None:
        return self._clock() if self._clock else None

    def _changed(self) -> None:
        self.dirty = True
        self.sync.notify_changed()

    # snapshots

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return pack_state(self.state)

    def presence(self) -> dict[str, Any]:
        with self._lock:
            return {"worker": self.state.shift.current_worker, "shiftActive": self.state.shift.is_active}

    def load_local(self) -> None:
        bootstrap_schema(self.db_path)
        values = load_snapshot(self.db_path)
        with self._lock:
            apply_state(self.state, unpack_state(values))
        logger.info("local snapshot loaded keys=%d", len(values))

    def save_local(self) -> None:
        values = self.snapshot()
        bootstrap_schema(self.db_path)
        save_snapshot(values, self.db_path)
        self.dirty = False

    def autosave(self) -> bool:
        if not self.dirty:
            return False
        self.save_local()
        return True

    # shift and day

    @command
    def start_shift(self, worker_name: str) -> bool:
        return self.state.shift.start_shift(worker_name, inventory=self.state.inventory, now=self._now())

    @command
    def change_shift(self, confirm_current: str, new_name: str) -> None:
        self.state.shift.change_shift(confirm_current, new_name, now=self._now())

    @command
    def end_day(self, ended_by: str) -> DayClose:
        state = self.state
        closed = state.shift.end_day(
            ended_by,
            orders=state.orders,
            inventory=state.inventory,
            expenses=state.expenses,
            bank=state.bank,
            settings=state.settings,
            report=self.report,
            now=self._now(),
        )
        state.cart.clear()
        self.sync.forget_orders()
        return closed

    @command
    def generate_report(self) -> Path:
        state = self.state
        return state.shift.generate_report(
            orders=state.orders,
            inventory=state.inventory,
            expenses=state.expenses,
            settings=state.settings,
            report=self.report,
            now=self._now(),
        )

    # inventory

    @command
    def lock_inventory(self, *, confirmed: bool) -> bool:
        return self.state.inventory.lock(confirmed=confirmed, now=self._now())

    @command
    def unlock_inventory(self, admin_number: int, pin: str) -> bool:
        return self.state.inventory.unlock(admin_number, pin, self.state.gate)

    @command
    def add_inventory_item(self, name: str, unit: str = "pcs", qty: object = 0) -> InventoryItem:
        return self.state.inventory.add_item(name, unit, qty)

    @command
    def delete_inventory_item(self, item_id: str) -> None:
        self.state.inventory.delete_item(item_id)

    @command
    def set_inventory_qty(self, item_id: str, qty: object) -> bool:
        return self.state.inventory.set_qty(item_id, qty)

    # cart and orders

    def add_to_cart(self, item_id: int, extra_ids: list[int] | tuple[int, ...] = ()) -> None:
        with self._lock:
            catalog = self.state.catalog
            item = catalog.get(item_id)
            extras = [catalog.get(extra_id) for extra_id in extra_ids]
            self.state.cart.add_line(item, extras)

    def remove_from_cart(self, index: int) -> None:
        with self._lock:
            self.state.cart.remove_line(index)

    def clear_cart(self) -> None:
        with self._lock:
            self.state.cart.clear()

    def checkout(
        self,
        *,
        payment: str,
        order_type: str,
        delivery_fee: object | None = None,
        note: str = "",
        worker: str | None = None,
    ) -> Order:
        with self._lock:
            state = self.state
            order = state.orders.checkout(
                state.cart,
                worker=state.shift.current_worker if worker is None else worker,
                payment=payment,
                order_type=order_type,
                delivery_fee=state.settings.default_delivery_fee if delivery_fee is None else delivery_fee,
                note=note,
                inventory=state.inventory,
                day=state.shift.meta,
                now=self._now(),
            )
            self._changed()
            self.sync.mirror_order(order)
        if self.auto_print:
            self._print(order, CopyKind.CUSTOMER)
        return order

    def mark_done(self, order_no: int) -> bool:
        with self._lock:
            changed = self.state.orders.mark_done(order_no)
            if changed:
                order = self.state.orders.get(order_no)
                self._changed()
                self.sync.mirror_order_update(order, order_state_fields(order))
        return changed

    def void_order(self, order_no: int) -> Order:
        with self._lock:
            order = self.state.orders.void_and_restock(order_no, inventory=self.state.inventory, now=self._now())
            self._changed()
            self.sync.mirror_order_update(order, order_state_fields(order))
        return order

    def _order_mirrored(self, order_no: int, placed_at: datetime, remote_id: str) -> None:
        with self._lock:
            self.state.orders.attach_remote_id(order_no, remote_id, placed_at)
            self._changed()

    # printing

    def _print(self, order: Order, copy: CopyKind, width_mm: int = 58) -> bool:
        if self.printer is None:
            return False
        try:
            self.printer(order, width_mm, copy)
        except Exception as exc:
            logger.warning("print failed order_no=%d: %s", order.order_no, exc)
            self.last_print_error = str(exc)
            return False
        self.last_print_error = None
        return True

    def print_order(self, order_no: int, copy: CopyKind = CopyKind.CUSTOMER, width_mm: int = 58) -> bool:
        """Print a stored order; refusals raise, device problems return False."""
        with self._lock:
            order = self.state.orders.get(order_no)
        ensure_printable(order, copy)
        return self._print(order, copy, width_mm)

    # catalog and settings (editor PIN)

    def unlock_editor(self, pin: str) -> bool:
        return self.state.gate.unlock_editor(pin)

    def _require_editor(self) -> None:
        if not self.state.gate.editor_unlocked:
            raise NotAuthorized("Enter the editor PIN first.")

    @command
    def add_catalog_item(self, name: str, price: object, *, extra: bool = False) -> CatalogItem:
        self._require_editor()
        return self.state.catalog.add_item(name, price, extra=extra)

    @command
    def rename_catalog_item(self, item_id: int, name: str) -> None:
        self._require_editor()
        self.state.catalog.rename(item_id, name)

    @command
    def set_catalog_price(self, item_id: int, price: object) -> None:
        self._require_editor()
        self.state.catalog.set_price(item_id, price)

    @command
    def set_recipe_entry(self, item_id: int, inventory_id: str, qty: object) -> None:
        self._require_editor()
        self.state.catalog.set_recipe_entry(item_id, inventory_id, qty, inventory=self.state.inventory)

    @command
    def delete_catalog_item(self, item_id: int) -> None:
        self._require_editor()
        self.state.catalog.delete(item_id)

    @command
    def add_setting(self, kind: str, value: str) -> str:
        self._require_editor()
        settings = self.state.settings
        adders = {
            "worker": settings.add_worker,
            "payment": settings.add_payment_method,
            "order_type": settings.add_order_type,
        }
        return adders[kind](value)

    @command
    def remove_setting(self, kind: str, value: str) -> None:
        self._require_editor()
        settings = self.state.settings
        removers = {
            "worker": settings.remove_worker,
            "payment": settings.remove_payment_method,
            "order_type": settings.remove_order_type,
        }
        removers[kind](value)

    @command
    def set_default_delivery_fee(self, fee: object) -> None:
        self._require_editor()
        self.state.settings.set_default_delivery_fee(fee)

    @command
    def change_admin_pin(self, admin_number: int, current_pin: str, new_pin: str) -> None:
        self.state.gate.change_pin(admin_number, current_pin, new_pin)

    # expenses and bank

    @command
    def add_expense(self, name: str, *, unit: str = "pcs", qty: object = 1, unit_price: object = 0, note: str = "") -> Expense:
        return self.state.expenses.add(name, unit=unit, qty=qty, unit_price=unit_price, note=note, now=self._now())

    @command
    def delete_expense(self, expense_id: str) -> None:
        self.state.expenses.delete(expense_id)

    def open_bank(self, admin_number: int, pin: str) -> bool:
        return self.state.gate.open_bank(admin_number, pin)

    @command
    def add_bank_transaction(self, tx_type: BankTxType | str, amount: object, note: str = "") -> BankTransaction:
        if not self.state.gate.bank_unlocked:
            raise NotAuthorized("Open the bank with an admin PIN first.")
        return self.state.bank.add(
            tx_type, amount, worker=self.state.shift.current_worker, note=note, now=self._now()
        )

    # remote

    def push_now(self) -> None:
        self.sync.push_now()

    def pull(self) -> None:
        """Replace local state with the remote full-state document."""
        document = self.sync.pull()
        with self._lock:
            apply_state(self.state, unpack_state(document))
            self.dirty = True

    def _apply_remote_orders(self, orders: list[Order]) -> None:
        with self._lock:
            self.state.orders.replace_all(orders)
            self.dirty = True

    def set_order_stream(self, enabled: bool) -> None:
        if enabled:
            self.sync.enable_order_stream(self._apply_remote_orders)
        else:
            self.sync.disable_order_stream()

    def sync_status(self) -> SyncStatus:
        return self.sync.status()

    def status_text(self) -> str:
        with self._lock:
            shift = self.state.shift
            inventory = self.state.inventory
            parts = [f"Shift: {shift.current_worker}" if shift.is_active else "No active shift"]
            parts.append("Inventory locked" if inventory.locked else "Inventory unlocked")
            parts.append(f"Next #{self.state.orders.next_order_no}")
        parts.append(self.sync.status().describe())
        if self.last_print_error:
            parts.append(f"Print error: {self.last_print_error}")
        return " | ".join(parts)

    def close(self) -> None:
        self.sync.stop()
        self.save_local()
        self.state.gate.end_session()
