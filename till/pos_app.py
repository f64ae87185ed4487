"""Main Textual app class."""

from __future__ import annotations

import logging
from typing import Callable

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.events import Key
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Header, Static

from till.auth import parse_admin_number
from till.choice_modal import ChoiceModal
from till.config import LOCAL_SAVE_INTERVAL_SECONDS, SHOP_TITLE
from till.editor_modal import EditorModal
from till.errors import TillError
from till.extras_modal import ExtrasModal
from till.inventory_modal import InventoryModal
from till.models import BankTxType, CatalogItem, CopyKind, Order
from till.printer import check_printer_dependencies
from till.prompt_modal import PromptModal
from till.rendering import format_cart_line, format_menu_item, format_order_row, money
from till.session import TillSession

logger = logging.getLogger(__name__)

_YES = "Yes"
_NO = "No"


class TillApp(App):
    """A Textual till: search the menu, build a cart, check out and track orders."""

    TITLE = SHOP_TITLE
    SUB_TITLE = "Till"

    CSS = """
    Screen {
        layout: vertical;
    }

    #main-layout {
        height: 1fr;
    }

    #orders-pane {
        width: 3fr;
        border: round $primary;
        padding: 1;
    }

    #cart-pane {
        width: 2fr;
        border: round $primary;
        padding: 1;
    }

    #search-pane {
        width: 2fr;
        border: round $secondary;
        padding: 1;
    }

    #search-bar {
        border: heavy $secondary;
        padding: 0 1;
        margin-bottom: 1;
        height: 3;
    }

    #results, #orders-list, #cart-list {
        height: 1fr;
        border: tall $surface;
        padding: 0 1;
    }

    #status-line {
        height: 1;
        padding: 0 1;
        background: $panel;
    }

    .pane-title {
        text-style: bold;
        margin-bottom: 1;
    }
    """

    input_state = reactive("normal")
    query = reactive("")
    selected_index = reactive(0)
    order_selected_index = reactive(None)

    BINDINGS = [
        ("tab", "cycle_results(1)", "Next result"),
        ("up", "cycle_results(-1)", "Previous result"),
        ("down", "cycle_results(1)", "Next result"),
        ("enter", "register_selected", "Add item"),
        ("backspace", "backspace_query", "Delete query char"),
        Binding("ctrl+s", "push_remote", "Save to cloud", priority=True),
        Binding("ctrl+l", "pull_remote", "Load from cloud", priority=True),
        ("ctrl+c", "cancel_active_mode", "Exit search"),
        ("ctrl+q", "quit", "Quit"),
    ]

    def __init__(self, session: TillSession) -> None:
        super().__init__()
        self.session = session
        self.system_status = ""

    def compose(self) -> ComposeResult:
        yield Header()
        with Horizontal(id="main-layout"):
            with Vertical(id="orders-pane"):
                yield Static("Orders", classes="pane-title")
                yield Static("(no orders yet)", id="orders-list")
            with Vertical(id="cart-pane"):
                yield Static("Cart", classes="pane-title")
                yield Static("(empty)", id="cart-list")
            with Vertical(id="search-pane"):
                yield Static(id="search-bar")
                yield Static(id="results")
        yield Static(id="status-line")

    def on_mount(self) -> None:
        _, msg = check_printer_dependencies()
        self.system_status = msg
        logger.info("app mounted printer_status=%r", msg)
        self.set_interval(LOCAL_SAVE_INTERVAL_SECONDS, self._autosave)
        self.set_interval(1.0, self._refresh_all)
        self._refresh_all()

    def on_unmount(self) -> None:
        self.session.close()

    def _autosave(self) -> None:
        try:
            self.session.autosave()
        except OSError as exc:
            logger.error("local save failed: %s", exc)
            self.system_status = f"Local save failed: {exc}"

    def _run(self, action: Callable[[], object], success: str = "") -> bool:
        """Run one session command; domain errors land in the status line."""
        try:
            action()
        except TillError as exc:
            self.system_status = str(exc)
            self._refresh_all()
            return False
        if success:
            self.system_status = success
        self._refresh_all()
        return True

    def _ask(self, screen: ModalScreen, then: Callable[[object], None]) -> None:
        """Push a modal and continue with its answer unless it was cancelled."""

        def _answer(value: object) -> None:
            if value is None:
                self.system_status = "Cancelled"
                self._refresh_all()
                return
            then(value)

        self.push_screen(screen, _answer)

    def on_key(self, event: Key) -> None:
        if isinstance(self.screen, ModalScreen):
            return

        if not event.is_printable or not event.character or len(event.character) != 1:
            return

        if self.input_state == "active":
            self.query += event.character
            self.selected_index = 0
            self._refresh_search()
            event.stop()
            return

        handlers = {
            "/": self._start_search,
            "j": lambda: self._move_order_selection(1),
            "k": lambda: self._move_order_selection(-1),
            "c": self._checkout,
            "r": self._remove_last_cart_line,
            "d": self._mark_selected_done,
            "v": self._void_selected,
            "p": lambda: self._print_selected(CopyKind.CUSTOMER),
            "t": lambda: self._print_selected(CopyKind.KITCHEN),
            "w": self._start_shift,
            "h": self._change_shift,
            "e": self._end_day,
            "l": self._lock_inventory,
            "u": self._unlock_inventory,
            "x": self._expenses,
            "i": self._open_inventory,
            "m": self._open_editor,
            "a": self._change_admin_pin,
            "g": self._generate_report,
            "b": self._bank_entry,
            "o": self._toggle_order_stream,
        }
        handler = handlers.get(event.character.lower())
        if handler is None:
            return
        handler()
        event.stop()

    # search and cart

    def _start_search(self) -> None:
        self.input_state = "active"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cancel_active_mode(self) -> None:
        if isinstance(self.screen, ModalScreen):
            return
        if self.input_state == "normal":
            return
        self.input_state = "normal"
        self.query = ""
        self.selected_index = 0
        self._refresh_search()

    def action_cycle_results(self, delta: int) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            self.selected_index = 0
            self._refresh_results(results)
            return
        self.selected_index = (self.selected_index + delta) % len(results)
        self._refresh_results(results)

    def action_backspace_query(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "active":
            return
        if not self.query:
            return
        self.query = self.query[:-1]
        self.selected_index = 0
        self._refresh_search()

    def action_register_selected(self) -> None:
        if isinstance(self.screen, ModalScreen) or self.input_state != "active":
            return
        results = self._filtered_results()
        if not results:
            return
        item = results[self.selected_index]
        extras = list(self.session.state.catalog.extras)
        if not extras:
            self._run(lambda: self.session.add_to_cart(item.item_id), f"Added {item.name}")
            return
        self._ask(
            ExtrasModal(item, extras),
            lambda extra_ids: self._run(
                lambda: self.session.add_to_cart(item.item_id, list(extra_ids)), f"Added {item.name}"
            ),
        )

    def _remove_last_cart_line(self) -> None:
        cart = self.session.state.cart
        if cart.is_empty:
            return
        self._run(lambda: self.session.remove_from_cart(len(cart) - 1), "Removed last cart line")

    def _checkout(self) -> None:
        state = self.session.state
        if state.cart.is_empty:
            self.system_status = "Cart is empty"
            self._refresh_all()
            return

        def _with_payment(payment: object) -> None:
            self._ask(
                ChoiceModal("Order type", state.settings.order_types),
                lambda order_type: self._ask(
                    PromptModal("Note", "Optional note for the kitchen", required=False),
                    lambda note: self._finish_checkout(str(payment), str(order_type), str(note)),
                ),
            )

        self._ask(ChoiceModal("Payment", state.settings.payment_methods), _with_payment)

    def _finish_checkout(self, payment: str, order_type: str, note: str) -> None:
        placed: list[Order] = []
        ok = self._run(lambda: placed.append(self.session.checkout(payment=payment, order_type=order_type, note=note)))
        if ok:
            order = placed[0]
            self.order_selected_index = 0
            self.system_status = f"Order #{order.order_no} placed, total {money(order.total)}"
            self._refresh_all()

    # orders

    def _selected_order(self) -> Order | None:
        orders = self.session.state.orders.orders
        if self.order_selected_index is None or not (0 <= self.order_selected_index < len(orders)):
            return None
        return orders[self.order_selected_index]

    def _move_order_selection(self, delta: int) -> None:
        orders = self.session.state.orders.orders
        if not orders:
            return
        if self.order_selected_index is None:
            self.order_selected_index = 0 if delta > 0 else len(orders) - 1
        else:
            self.order_selected_index = (self.order_selected_index + delta) % len(orders)
        self._refresh_orders()

    def _mark_selected_done(self) -> None:
        order = self._selected_order()
        if order is not None:
            self._run(lambda: self.session.mark_done(order.order_no), f"Order #{order.order_no} done")

    def _void_selected(self) -> None:
        order = self._selected_order()
        if order is None:
            return
        self._ask(
            ChoiceModal(f"Void order #{order.order_no} and restock?", [_NO, _YES]),
            lambda answer: answer == _YES
            and self._run(lambda: self.session.void_order(order.order_no), f"Order #{order.order_no} voided"),
        )

    def _print_selected(self, copy: CopyKind) -> None:
        order = self._selected_order()
        if order is None:
            return
        printed: list[bool] = []
        if self._run(lambda: printed.append(self.session.print_order(order.order_no, copy))) and printed[0]:
            self.system_status = f"Printed {copy.value.lower()} copy of #{order.order_no}"
            self._refresh_all()

    # shift, day and inventory

    def _start_shift(self) -> None:
        def _started(name: object) -> None:
            offer: list[bool] = []
            if self._run(lambda: offer.append(self.session.start_shift(str(name))), f"Shift started by {name}") and offer[0]:
                self._ask(
                    ChoiceModal("Lock inventory now? This captures the start-of-day snapshot.", [_YES, _NO]),
                    lambda answer: answer == _YES
                    and self._run(lambda: self.session.lock_inventory(confirmed=True), "Inventory locked"),
                )

        self._ask(ChoiceModal("Who is starting the shift?", self.session.state.settings.workers), _started)

    def _change_shift(self) -> None:
        self._ask(
            PromptModal("Change shift", "Confirm the current worker's name"),
            lambda current: self._ask(
                PromptModal("Change shift", "Name of the new worker"),
                lambda new: self._run(lambda: self.session.change_shift(str(current), str(new)), f"Shift handed to {new}"),
            ),
        )

    def _end_day(self) -> None:
        def _confirmed(name: object) -> None:
            closed: list = []
            if self._run(lambda: closed.append(self.session.end_day(str(name)))):
                day = closed[0]
                self.order_selected_index = None
                self.system_status = f"Day ended by {day.ended_by}, margin {money(day.margin)}, report {day.report_path}"
                self._refresh_all()

        self._ask(PromptModal("End day", "Your name"), _confirmed)

    def _lock_inventory(self) -> None:
        self._ask(
            ChoiceModal("Lock inventory? This captures the start-of-day snapshot.", [_NO, _YES]),
            lambda answer: answer == _YES
            and self._run(lambda: self.session.lock_inventory(confirmed=True), "Inventory locked"),
        )

    def _with_admin(self, title: str, then: Callable[[int, str], None]) -> None:
        def _number(raw: object) -> None:
            try:
                admin_number = parse_admin_number(raw)
            except TillError as exc:
                self.system_status = str(exc)
                self._refresh_all()
                return
            if admin_number is None:
                return
            self._ask(
                PromptModal(title, f"PIN for admin #{admin_number}", secret=True, numeric=True),
                lambda pin: then(admin_number, str(pin)),
            )

        self._ask(PromptModal(title, "Admin number (1-6)", numeric=True, max_length=1), _number)

    def _unlock_inventory(self) -> None:
        self._with_admin(
            "Unlock inventory",
            lambda number, pin: self._run(lambda: self.session.unlock_inventory(number, pin), "Inventory unlocked"),
        )

    def _open_inventory(self) -> None:
        self.push_screen(InventoryModal(self.session), lambda _: self._refresh_all())

    def _generate_report(self) -> None:
        written: list = []
        if self._run(lambda: written.append(self.session.generate_report())):
            self.system_status = f"Report written to {written[0]}"
            self._refresh_all()

    # editor and admin PINs

    def _open_editor(self) -> None:
        def _open() -> None:
            self.push_screen(EditorModal(self.session), lambda _: self._refresh_all())

        if self.session.state.gate.editor_unlocked:
            _open()
            return
        self._ask(
            PromptModal("Menu editor", "Editor PIN", secret=True),
            lambda pin: self._run(lambda: self.session.unlock_editor(str(pin))) and _open(),
        )

    def _change_admin_pin(self) -> None:
        self._with_admin(
            "Change admin PIN",
            lambda number, current: self._ask(
                PromptModal("Change admin PIN", f"New PIN for admin #{number}", secret=True, numeric=True),
                lambda new: self._run(
                    lambda: self.session.change_admin_pin(number, current, str(new)), f"PIN changed for admin #{number}"
                ),
            ),
        )

    # expenses and bank

    def _expenses(self) -> None:
        self._ask(
            ChoiceModal("Expenses", ["Add expense", "Delete expense"]),
            lambda choice: self._add_expense() if choice == "Add expense" else self._delete_expense(),
        )

    def _delete_expense(self) -> None:
        expenses = self.session.state.expenses.expenses
        labels = {f"{e.name}  {e.qty} x {money(e.unit_price)} = {money(e.total)}  ({e.expense_id})": e for e in expenses}
        self._ask(
            ChoiceModal("Delete which expense?", list(labels)),
            lambda label: self._run(
                lambda: self.session.delete_expense(labels[str(label)].expense_id), f"Deleted {labels[str(label)].name}"
            ),
        )

    def _add_expense(self) -> None:
        self._ask(
            PromptModal("Add expense", "What was bought?"),
            lambda name: self._ask(
                PromptModal("Add expense", "Quantity", numeric=True),
                lambda qty: self._ask(
                    PromptModal("Add expense", "Unit price", numeric=True),
                    lambda price: self._run(
                        lambda: self.session.add_expense(str(name), qty=qty, unit_price=price), f"Expense {name} added"
                    ),
                ),
            ),
        )

    def _bank_entry(self) -> None:
        def _record() -> None:
            self._ask(
                ChoiceModal("Bank transaction", [kind.value for kind in BankTxType]),
                lambda kind: self._ask(
                    PromptModal("Bank transaction", "Amount", numeric=True),
                    lambda amount: self._run(
                        lambda: self.session.add_bank_transaction(str(kind), amount),
                        f"Bank balance {money(self.session.state.bank.balance())}",
                    ),
                ),
            )

        if self.session.state.gate.bank_unlocked:
            _record()
            return
        self._with_admin(
            "Open bank",
            lambda number, pin: self._run(lambda: self.session.open_bank(number, pin)) and _record(),
        )

    # remote

    def action_push_remote(self) -> None:
        self._run(self.session.push_now, "Saved to cloud")

    def action_pull_remote(self) -> None:
        self._run(self.session.pull, "Loaded from cloud")

    def _toggle_order_stream(self) -> None:
        enabled = not self.session.sync_status().streaming
        if not enabled:
            self._run(lambda: self.session.set_order_stream(False), "Live orders off")
            return
        self._ask(
            ChoiceModal("Live orders replace the local list with the cloud copy. Continue?", [_NO, _YES]),
            lambda answer: answer == _YES
            and self._run(lambda: self.session.set_order_stream(True), "Live orders on"),
        )

    # refresh

    def _filtered_results(self) -> list[CatalogItem]:
        source = self.session.state.catalog.items
        if not self.query:
            return source
        q = self.query.lower()
        return [item for item in source if q in item.name.lower()]

    def _refresh_all(self) -> None:
        self._refresh_orders()
        self._refresh_cart()
        self._refresh_search()
        self._refresh_status()

    def _visible_rows(self, widget: Static) -> int:
        height = widget.size.height
        if height <= 0:
            return 8
        return max(1, height)

    def _window_bounds(self, total: int, rows: int, selected: int | None) -> tuple[int, int]:
        if total <= 0:
            return (0, 0)

        rows = max(1, rows)
        if total <= rows:
            return (0, total)

        start = 0 if selected is None else max(0, min(selected - rows // 2, total - rows))
        return (start, start + rows)

    def _refresh_orders(self) -> None:
        try:
            orders_widget = self.query_one("#orders-list", Static)
        except NoMatches:
            return
        orders = list(self.session.state.orders.orders)
        if not orders:
            self.order_selected_index = None
            orders_widget.update("(no orders yet)")
            return

        if self.order_selected_index is not None and self.order_selected_index >= len(orders):
            self.order_selected_index = len(orders) - 1

        start, end = self._window_bounds(len(orders), self._visible_rows(orders_widget), self.order_selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            lines.append("➤ " if idx == self.order_selected_index else "  ")
            lines.append_text(format_order_row(orders[idx]))
        if end < len(orders):
            lines.append("\n⋮", style="dim")
        orders_widget.update(lines)

    def _refresh_cart(self) -> None:
        try:
            cart_widget = self.query_one("#cart-list", Static)
        except NoMatches:
            return
        cart = self.session.state.cart
        if cart.is_empty:
            cart_widget.update("(empty)")
            return
        lines = Text()
        for idx, line in enumerate(cart.lines):
            if idx > 0:
                lines.append("\n")
            lines.append_text(format_cart_line(idx, line))
        lines.append(f"\n\nItems total: {money(cart.items_total())}", style="bold")
        cart_widget.update(lines)

    def _refresh_search(self) -> None:
        self._refresh_search_bar()
        if self.input_state == "normal":
            self._refresh_results([])
            return
        self._refresh_results(self._filtered_results())

    def _refresh_search_bar(self) -> None:
        try:
            bar = self.query_one("#search-bar", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            status = self.system_status or "Ready"
            bar.update(f"/ search menu, C checkout, W start shift, I inventory, M menu editor.\n{status}")
            return
        bar.update(f"Menu: {self.query}")

    def _refresh_results(self, results: list[CatalogItem]) -> None:
        try:
            results_widget = self.query_one("#results", Static)
        except NoMatches:
            return
        if self.input_state == "normal":
            results_widget.update("")
            return
        if not results:
            results_widget.update("No results")
            return
        if self.selected_index >= len(results):
            self.selected_index = 0

        start, end = self._window_bounds(len(results), self._visible_rows(results_widget), self.selected_index)
        lines = Text()
        if start > 0:
            lines.append("⋮\n", style="dim")
        for idx in range(start, end):
            if idx > start:
                lines.append("\n")
            pointer = "➤ " if idx == self.selected_index else "  "
            lines.append(f"{pointer}{format_menu_item(results[idx])}")
        if end < len(results):
            lines.append("\n⋮", style="dim")
        results_widget.update(lines)

    def _refresh_status(self) -> None:
        try:
            self.query_one("#status-line", Static).update(self.session.status_text())
        except NoMatches:
            return
