"""Extras modal screen."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from till.models import ZERO, CatalogItem
from till.rendering import format_menu_item, money


class ExtrasModal(ModalScreen[list[int] | None]):
    """Toggle extras for one menu item before it goes into the cart."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("enter", "toggle_current", "Toggle"),
        ("y", "confirm", "Add to cart"),
    ]

    CSS = """
    ExtrasModal {
        align: center middle;
        background: $background 60%;
    }

    #extras-dialog {
        width: 64;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #extras-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #extras-body {
        margin-bottom: 1;
        color: white;
    }

    #extras-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, item: CatalogItem, extras: list[CatalogItem]) -> None:
        super().__init__()
        self.item = item
        self.extras = list(extras)
        self.selected: list[int] = []

    def compose(self) -> ComposeResult:
        with Container(id="extras-dialog"):
            yield Static("Extras", id="extras-title")
            yield Static(id="extras-body")
            yield Static("J/K/↑/↓ move, Enter toggle, Y add to cart, Esc cancel", id="extras-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_confirm(self) -> None:
        self.dismiss(list(self.selected))

    def action_move_cursor(self, delta: int) -> None:
        if not self.extras:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.extras)
        self._refresh_content()

    def action_toggle_current(self) -> None:
        if not self.extras:
            return
        extra_id = self.extras[self.cursor_index].item_id
        if extra_id in self.selected:
            self.selected.remove(extra_id)
        else:
            self.selected.append(extra_id)
        self._refresh_content()

    def _refresh_content(self) -> None:
        content = Text(style="white")
        content.append(format_menu_item(self.item), style="bold white")
        content.append("\n")
        for idx, extra in enumerate(self.extras):
            content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            is_checked = extra.item_id in self.selected
            checked = "[x]" if is_checked else "[ ]"
            content.append(f"{pointer}{checked} {extra.name}  +{money(extra.price)}", style="bold white" if is_checked else "white")
        total = self.item.price + sum((e.price for e in self.extras if e.item_id in self.selected), ZERO)
        content.append(f"\n\nLine total: {money(total)}", style="dim")
        self.query_one("#extras-body", Static).update(content)
