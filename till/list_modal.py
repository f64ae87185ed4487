"""Base for full-list management screens that drive session commands."""

from __future__ import annotations

from typing import Callable

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static

from till.errors import TillError
from till.session import TillSession


class SessionListModal(ModalScreen[None]):
    """A cursor over rows plus a message line; subclasses add the row actions."""

    BINDINGS = [
        ("escape", "close", "Close"),
        ("q", "close", "Close"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
    ]

    CSS = """
    SessionListModal {
        align: center middle;
        background: $background 60%;
    }

    #list-dialog {
        width: 72;
        height: auto;
        max-height: 90%;
        border: round $primary;
        background: $panel;
        padding: 1 2;
    }

    #list-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #list-message {
        margin-top: 1;
        color: #ffd27f;
    }

    #list-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    HELP = ""

    cursor_index = reactive(0)

    def __init__(self, session: TillSession) -> None:
        super().__init__()
        self.session = session
        self.message = ""

    def compose(self) -> ComposeResult:
        with Container(id="list-dialog"):
            yield Static(id="list-title")
            yield Static(id="list-body")
            yield Static(id="list-message")
            yield Static(f"{self.HELP}\nJ/K move, Esc/q close", id="list-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def title_text(self) -> str:
        return ""

    def row_labels(self) -> list[Text | str]:
        return []

    def action_close(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        count = len(self.row_labels())
        if not count:
            return
        self.cursor_index = (self.cursor_index + delta) % count
        self._refresh_content()

    def _run(self, action: Callable[[], object], success: str = "") -> bool:
        """Run one session command; domain errors land in the message line."""
        try:
            action()
        except TillError as exc:
            self.message = str(exc)
            self._refresh_content()
            return False
        self.message = success
        self._refresh_content()
        return True

    def _ask(self, screen: ModalScreen, then: Callable[[object], None]) -> None:
        def _answer(value: object) -> None:
            if value is None:
                self.message = "Cancelled"
                self._refresh_content()
                return
            then(value)

        self.app.push_screen(screen, _answer)

    def _refresh_content(self) -> None:
        rows = self.row_labels()
        if rows and self.cursor_index >= len(rows):
            self.cursor_index = len(rows) - 1
        body = Text(style="white")
        if not rows:
            body.append("(nothing here yet)", style="dim")
        for idx, row in enumerate(rows):
            if idx > 0:
                body.append("\n")
            body.append("➤ " if idx == self.cursor_index else "  ")
            body.append_text(row if isinstance(row, Text) else Text(row))
        self.query_one("#list-title", Static).update(self.title_text())
        self.query_one("#list-body", Static).update(body)
        self.query_one("#list-message", Static).update(self.message)
