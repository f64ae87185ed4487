"""Pick-one modal screen."""

from __future__ import annotations

from rich.text import Text
from textual.app import ComposeResult
from textual.containers import Container
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Static


class ChoiceModal(ModalScreen[str | None]):
    """Centered list of options; Enter picks the highlighted one."""

    BINDINGS = [
        ("escape", "cancel", "Cancel"),
        ("q", "cancel", "Cancel"),
        ("ctrl+c", "cancel", "Cancel"),
        ("j", "move_cursor(1)", "Next"),
        ("k", "move_cursor(-1)", "Previous"),
        ("up", "move_cursor(-1)", "Previous"),
        ("down", "move_cursor(1)", "Next"),
        ("enter", "pick", "Pick"),
    ]

    CSS = """
    ChoiceModal {
        align: center middle;
        background: $background 60%;
    }

    #choice-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #choice-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #choice-help {
        margin-top: 1;
        color: #dddddd;
    }
    """

    cursor_index = reactive(0)

    def __init__(self, title: str, options: list[str]) -> None:
        super().__init__()
        self.title_text = title
        self.options = list(options)

    def compose(self) -> ComposeResult:
        with Container(id="choice-dialog"):
            yield Static(self.title_text, id="choice-title")
            yield Static(id="choice-body")
            yield Static("J/K/↑/↓ move, Enter pick, Esc/q cancel", id="choice-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def action_cancel(self) -> None:
        self.dismiss(None)

    def action_move_cursor(self, delta: int) -> None:
        if not self.options:
            return
        self.cursor_index = (self.cursor_index + delta) % len(self.options)
        self._refresh_content()

    def action_pick(self) -> None:
        if not self.options:
            self.dismiss(None)
            return
        self.dismiss(self.options[self.cursor_index])

    def _refresh_content(self) -> None:
        content = Text(style="white")
        if not self.options:
            content.append("(nothing to choose)", style="dim")
        for idx, option in enumerate(self.options):
            if idx > 0:
                content.append("\n")
            pointer = "➤ " if idx == self.cursor_index else "  "
            content.append(f"{pointer}{option}", style="bold white" if idx == self.cursor_index else "white")
        self.query_one("#choice-body", Static).update(content)
