"""Single-line text entry modal screen."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static


class PromptModal(ModalScreen[str | None]):
    """Prompt for a name, amount or PIN. Dismisses with None on cancel."""

    CSS = """
    PromptModal {
        align: center middle;
        background: $background 60%;
    }

    #prompt-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #prompt-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #prompt-text {
        color: white;
        margin-bottom: 1;
    }

    #prompt-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #prompt-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #prompt-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        prompt: str,
        *,
        secret: bool = False,
        numeric: bool = False,
        required: bool = True,
        max_length: int = 40,
    ) -> None:
        super().__init__()
        self.title_text = title
        self.prompt_text = prompt
        self.secret = secret
        self.numeric = numeric
        self.required = required
        self.max_length = max_length
        self.value = ""
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.prompt_text, id="prompt-text")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            yield Static("Enter confirm. Backspace delete. Esc cancel.", id="prompt-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character:
            char = event.character
            if self.numeric and not (char.isdigit() or char == "."):
                event.stop()
                return
            if len(self.value) < self.max_length:
                self.value += char
            self.error = ""
            self._refresh_content()
            event.stop()

    def _confirm(self) -> None:
        value = self.value.strip()
        if self.required and not value:
            self.error = "A value is required."
            self._refresh_content()
            return
        self.dismiss(value)

    def _refresh_content(self) -> None:
        shown = "*" * len(self.value) if self.secret else self.value
        self.query_one("#prompt-value", Static).update(shown)
        self.query_one("#prompt-error", Static).update(self.error)
