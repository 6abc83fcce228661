from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container
from textual.message import Message
from textual.widget import Widget
from textual.widgets import Input, Label, Static, Switch


class LabeledField(Static):
    """Utility container with label above control."""

    DEFAULT_CSS = """
    LabeledField {
        layout: vertical;
        width: auto;
        min-width: 10;
        height: auto;
    }

    LabeledField > .field-label {
        color: $text-muted;
        height: 1;
    }

    LabeledField > .field-control {
        height: 3;
        width: auto;
    }
    """

    def __init__(self, label: str, control: Widget, *, id: str | None = None) -> None:
        super().__init__(id=id)
        self._label = Label(label, classes="field-label")
        self._control_wrapper = Container(control, classes="field-control")

    def compose(self) -> ComposeResult:
        yield self._label
        yield self._control_wrapper


class SearchBar(Container):
    """Query input, match options and the ``n/m`` match counter."""

    DEFAULT_CSS = """
    SearchBar {
        layout: horizontal;
        height: auto;
        padding: 0 2;
        background: $surface 5%;
        border-bottom: solid $surface 25%;
    }

    SearchBar #search-field {
        width: 1fr;
        margin-right: 1;
    }

    SearchBar #search-field > .field-control {
        width: 1fr;
    }

    SearchBar Input {
        height: 3;
        width: 1fr;
        border: tall $surface 25%;
        background: $surface 8%;
    }

    SearchBar Input.-pattern-invalid {
        border: tall #f87171;
        background: $surface 14%;
    }

    SearchBar LabeledField {
        margin-right: 1;
    }

    SearchBar #match-counter {
        width: 12;
        height: 3;
        padding: 1 1 0 1;
        content-align: right middle;
        color: $text-muted;
    }
    """

    OPTION_SWITCHES: tuple[tuple[str, str], ...] = (
        ("case-sensitive", "Case"),
        ("whole-word", "Word"),
        ("use-regex", "Regex"),
    )

    class Changed(Message):
        """Query text or one of the option switches changed."""

        def __init__(self, query: str, *, case_sensitive: bool, whole_word: bool, use_regex: bool) -> None:
            super().__init__()
            self.query = query
            self.case_sensitive = case_sensitive
            self.whole_word = whole_word
            self.use_regex = use_regex

    def __init__(self) -> None:
        super().__init__(id="search-bar")

    def compose(self) -> ComposeResult:
        yield LabeledField("Search", Input(placeholder="text or pattern", id="search-input"), id="search-field")
        for switch_id, label in self.OPTION_SWITCHES:
            yield LabeledField(label, Switch(value=False, id=switch_id), id=f"{switch_id}-field")
        yield Label("0/0", id="match-counter")

    @property
    def query_text(self) -> str:
        return self.query_one("#search-input", Input).value

    def option(self, switch_id: str) -> bool:
        return self.query_one(f"#{switch_id}", Switch).value

    def set_query_value(self, value: str) -> None:
        self.query_one("#search-input", Input).value = value

    def focus_input(self) -> None:
        self.query_one("#search-input", Input).focus()

    def show_counter(self, position: int, count: int, error: str | None = None) -> None:
        self.query_one("#match-counter", Label).update(f"{position}/{count}")
        query_input = self.query_one("#search-input", Input)
        query_input.set_class(error is not None, "-pattern-invalid")
        query_input.tooltip = error

    def _emit(self) -> None:
        self.post_message(
            self.Changed(
                self.query_text,
                case_sensitive=self.option("case-sensitive"),
                whole_word=self.option("whole-word"),
                use_regex=self.option("use-regex"),
            )
        )

    def on_input_changed(self, event: Input.Changed) -> None:
        if event.input.id == "search-input":
            event.stop()
            self._emit()

    def on_switch_changed(self, event: Switch.Changed) -> None:
        event.stop()
        self._emit()
