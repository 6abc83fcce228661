from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Iterable, Literal, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Label, RichLog

from .cancellation import OperationCancelled
from .config import SyncConfig, load_config
from .errors import LogFileError
from .resolver import NearestMatchResolver, Resolution
from .search import IncrementalSearchEngine, SearchState
from .services import normalize_path, read_lines
from .summary import DETAIL_FIELDS, LogEntry, detail_fields, filter_entries, load_summary
from .tail import LogTailer
from .timeline import TimelineCache
from .widgets.search_bar import SearchBar

logger = logging.getLogger(__name__)

LINE_NUMBER_WIDTH = 6

DETAIL_LABELS = {
    "data_no": "Data #",
    "port": "Port",
    "name": "Name",
    "location": "Location",
    "duration": "Duration",
    "start": "Start",
    "end": "End",
}


class LogSyncApp(App[None]):
    CSS = """
    Screen { layout: vertical; }

    #main-content {
        height: 1fr;
        min-height: 1;
    }

    #summary-panel,
    #viewer-panel {
        height: 1fr;
    }

    #summary-panel {
        width: 2fr;
        min-width: 30;
        border-right: solid $surface 15%;
        padding: 0 1;
    }

    #viewer-panel {
        width: 3fr;
        min-width: 40;
        padding: 0 1;
    }

    #summary-table,
    #target-log {
        height: 1fr;
        border: solid $surface 20%;
    }

    .panel-title {
        padding: 0 0 1 0;
        text-style: bold;
    }

    Toast.-information {
        background: #14532d;
        color: #f0fdf4;
    }

    Toast.-warning {
        background: #713f12;
        color: #fefce8;
    }

    Toast.-error {
        background: #7f1d1d;
        color: #fee2e2;
    }
    """
    BINDINGS = [
        Binding("ctrl+f", "focus_search", "Search"),
        Binding("/", "focus_search", "Search", show=False),
        Binding("n", "next_match", "Next match"),
        Binding("N", "prev_match", "Previous match"),
        Binding("s", "toggle_auto_sync", "Auto sync"),
        Binding("q", "quit_app", "Quit"),
    ]

    def __init__(
        self,
        summary_path: str | Path | None = None,
        target_path: str | Path | None = None,
        *,
        categories: Iterable[str] = (),
        config: SyncConfig | None = None,
    ) -> None:
        super().__init__()
        self._config = config or load_config()
        self._summary_path = normalize_path(summary_path) if summary_path else None
        self._initial_target = normalize_path(target_path) if target_path else None
        self._target_path: Optional[Path] = None
        self._categories = set(categories)
        self.entries: list[LogEntry] = []
        self.auto_sync = True
        self.selected_line: Optional[int] = None
        self._timeline = TimelineCache()
        self._resolver = NearestMatchResolver(window=self._config.locality_window)
        self.engine = IncrementalSearchEngine(
            debounce=self._config.debounce_seconds,
            chunk_size=self._config.scan_chunk_lines,
            regex_timeout=self._config.regex_timeout,
            on_results=self._on_search_results,
        )
        self._tailer: Optional[LogTailer] = None
        self._tail_timer: Optional[Timer] = None

    def compose(self) -> ComposeResult:
        self.search_bar = SearchBar()
        self.summary_table = DataTable(id="summary-table", cursor_type="row", zebra_stripes=True)
        self.log_panel = RichLog(id="target-log", wrap=False, highlight=False, markup=False)
        yield self.search_bar
        with Horizontal(id="main-content"):
            with Vertical(id="summary-panel"):
                yield Label("Summary", classes="panel-title", id="summary-title")
                yield self.summary_table
            with Vertical(id="viewer-panel"):
                yield Label("Target log", classes="panel-title", id="target-title")
                yield self.log_panel
        yield Footer()

    async def on_mount(self) -> None:
        self.summary_table.add_columns("Time", "Category", *(DETAIL_LABELS[name] for name in DETAIL_FIELDS))
        if self._summary_path is not None:
            self.load_summary_file(self._summary_path)
        if self._initial_target is not None:
            await self.open_target(self._initial_target)
        else:
            self.log_panel.write("Choose a target log to correlate summary rows with.")

    # ── Summary ──

    def load_summary_file(self, path: Path) -> bool:
        try:
            entries = load_summary(path)
        except LogFileError as exc:
            self._show_message(exc.reason, "error")
            return False
        self._summary_path = path
        self.entries = filter_entries(entries, self._categories)
        self.summary_table.clear()
        for row, entry in enumerate(self.entries):
            fields = detail_fields(entry.detail)
            self.summary_table.add_row(
                entry.raw_time,
                entry.category,
                *(fields.get(name, "") for name in DETAIL_FIELDS),
                key=str(row),
            )
        self.query_one("#summary-title", Label).update(f"Summary: {path.name} ({len(self.entries)} rows)")
        return True

    def _entry_for_row(self, row: int) -> Optional[LogEntry]:
        if 0 <= row < len(self.entries):
            return self.entries[row]
        return None

    # ── Target log ──

    async def open_target(self, raw: str | Path) -> bool:
        path = normalize_path(raw)
        try:
            lines = await asyncio.to_thread(read_lines, path)
        except LogFileError as exc:
            self._show_message(exc.reason, "error")
            return False

        self._stop_tail()
        self._target_path = path
        self._resolver.reset()
        self.selected_line = None
        self.log_panel.clear()
        for number, line in enumerate(lines, start=1):
            self.log_panel.write(self._format_line(number, line))
        self.engine.load_lines(lines)
        self.query_one("#target-title", Label).update(f"Target log: {path.name}")
        self._start_tail(path)
        self.run_worker(self._prepare_index(path), name="timeline-build", group="timeline", exit_on_error=False)
        return True

    async def _prepare_index(self, path: Path) -> None:
        try:
            index = await self._timeline.get(path)
        except OperationCancelled:
            return
        except LogFileError as exc:
            self._show_message(exc.reason, "error")
            return
        logger.info("Timeline ready for %s: %d entries", path, len(index))

    @staticmethod
    def _format_line(number: int, line: str) -> Text:
        return Text.assemble((f"{number:>{LINE_NUMBER_WIDTH}} ", "dim"), line)

    def jump_to_line(self, line_number: int) -> None:
        """Scroll the target viewer so the 1-based *line_number* is at the top."""

        self.selected_line = line_number
        self.log_panel.scroll_to(y=max(0, line_number - 1), animate=False)

    async def sync_to_entry(self, entry: LogEntry) -> Optional[Resolution]:
        if self._target_path is None:
            self._show_message("Choose a target log first.", "warning")
            return None
        try:
            index = await self._timeline.get(self._target_path)
        except OperationCancelled:
            return None
        except LogFileError as exc:
            self._show_message(exc.reason, "error")
            return None

        self._resolver.bind(index)
        resolution = self._resolver.resolve(entry.raw_time)
        if resolution is None:
            self._show_message(f"No line found for time {entry.raw_time}", "warning")
            return None
        self.jump_to_line(resolution.line_number)
        self.sub_title = f"line {resolution.line_number} @ {resolution.timestamp:%Y-%m-%d %H:%M:%S}"
        return resolution

    def _start_tail(self, path: Path) -> None:
        tailer = LogTailer(path)
        if not tailer.start():
            self._show_message(f"Live tail disabled for {path.name}.", "warning")
            return
        self._tailer = tailer
        interval = 1 / max(self._config.refresh_hz, 1)
        self._tail_timer = self.set_interval(interval, self._drain_tail)

    def _drain_tail(self) -> None:
        if self._tailer is None:
            return
        lines = self._tailer.drain()
        if not lines:
            return
        first = self.engine.line_count + 1
        for offset, line in enumerate(lines):
            self.log_panel.write(self._format_line(first + offset, line))
        self.engine.append_lines(lines)

    def _stop_tail(self) -> None:
        if self._tail_timer is not None:
            self._tail_timer.stop()
            self._tail_timer = None
        if self._tailer is not None:
            self._tailer.stop()
            self._tailer = None

    # ── Search ──

    def _on_search_results(self, state: SearchState) -> None:
        self.search_bar.show_counter(self.engine.cursor_position, state.count, state.error)
        if state.current_line is not None:
            self.jump_to_line(state.current_line + 1)

    def _after_navigation(self, position: Optional[int]) -> None:
        if position is None:
            return
        self.search_bar.show_counter(self.engine.cursor_position, self.engine.match_count)
        self.jump_to_line(position + 1)

    async def on_search_bar_changed(self, message: SearchBar.Changed) -> None:
        self.engine.set_options(
            case_sensitive=message.case_sensitive,
            whole_word=message.whole_word,
            use_regex=message.use_regex,
        )
        self.engine.set_query(message.query)

    # ── Events & actions ──

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        if not self.auto_sync:
            return
        self._queue_sync(event.cursor_row)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._queue_sync(event.cursor_row)

    def _queue_sync(self, row: int) -> None:
        entry = self._entry_for_row(row)
        if entry is None or self._target_path is None:
            return
        self.run_worker(
            self.sync_to_entry(entry),
            name="sync-to-entry",
            group="sync",
            exclusive=True,
            exit_on_error=False,
        )

    def action_focus_search(self) -> None:
        self.search_bar.focus_input()

    def action_next_match(self) -> None:
        self._after_navigation(self.engine.next_match())

    def action_prev_match(self) -> None:
        self._after_navigation(self.engine.prev_match())

    def action_toggle_auto_sync(self) -> None:
        self.auto_sync = not self.auto_sync
        state = "on" if self.auto_sync else "off"
        self._show_message(f"Auto sync {state}.")

    def action_quit_app(self) -> None:
        self.exit()

    def on_unmount(self) -> None:
        self._release_resources()

    def _release_resources(self) -> None:
        self._stop_tail()
        self.engine.close()
        self._timeline.clear()

    def _show_message(self, text: str, severity: Literal["info", "warning", "error"] = "info") -> None:
        toast_severity = {
            "info": "information",
            "warning": "warning",
            "error": "error",
        }.get(severity, "information")
        log_level = {"info": logging.INFO, "warning": logging.WARNING, "error": logging.ERROR}.get(severity, logging.INFO)
        logger.log(log_level, text)
        try:
            self.notify(text, severity=toast_severity, title="", markup=False)
        except Exception:  # pragma: no cover
            pass


def run(
    summary_path: str | Path | None = None,
    target_path: str | Path | None = None,
    *,
    categories: Iterable[str] = (),
    config: SyncConfig | None = None,
) -> None:  # pragma: no cover - script entry point
    LogSyncApp(summary_path, target_path, categories=categories, config=config).run()
