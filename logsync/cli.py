"""Command line entry point.

Subcommands:
    view     Open the terminal UI on a summary log and/or a target log.
    locate   Resolve one or more timestamps to lines of a target log.
    grep     Run the incremental search engine once and print the matches.
    summary  Print the parsed entries of a summary log.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional, Sequence

from rich.console import Console
from rich.table import Table
from rich.text import Text

from .config import SyncConfig, load_config
from .errors import LogFileError
from .logging_setup import configure_logging
from .matcher import SearchOptions
from .resolver import NearestMatchResolver
from .search import IncrementalSearchEngine, SearchState
from .services import read_lines
from .summary import DETAIL_FIELDS, categories, detail_fields, filter_entries, load_summary
from .timeline import build_timeline

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="logsync",
        description="Correlate summary log rows with target log lines and search logs.",
    )
    parser.add_argument("--config", help="Path to settings.conf (defaults to $LOGSYNC_CONFIG or the XDG location).")
    parser.add_argument("--log-level", help="Logging level for diagnostics on stderr (DEBUG, INFO, WARNING, ...).")
    commands = parser.add_subparsers(dest="command", required=True)

    view = commands.add_parser("view", help="Open the terminal UI.")
    view.add_argument("summary", nargs="?", help="Summary log to list on the left.")
    view.add_argument("--target", help="Target log to correlate rows with.")
    view.add_argument("--category", action="append", default=[], help="Only list rows of this category (repeatable).")

    locate = commands.add_parser("locate", help="Find the target log line closest to each time.")
    locate.add_argument("target", help="Target log file.")
    locate.add_argument("times", nargs="+", help="Timestamps such as '2024/01/10 08:00:00', '01/10 08:00:00' or '08:00:00'.")
    locate.add_argument("--context", type=int, default=None, help="Lines of context around each match.")

    grep = commands.add_parser("grep", help="Search a log file and print matching lines.")
    grep.add_argument("file", help="Log file to search.")
    grep.add_argument("query", help="Text or pattern to look for.")
    grep.add_argument("-c", "--case-sensitive", action="store_true", help="Match case exactly.")
    grep.add_argument("-w", "--whole-word", action="store_true", help="Only match whole words.")
    grep.add_argument("-r", "--regex", action="store_true", help="Treat the query as a regular expression.")

    summary = commands.add_parser("summary", help="Print the entries of a summary log.")
    summary.add_argument("file", help="Summary log file.")
    summary.add_argument("--category", action="append", default=[], help="Only print rows of this category (repeatable).")
    summary.add_argument("--list-categories", action="store_true", help="Print the distinct categories and exit.")
    return parser


def _print_context(out: Console, lines: list[str], line_number: int, context: int) -> None:
    first = max(1, line_number - context)
    last = min(len(lines), line_number + context)
    for number in range(first, last + 1):
        marker = ">" if number == line_number else " "
        style = "bold" if number == line_number else "dim"
        out.print(Text(f"{marker}{number:>6}: {lines[number - 1]}", style=style))


def cmd_locate(args: argparse.Namespace, config: SyncConfig, out: Console) -> int:
    index = build_timeline(args.target)
    lines = read_lines(index.path)
    resolver = NearestMatchResolver(index, window=config.locality_window)
    context = config.context_lines if args.context is None else max(0, args.context)

    located = 0
    for query in args.times:
        resolution = resolver.resolve(query)
        if resolution is None:
            out.print(Text(f"{query}: no matching line", style="yellow"))
            continue
        located += 1
        out.print(
            Text(f"{query} -> line {resolution.line_number} ({resolution.timestamp:%Y-%m-%d %H:%M:%S.%f})"),
        )
        _print_context(out, lines, resolution.line_number, context)
    return EXIT_OK if located else EXIT_FAILURE


async def run_search(lines: list[str], query: str, options: SearchOptions, config: SyncConfig) -> SearchState:
    """Drive :class:`IncrementalSearchEngine` to completion without a UI."""

    engine = IncrementalSearchEngine(
        lines,
        debounce=0,
        chunk_size=config.scan_chunk_lines,
        regex_timeout=config.regex_timeout,
    )
    try:
        engine.set_options(
            case_sensitive=options.case_sensitive,
            whole_word=options.whole_word,
            use_regex=options.use_regex,
        )
        engine.set_query(query)
        return await engine.wait_idle()
    finally:
        engine.close()


def cmd_grep(args: argparse.Namespace, config: SyncConfig, out: Console, err: Console) -> int:
    lines = read_lines(args.file)
    options = SearchOptions(
        case_sensitive=args.case_sensitive,
        whole_word=args.whole_word,
        use_regex=args.regex,
    )
    state = asyncio.run(run_search(lines, args.query, options, config))
    if state.error:
        err.print(Text(state.error, style="red"))
        return EXIT_USAGE
    for position in state.matches:
        out.print(Text(f"{position + 1:>6}: {lines[position]}"))
    out.print(Text(f"{state.count} match(es)", style="bold"))
    return EXIT_OK


def cmd_summary(args: argparse.Namespace, out: Console) -> int:
    entries = load_summary(args.file)
    if args.list_categories:
        for name in categories(entries):
            out.print(Text(name))
        return EXIT_OK
    entries = filter_entries(entries, set(args.category))
    table = Table(show_lines=False, header_style="bold")
    table.add_column("Time", no_wrap=True)
    table.add_column("Category", no_wrap=True)
    for name in DETAIL_FIELDS:
        table.add_column(name)
    for entry in entries:
        fields = detail_fields(entry.detail)
        table.add_row(entry.raw_time, entry.category, *(fields.get(name, "") for name in DETAIL_FIELDS))
    out.print(table)
    out.print(Text(f"{len(entries)} entr{'y' if len(entries) == 1 else 'ies'}", style="bold"))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    configure_logging(args.log_level or config.log_level)
    if config.source is not None:
        logger.debug("Loaded settings from %s", config.source)

    out = Console(highlight=False, soft_wrap=True)
    err = Console(stderr=True, highlight=False, soft_wrap=True)

    try:
        if args.command == "view":
            from .app import run

            run(args.summary, args.target, categories=args.category, config=config)
            return EXIT_OK
        if args.command == "locate":
            return cmd_locate(args, config, out)
        if args.command == "grep":
            return cmd_grep(args, config, out, err)
        if args.command == "summary":
            return cmd_summary(args, out)
    except LogFileError as exc:
        logger.debug("Command %s failed: %s", args.command, exc.reason)
        err.print(Text(f"[ERROR] {exc.reason}", style="red"))
        return EXIT_FAILURE
    parser.error(f"unknown command {args.command!r}")
    return EXIT_USAGE
