"""Correlate summary log rows with target log lines by timestamp, and search logs."""

from .errors import IndexNotReadyError, LogFileError, LogSyncError
from .matcher import LineMatcher, SearchOptions, compile_matcher
from .resolver import NearestMatchResolver, Resolution
from .search import IncrementalSearchEngine, SearchPhase, SearchState
from .summary import LogEntry, load_summary, parse_summary_lines
from .timeline import TimelineCache, TimelineIndex, build_timeline
from .timestamps import parse_timestamp

__version__ = "1.0"

__all__ = [
    "IncrementalSearchEngine",
    "IndexNotReadyError",
    "LineMatcher",
    "LogEntry",
    "LogFileError",
    "LogSyncError",
    "NearestMatchResolver",
    "Resolution",
    "SearchOptions",
    "SearchPhase",
    "SearchState",
    "TimelineCache",
    "TimelineIndex",
    "build_timeline",
    "compile_matcher",
    "load_summary",
    "parse_summary_lines",
    "parse_timestamp",
]
