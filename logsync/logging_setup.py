"""Logging bootstrap: one Rich handler on the ``logsync`` logger."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

LOGGER_NAME = "logsync"
_HANDLER_FLAG = "_logsync_handler"


def _parse_level(raw: str | int | None) -> int:
    if isinstance(raw, int):
        return raw
    normalized = str(raw or "WARNING").strip().upper()
    level = logging.getLevelName(normalized)
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(level: str | int | None = "WARNING", *, console: Console | None = None) -> logging.Logger:
    """Attach (or update) the Rich stderr handler. Safe to call repeatedly."""

    resolved = _parse_level(level)
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(resolved)
    logger.propagate = False

    for handler in logger.handlers:
        if getattr(handler, _HANDLER_FLAG, False):
            handler.setLevel(resolved)
            return logger

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    handler.setLevel(resolved)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    setattr(handler, _HANDLER_FLAG, True)
    logger.addHandler(handler)
    return logger
