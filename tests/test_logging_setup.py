from __future__ import annotations

import logging

from rich.logging import RichHandler

from logsync.logging_setup import LOGGER_NAME, configure_logging


def test_configure_logging_installs_one_rich_handler() -> None:
    logger = configure_logging("INFO")
    configure_logging("debug")

    handlers = [handler for handler in logger.handlers if isinstance(handler, RichHandler)]
    assert logger.name == LOGGER_NAME
    assert len(handlers) == 1
    assert logger.level == logging.DEBUG
    assert handlers[0].level == logging.DEBUG
    assert logger.propagate is False


def test_unknown_level_defaults_to_warning() -> None:
    logger = configure_logging("not-a-level")

    assert logger.level == logging.WARNING
