"""Cooperative cancellation shared by index builds and search scans."""

from __future__ import annotations

import threading


class OperationCancelled(Exception):
    """A superseded operation stopped early. Callers should take no action."""


class CancelToken:
    """Thread-safe flag checked at chunk boundaries."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise OperationCancelled()
