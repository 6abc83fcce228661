"""Live tail of the target log via watchdog."""

from __future__ import annotations

import logging
from pathlib import Path
from queue import Empty, SimpleQueue
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)


class TailHandler(FileSystemEventHandler):
    """Watch a single log file and enqueue newly appended text."""

    def __init__(self, file_path: Path, sink: SimpleQueue[str]) -> None:
        super().__init__()
        self.file_path = file_path
        self._sink = sink
        self._offset = file_path.stat().st_size if file_path.exists() else 0

    def on_modified(self, event) -> None:
        if Path(event.src_path) != self.file_path:
            return
        self.read_new()

    def read_new(self) -> None:
        try:
            size = self.file_path.stat().st_size
            if size < self._offset:
                # Truncated in place; start over from the top.
                self._offset = 0
            with self.file_path.open("r", encoding="utf-8", errors="ignore") as fp:
                fp.seek(self._offset)
                chunk = fp.read()
                self._offset = fp.tell()
        except OSError as exc:
            logger.warning("Tail read failed for %s: %s", self.file_path, exc)
            return
        if chunk:
            self._sink.put(chunk)


class LogTailer:
    """Collect complete lines appended to *file_path* since construction."""

    def __init__(self, file_path: Path) -> None:
        self.file_path = file_path
        self._queue: SimpleQueue[str] = SimpleQueue()
        self._handler = TailHandler(file_path, self._queue)
        self._observer: Optional[Observer] = None
        self._remainder = ""

    @property
    def running(self) -> bool:
        return self._observer is not None

    def start(self) -> bool:
        observer = Observer()
        try:
            observer.schedule(self._handler, str(self.file_path.parent), recursive=False)
            observer.start()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Live tail disabled for '%s': %s", self.file_path, exc)
            return False
        self._observer = observer
        return True

    def drain(self) -> list[str]:
        """Return complete lines received so far; a partial last line is held back."""

        chunks: list[str] = []
        while True:
            try:
                chunks.append(self._queue.get_nowait())
            except Empty:
                break
        if not chunks:
            return []
        text = self._remainder + "".join(chunks)
        lines = text.splitlines()
        if text.endswith(("\n", "\r")):
            self._remainder = ""
        else:
            self._remainder = lines.pop() if lines else text
        return lines

    def stop(self) -> None:
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None
