"""
Background readers for the output streams of a child process.

A child writing more than the OS pipe buffer blocks until somebody reads,
so both stdout and stderr must be consumed while the parent waits.
"""

from __future__ import annotations

import logging
import threading
from typing import IO, List, Optional

logger = logging.getLogger(__name__)


class StreamWatcher(threading.Thread):
    """Drain one text stream line by line into an in-memory buffer.

    Lines are stored without their terminator and re-joined with a single
    newline each, so CRLF output is normalised. Reading stops at end of
    stream, after ``stop()`` or on an I/O error; whatever was collected so
    far stays available through ``snapshot()``.
    """

    def __init__(self, stream: IO[str], name: Optional[str] = None):
        super().__init__(name=name or "stream-watcher", daemon=True)
        self._stream = stream
        self._lines: List[str] = []
        self._lock = threading.Lock()
        self._stop_evt = threading.Event()

    def run(self) -> None:
        try:
            for line in self._stream:
                if self._stop_evt.is_set():
                    break
                with self._lock:
                    self._lines.append(line.rstrip("\r\n") + "\n")
        except (OSError, ValueError) as ex:
            # ValueError: stream closed underneath us
            logger.debug("%s stopped reading: %s", self.name, ex)

    def stop(self) -> None:
        """Ask the read loop to exit after its current read returns."""
        self._stop_evt.set()

    @property
    def stopped(self) -> bool:
        return self._stop_evt.is_set()

    def snapshot(self) -> str:
        with self._lock:
            return "".join(self._lines)

    def __str__(self) -> str:
        return self.snapshot()
