"""
Logging setup for extproc runs.

Everything goes to a log file; the console only shows warnings unless
asked otherwise. Set EXTPROC_LOG_FSYNC=1 to fsync the file on every flush
when tailing it while a long conversion runs.
"""

import logging
import sys
import os
from pathlib import Path
from typing import Optional

LOG_PATH = Path("extproc_data") / "extproc.log"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class _SyncedFileHandler(logging.FileHandler):
    """FileHandler whose flush also reaches the disk when fsync is on."""

    def __init__(self, filename, *, fsync: bool = False):
        super().__init__(filename, mode="a", encoding="utf-8")
        self.fsync = fsync

    def flush(self):
        super().flush()
        if not self.fsync or self.stream is None:
            return
        try:
            os.fsync(self.stream.fileno())
        except (OSError, ValueError):
            pass


def _fsync_requested() -> bool:
    return os.environ.get("EXTPROC_LOG_FSYNC", "").strip().lower() in ("1", "true", "yes", "on")


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level: {name}")
    return level


def setup_logging(
    level: str = "INFO",
    log_file: Optional[Path] = None,
    format_string: Optional[str] = None,
    console_level: Optional[str] = None,
) -> logging.Logger:
    """
    Route all records to a log file and warnings to stdout.

    Existing root handlers are closed and replaced, so calling this twice
    does not duplicate output.

    Args:
        level: Root and file level name
        log_file: Log file path (default: extproc_data/extproc.log)
        format_string: Record format for both handlers
        console_level: stdout level name (default: WARNING)

    Returns:
        The "extproc" logger
    """
    file_level = _level(level)
    console_level_no = _level(console_level or "WARNING")
    formatter = logging.Formatter(format_string or DEFAULT_FORMAT)
    path = Path(log_file) if log_file is not None else LOG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(file_level)

    file_handler = _SyncedFileHandler(path, fsync=_fsync_requested())
    file_handler.setLevel(file_level)
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)

    console = logging.StreamHandler(sys.stdout)
    console.setLevel(console_level_no)
    console.setFormatter(formatter)
    root.addHandler(console)

    return logging.getLogger("extproc")
