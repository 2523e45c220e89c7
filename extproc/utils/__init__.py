"""
Utility modules for extproc.

Logging setup and duration formatting used in failure messages.
"""

from .logging_config import setup_logging
from .time_format import format_millis

__all__ = [
    "setup_logging",
    "format_millis",
]
