"""
Core modules: process launching, stream draining, results and configuration.
"""

from .configuration import ConfigurationError, ExecutionConfig, load_config
from .executor import build_command, execute, execute_script
from .models import FailureKind, ProcessResult, ResultList
from .watcher import StreamWatcher

__all__ = [
    "ConfigurationError",
    "ExecutionConfig",
    "load_config",
    "build_command",
    "execute",
    "execute_script",
    "FailureKind",
    "ProcessResult",
    "ResultList",
    "StreamWatcher",
]
