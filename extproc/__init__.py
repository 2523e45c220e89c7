"""
extproc: run external programs synchronously with captured output and a hard deadline.
"""

from .core import (
    ConfigurationError,
    ExecutionConfig,
    FailureKind,
    ProcessResult,
    ResultList,
    execute,
    execute_script,
    load_config,
)

__version__ = "0.1.0"

__all__ = [
    "ConfigurationError",
    "ExecutionConfig",
    "FailureKind",
    "ProcessResult",
    "ResultList",
    "execute",
    "execute_script",
    "load_config",
]
