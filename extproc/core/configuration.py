"""
Configuration for external process execution.

Settings live in an optional YAML file:

    execution:
      process_ttl: 20      # minutes
      join_timeout: 5.0    # seconds
      kill_grace: 2.0      # seconds

EXTPROC_CONFIG points at the file when no path is given, and
EXTPROC_PROCESS_TTL overrides the TTL (minutes).
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV = "EXTPROC_CONFIG"
TTL_ENV = "EXTPROC_PROCESS_TTL"

# Media conversions can legitimately run for a long time
DEFAULT_PROCESS_TTL = 20.0


class ConfigurationError(ValueError):
    """Raised for unreadable or invalid execution settings."""


def _as_float(data: Dict[str, Any], key: str, default: float) -> float:
    raw = data.get(key, default)
    if raw is None:
        return default
    try:
        value = float(raw)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}") from e
    if value < 0:
        raise ConfigurationError(f"{key} must not be negative, got {value}")
    return value


@dataclass(frozen=True)
class ExecutionConfig:
    """Execution limits for child processes."""
    process_ttl: float = DEFAULT_PROCESS_TTL
    join_timeout: float = 5.0
    kill_grace: float = 2.0

    @property
    def timeout_seconds(self) -> Optional[float]:
        """TTL in seconds; None when the TTL is disabled (0)."""
        if self.process_ttl <= 0:
            return None
        return self.process_ttl * 60.0

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ExecutionConfig":
        """Create ExecutionConfig from a mapping (nested 'execution' block or flat)."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("configuration must be a mapping")
        section = data.get("execution", data)
        if not isinstance(section, dict):
            raise ConfigurationError("'execution' must be a mapping")
        return cls(
            process_ttl=_as_float(section, "process_ttl", DEFAULT_PROCESS_TTL),
            join_timeout=_as_float(section, "join_timeout", 5.0),
            kill_grace=_as_float(section, "kill_grace", 2.0),
        )


def load_config(path: Optional[Union[str, Path]] = None) -> ExecutionConfig:
    """Load execution settings from YAML, falling back to defaults.

    Args:
        path: YAML file; defaults to $EXTPROC_CONFIG when unset

    Returns:
        ExecutionConfig with environment overrides applied
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV) or None

    data: Dict[str, Any] = {}
    if path is not None:
        cfg_path = Path(path)
        if not cfg_path.is_file():
            raise ConfigurationError(f"configuration file not found: {cfg_path}")
        try:
            data = yaml.safe_load(cfg_path.read_text(encoding="utf-8")) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"invalid YAML in {cfg_path}: {e}") from e
        logger.debug("Loaded execution config from %s", cfg_path)

    config = ExecutionConfig.from_dict(data)

    ttl = os.environ.get(TTL_ENV)
    if ttl:
        config = ExecutionConfig(
            process_ttl=_as_float({TTL_ENV: ttl}, TTL_ENV, DEFAULT_PROCESS_TTL),
            join_timeout=config.join_timeout,
            kill_grace=config.kill_grace,
        )
    return config
