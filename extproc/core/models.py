"""
Pydantic models describing the outcome of an external process run.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class FailureKind(str, Enum):
    """Why a run could not be confirmed to have completed."""
    SPAWN_ERROR = "spawn_error"
    TIMEOUT = "timeout"
    UNEXPECTED = "unexpected"


class ProcessResult(BaseModel):
    """Immutable record of one external process invocation."""

    model_config = ConfigDict(frozen=True)

    process: str
    command: str = ""
    optional: bool = False
    exit_code: int = -1
    out: str = ""
    error: str = ""
    exception: Optional[str] = None
    failure: Optional[FailureKind] = None
    elapsed_ms: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_failure_code(self) -> "ProcessResult":
        # -1 is reserved for runs that did not complete
        if self.failure is not None and self.exit_code != -1:
            raise ValueError("failed runs must carry exit_code -1")
        if self.failure is None and self.exit_code == -1:
            raise ValueError("exit_code -1 requires a failure kind")
        if self.failure is None and self.exception is not None:
            raise ValueError("exception is only set for failed runs")
        return self

    @property
    def is_ok(self) -> bool:
        return self.exit_code == 0

    @property
    def is_warn(self) -> bool:
        """Failed, but the caller marked the process as optional."""
        return not self.is_ok and self.optional

    @property
    def is_error(self) -> bool:
        return not self.is_ok and not self.optional

    @property
    def timed_out(self) -> bool:
        return self.failure is FailureKind.TIMEOUT


class ResultList:
    """Ordered results of the processes that make up one job."""

    def __init__(self, results: Optional[List[ProcessResult]] = None):
        self._results: List[ProcessResult] = list(results or [])

    def add(self, result: ProcessResult) -> ProcessResult:
        self._results.append(result)
        return result

    @property
    def last(self) -> Optional[ProcessResult]:
        return self._results[-1] if self._results else None

    def has_error(self) -> bool:
        return any(r.is_error for r in self._results)

    def warnings(self) -> List[ProcessResult]:
        return [r for r in self._results if r.is_warn]

    def __iter__(self) -> Iterator[ProcessResult]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)
