from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ExecutionMode(StrEnum):
    """Where the evaluated source comes from."""

    LIVE = "live"
    BLOCK = "block"


@dataclass(slots=True)
class ExecutionRequest:
    """Normalized request sent to an execution engine.

    `path` names the saved file backing a live document, if any.

    Example:
        ```python
        req = ExecutionRequest(source='echo "hi";', line=0, mode=ExecutionMode.LIVE)
        ```
    """

    source: str
    line: int
    mode: ExecutionMode = ExecutionMode.LIVE
    path: str | None = None


@dataclass(slots=True)
class ExecutionResult:
    """Normalized response returned by an execution engine.

    Example:
        ```python
        out = ExecutionResult(stdout="hi", stderr="", returncode=0, duration_seconds=0.02)
        ```
    """

    stdout: str
    stderr: str
    returncode: int
    duration_seconds: float
    error: str | None = None
    timed_out: bool = False
    temp_path: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None and not self.stderr.strip()
