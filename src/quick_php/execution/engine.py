from __future__ import annotations

from typing import Protocol

from .types import ExecutionRequest, ExecutionResult


class ExecutionEngine(Protocol):
    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Execute one request and return normalized execution result.

        Example:
            ```python
            result = engine.execute(ExecutionRequest(source='echo "hi";', line=0))
            ```
        """
        ...
