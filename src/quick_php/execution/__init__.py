from .engine import ExecutionEngine
from .php_engine import PhpEngine
from .types import ExecutionMode, ExecutionRequest, ExecutionResult

__all__ = [
    "ExecutionEngine",
    "ExecutionMode",
    "ExecutionRequest",
    "ExecutionResult",
    "PhpEngine",
]
