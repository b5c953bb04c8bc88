from __future__ import annotations

from dataclasses import dataclass

from .execution.engine import ExecutionEngine
from .execution.types import ExecutionMode, ExecutionRequest, ExecutionResult
from .host import Document

CURRENT_FILE_LABEL = "Current File"
EMPTY_SELECTION_MESSAGE = "No PHP code selected to execute."
UNKNOWN_ERROR = "Unknown error"


class EmptySelectionError(ValueError):
    """Raised when block mode is asked to run a blank selection."""


@dataclass(slots=True)
class RunOutcome:
    """Display-ready outcome of one evaluation.

    Example:
        ```python
        outcome = RunOutcome(text="hi", is_error=False, elapsed_seconds=0.02, line=0)
        ```
    """

    text: str
    is_error: bool
    elapsed_seconds: float
    line: int


def build_live_request(document: Document, line: int) -> ExecutionRequest:
    """Build a live-mode request for the whole document.

    Untitled documents carry no path, so the engine runs them from a temp file.

    Example:
        ```python
        request = build_live_request(TextDocument('echo "hi";'), 0)
        ```
    """
    path = None if document.is_untitled else document.path
    return ExecutionRequest(
        source=document.text,
        line=line,
        mode=ExecutionMode.LIVE,
        path=path,
    )


def failure_text(result: ExecutionResult, *, mask_temp_path: bool = False) -> str:
    """Pick the user-facing failure text for a failed result.

    Example:
        ```python
        text = failure_text(result, mask_temp_path=True)
        ```
    """
    message = result.stderr.strip() or (result.error or "").strip() or UNKNOWN_ERROR
    if mask_temp_path and result.temp_path:
        message = message.replace(result.temp_path, CURRENT_FILE_LABEL)
    return message


def to_outcome(request: ExecutionRequest, result: ExecutionResult) -> RunOutcome:
    """Map an engine result onto success or failure text.

    Example:
        ```python
        outcome = to_outcome(request, engine.execute(request))
        ```
    """
    if result.ok:
        return RunOutcome(
            text=result.stdout.strip(),
            is_error=False,
            elapsed_seconds=result.duration_seconds,
            line=request.line,
        )
    return RunOutcome(
        text=failure_text(result, mask_temp_path=request.mode is ExecutionMode.LIVE),
        is_error=True,
        elapsed_seconds=result.duration_seconds,
        line=request.line,
    )


def run_live(document: Document, line: int, engine: ExecutionEngine) -> RunOutcome:
    """Evaluate a document in live mode for one target line.

    Example:
        ```python
        outcome = run_live(TextDocument('echo "hi";'), 0, PhpEngine())
        ```
    """
    request = build_live_request(document, line)
    return to_outcome(request, engine.execute(request))


def build_block_request(selection: str, line: int = 0) -> ExecutionRequest:
    """Build a block-mode request, rejecting blank selections.

    Example:
        ```python
        request = build_block_request("<?php echo 1;")
        ```
    """
    if not selection.strip():
        raise EmptySelectionError(EMPTY_SELECTION_MESSAGE)
    return ExecutionRequest(source=selection, line=line, mode=ExecutionMode.BLOCK)


def run_block(selection: str, engine: ExecutionEngine, line: int = 0) -> RunOutcome:
    """Evaluate an explicit selection verbatim.

    Example:
        ```python
        outcome = run_block("<?php echo 1 + 1;", PhpEngine())
        ```
    """
    request = build_block_request(selection, line)
    return to_outcome(request, engine.execute(request))
