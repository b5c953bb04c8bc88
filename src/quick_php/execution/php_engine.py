from __future__ import annotations

import logging
import os
import subprocess
import tempfile
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from .types import ExecutionMode, ExecutionRequest, ExecutionResult

logger = logging.getLogger(__name__)

LIVE_TEMP_PREFIX = "quickphp_"
BLOCK_TEMP_PREFIX = "quickphp_block_"
TEMP_SUFFIX = ".php"


def wrap_script(source: str) -> str:
    """Wrap buffer text in PHP open/close tags for a standalone run.

    Example:
        ```python
        wrap_script('echo "hi";')  # '<?php\\necho "hi";\\n?>'
        ```
    """
    return f"<?php\n{source}\n?>"


def _remove_temp_file(path: Path) -> None:
    """Delete a temp script, logging rather than raising on failure.

    Example:
        ```python
        _remove_temp_file(Path("/tmp/quickphp_ab12.php"))
        ```
    """
    try:
        path.unlink(missing_ok=True)
    except OSError as exc:
        logger.warning("Could not remove temporary script %s: %s", path, exc)


class PhpEngine:
    """Execute PHP source with a system interpreter, one process per call.

    Example:
        ```python
        engine = PhpEngine(php_path="php")
        result = engine.execute(ExecutionRequest(source='echo "hi";', line=0))
        ```
    """

    def __init__(
        self,
        *,
        php_path: str = "php",
        timeout_seconds: float | None = None,
        temp_dir: str | None = None,
    ) -> None:
        """Initialize interpreter and scratch-file settings.

        Example:
            ```python
            engine = PhpEngine(php_path="/usr/bin/php", temp_dir="/tmp/quickphp")
            ```
        """
        cleaned = php_path.strip()
        if not cleaned:
            raise ValueError("PhpEngine requires a non-empty 'php_path'")
        if timeout_seconds is not None and timeout_seconds <= 0:
            raise ValueError("'timeout_seconds' must be positive when set")
        self._php_path = cleaned
        self._timeout_seconds = timeout_seconds
        self._temp_dir = temp_dir

    @property
    def php_path(self) -> str:
        return self._php_path

    def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Run one request and capture stdout, stderr and wall time.

        Example:
            ```python
            result = engine.execute(ExecutionRequest(source="$x = 1;", line=0))
            ```
        """
        with self._script_file(request) as (script_path, is_temp):
            result = self._run(script_path)
            if is_temp:
                result.temp_path = str(script_path)
            return result

    @contextmanager
    def _script_file(self, request: ExecutionRequest) -> Iterator[tuple[Path, bool]]:
        """Yield the script path for a request, removing any temp file on exit.

        Example:
            ```python
            with engine._script_file(request) as (path, is_temp):
                ...
            ```
        """
        if request.mode is ExecutionMode.LIVE and request.path and Path(request.path).is_file():
            yield Path(request.path), False
            return

        if request.mode is ExecutionMode.LIVE:
            prefix, content = LIVE_TEMP_PREFIX, wrap_script(request.source)
        else:
            prefix, content = BLOCK_TEMP_PREFIX, request.source

        if self._temp_dir is not None:
            Path(self._temp_dir).mkdir(parents=True, exist_ok=True)
        fd, raw_path = tempfile.mkstemp(prefix=prefix, suffix=TEMP_SUFFIX, dir=self._temp_dir)
        path = Path(raw_path).resolve()
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            yield path, True
        finally:
            _remove_temp_file(path)

    def _run(self, script_path: Path) -> ExecutionResult:
        """Spawn the interpreter against one script file.

        Example:
            ```python
            result = engine._run(Path("/tmp/quickphp_ab12.php"))
            ```
        """
        cmd = [self._php_path, str(script_path)]
        logger.debug("Executing: %s", " ".join(cmd))
        started = time.perf_counter()
        try:
            completed = subprocess.run(
                cmd,
                stdin=subprocess.DEVNULL,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self._timeout_seconds,
                check=False,
            )
        except subprocess.TimeoutExpired:
            elapsed = time.perf_counter() - started
            return ExecutionResult(
                stdout="",
                stderr="",
                returncode=124,
                duration_seconds=elapsed,
                error=f"Execution timed out after {self._timeout_seconds}s",
                timed_out=True,
            )
        except OSError as exc:
            elapsed = time.perf_counter() - started
            return ExecutionResult(
                stdout="",
                stderr="",
                returncode=127,
                duration_seconds=elapsed,
                error=str(exc),
            )
        elapsed = time.perf_counter() - started
        logger.debug(
            "Finished %s in %.3fs with exit code %s", script_path, elapsed, completed.returncode
        )

        error: str | None = None
        if completed.returncode != 0:
            error = f"Command failed: {' '.join(cmd)}"
            if completed.stdout.strip():
                error = f"{error}\n{completed.stdout.strip()}"
        return ExecutionResult(
            stdout=completed.stdout,
            stderr=completed.stderr,
            returncode=completed.returncode,
            duration_seconds=elapsed,
            error=error,
        )
