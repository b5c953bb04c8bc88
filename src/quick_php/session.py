from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable

from .config import QuickPhpSettings
from .execution.engine import ExecutionEngine
from .execution.php_engine import PhpEngine
from .execution.types import ExecutionRequest
from .host import DecorationSurface, Editor, MessageSurface
from .presenter import Presenter
from .runner import (
    EmptySelectionError,
    RunOutcome,
    build_block_request,
    build_live_request,
    to_outcome,
)
from .scheduler import Debouncer
from .trigger import should_evaluate

logger = logging.getLogger(__name__)


def default_engine(settings: QuickPhpSettings) -> ExecutionEngine:
    """Build the PHP engine described by a settings snapshot.

    Example:
        ```python
        engine = default_engine(QuickPhpSettings(php_path="/usr/bin/php"))
        ```
    """
    return PhpEngine(php_path=settings.php_path, timeout_seconds=settings.timeout_seconds)


class EditorSession:
    """Debounce, evaluate and annotate one editor.

    Every evaluation gets a sequence number; a completion only reaches the
    presenter when its number is still the latest one issued.

    Example:
        ```python
        session = EditorSession(editor, surface, messages)
        session.on_text_changed()
        ```
    """

    def __init__(
        self,
        editor: Editor,
        surface: DecorationSurface,
        messages: MessageSurface,
        *,
        settings_provider: Callable[[], QuickPhpSettings] = QuickPhpSettings,
        engine_factory: Callable[[QuickPhpSettings], ExecutionEngine] = default_engine,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._editor = editor
        self._messages = messages
        self._settings_provider = settings_provider
        self._engine_factory = engine_factory
        self._loop = loop
        self._presenter = Presenter(surface, editor.key, settings_provider=settings_provider)
        self._debouncer = Debouncer(
            lambda: self._settings_provider().execution_delay_seconds,
            self._on_timer,
            loop=loop,
        )
        self._sequence = 0
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def key(self) -> str:
        return self._editor.key

    @property
    def presenter(self) -> Presenter:
        return self._presenter

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    @property
    def closed(self) -> bool:
        return self._closed

    def on_text_changed(self) -> None:
        self._schedule()

    def on_selection_changed(self) -> None:
        self._schedule()

    def _schedule(self) -> None:
        if self._closed:
            return
        self._debouncer.trigger()

    def _next_sequence(self) -> int:
        self._sequence += 1
        return self._sequence

    def _on_timer(self) -> None:
        """Read the editor as it is now and start an evaluation if warranted."""
        try:
            line = self._editor.cursor_line
            document = self._editor.document
            if not should_evaluate(document.line_at(line)):
                self._next_sequence()
                self._presenter.clear()
                return
            token = self._next_sequence()
            request = build_live_request(document, line)
        except Exception:
            logger.exception("Failed to read editor state for %s", self.key)
            return
        loop = self._loop or asyncio.get_running_loop()
        task = loop.create_task(self._evaluate(token, request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _evaluate(self, token: int, request: ExecutionRequest) -> None:
        try:
            engine = self._engine_factory(self._settings_provider())
            result = await asyncio.to_thread(engine.execute, request)
        except Exception as exc:
            logger.exception("Live evaluation failed for %s", self.key)
            if not self._closed:
                self._messages.error(str(exc) or type(exc).__name__)
            return
        if self._closed or token != self._sequence:
            logger.debug("Discarding stale result #%s for %s (latest #%s)", token, self.key, self._sequence)
            return
        outcome = to_outcome(request, result)
        self._presenter.show(
            outcome.line,
            outcome.text,
            outcome.elapsed_seconds,
            is_error=outcome.is_error,
        )

    async def run_block(self) -> RunOutcome | None:
        """Run the current selection and report it through the message surface.

        Example:
            ```python
            outcome = await session.run_block()
            ```
        """
        try:
            request = build_block_request(self._editor.selection_text, self._editor.cursor_line)
        except EmptySelectionError as exc:
            self._messages.error(str(exc))
            return None
        try:
            engine = self._engine_factory(self._settings_provider())
            result = await asyncio.to_thread(engine.execute, request)
        except Exception as exc:
            logger.exception("Block evaluation failed for %s", self.key)
            self._messages.error(str(exc) or type(exc).__name__)
            return None
        outcome = to_outcome(request, result)
        if outcome.is_error:
            self._next_sequence()
            self._presenter.clear()
            self._messages.error(outcome.text)
        else:
            self._messages.info(outcome.text)
        return outcome

    async def wait_idle(self) -> None:
        """Wait until every evaluation already spawned has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        """Cancel the timer, drop the annotation and ignore outstanding results."""
        if self._closed:
            return
        self._closed = True
        self._debouncer.cancel()
        self._next_sequence()
        self._presenter.clear()


class SessionManager:
    """Own one `EditorSession` per open editor, keyed by editor key.

    Example:
        ```python
        manager = SessionManager(surface, messages)
        manager.open(editor)
        manager.text_changed(editor.key)
        ```
    """

    def __init__(
        self,
        surface: DecorationSurface,
        messages: MessageSurface,
        *,
        settings_provider: Callable[[], QuickPhpSettings] = QuickPhpSettings,
        engine_factory: Callable[[QuickPhpSettings], ExecutionEngine] = default_engine,
        loop: asyncio.AbstractEventLoop | None = None,
    ) -> None:
        self._surface = surface
        self._messages = messages
        self._settings_provider = settings_provider
        self._engine_factory = engine_factory
        self._loop = loop
        self._sessions: dict[str, EditorSession] = {}

    def __contains__(self, key: object) -> bool:
        return key in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def open(self, editor: Editor) -> EditorSession:
        existing = self._sessions.get(editor.key)
        if existing is not None:
            return existing
        session = EditorSession(
            editor,
            self._surface,
            self._messages,
            settings_provider=self._settings_provider,
            engine_factory=self._engine_factory,
            loop=self._loop,
        )
        self._sessions[editor.key] = session
        logger.debug("Opened session for %s", editor.key)
        return session

    def get(self, key: str) -> EditorSession | None:
        return self._sessions.get(key)

    def text_changed(self, key: str) -> None:
        session = self._sessions.get(key)
        if session is None:
            logger.debug("Ignoring text change for unknown editor %s", key)
            return
        session.on_text_changed()

    def selection_changed(self, key: str) -> None:
        session = self._sessions.get(key)
        if session is None:
            logger.debug("Ignoring selection change for unknown editor %s", key)
            return
        session.on_selection_changed()

    async def run_block(self, key: str) -> RunOutcome | None:
        session = self._sessions.get(key)
        if session is None:
            logger.debug("Ignoring block run for unknown editor %s", key)
            return None
        return await session.run_block()

    def close(self, key: str) -> None:
        session = self._sessions.pop(key, None)
        if session is not None:
            session.close()
            logger.debug("Closed session for %s", key)

    def close_all(self) -> None:
        for key in list(self._sessions):
            self.close(key)

    async def wait_idle(self) -> None:
        for session in list(self._sessions.values()):
            await session.wait_idle()
