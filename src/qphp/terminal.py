"""Terminal host for the inline runner.

FILE WATCHING:
The watched file is polled for mtime changes. Each change counts as one
text-change event; the cursor is placed on the first line that differs from
the previous snapshot unless a fixed line was requested.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path

from rich.color import Color, ColorParseError
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from quick_php.host import TextDocument
from quick_php.session import SessionManager

logger = logging.getLogger(__name__)

_COLOR_ALIASES = {"grey": "grey50", "gray": "grey50"}


def rich_color(color: str) -> str:
    """Translate an editor color name into a Rich color.

    Example:
        ```python
        rich_color("grey")  # "grey50"
        ```
    """
    name = _COLOR_ALIASES.get(color.strip().lower(), color.strip())
    try:
        Color.parse(name)
    except ColorParseError:
        logger.debug("Unknown color %r, using terminal default", color)
        return "default"
    return name


def first_changed_line(before: str, after: str) -> int:
    """Return the zero-based index of the first line that differs.

    Example:
        ```python
        first_changed_line("a\\nb", "a\\nc")  # 1
        ```
    """
    old_lines = before.splitlines()
    new_lines = after.splitlines()
    for index, (old, new) in enumerate(zip(old_lines, new_lines)):
        if old != new:
            return index
    if len(new_lines) != len(old_lines):
        return max(0, min(len(old_lines), len(new_lines) - 1))
    return max(0, len(new_lines) - 1)


class FileEditor:
    """Editor view over a file on disk.

    Example:
        ```python
        editor = FileEditor(Path("demo.php"))
        editor.cursor_line = 3
        ```
    """

    def __init__(self, path: Path, *, cursor_line: int = 0, selection_text: str = "") -> None:
        self._path = path
        self.cursor_line = cursor_line
        self.selection_text = selection_text

    @property
    def key(self) -> str:
        return str(self._path)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def document(self) -> TextDocument:
        return TextDocument(text=self._path.read_text(encoding="utf-8"), path=str(self._path))


class ConsoleDecoration:
    """Handle for an annotation already printed to the terminal.

    Example:
        ```python
        decoration = ConsoleDecoration("demo.php", 3)
        decoration.dispose()
        ```
    """

    def __init__(self, editor_key: str, line: int) -> None:
        self.editor_key = editor_key
        self.line = line
        self.disposed = False

    def dispose(self) -> None:
        self.disposed = True


class ConsoleSurface:
    """Print each new annotation next to its source line.

    Example:
        ```python
        surface = ConsoleSurface(Console(), {editor.key: editor})
        ```
    """

    def __init__(self, console: Console, editors: dict[str, FileEditor] | None = None) -> None:
        self._console = console
        self._editors = editors if editors is not None else {}

    def register(self, editor: FileEditor) -> None:
        self._editors[editor.key] = editor

    def _source_line(self, editor_key: str, line: int) -> str:
        editor = self._editors.get(editor_key)
        if editor is None:
            return ""
        try:
            return editor.document.line_at(line)
        except OSError as exc:
            logger.warning("Could not re-read %s: %s", editor_key, exc)
            return ""

    def create(self, editor_key: str, line: int, text: str, color: str) -> ConsoleDecoration:
        rendered = Text.assemble(
            (f"{line + 1:>4} | ", "dim"),
            self._source_line(editor_key, line),
            " ",
            (text, rich_color(color)),
        )
        self._console.print(rendered, soft_wrap=True)
        return ConsoleDecoration(editor_key, line)


class ConsoleMessages:
    """Render information and error messages as Rich panels.

    Example:
        ```python
        ConsoleMessages(Console()).error("No PHP code selected to execute.")
        ```
    """

    def __init__(self, console: Console) -> None:
        self._console = console

    def info(self, message: str) -> None:
        self._console.print(Panel.fit(message or "(no output)", title="Output", border_style="green"))

    def error(self, message: str) -> None:
        self._console.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))


async def watch_file(
    editor: FileEditor,
    manager: SessionManager,
    *,
    fixed_line: int | None = None,
    poll_interval: float = 0.1,
    max_events: int | None = None,
) -> None:
    """Poll `editor.path` and feed every change to the session manager.

    `max_events` stops the loop after that many change events have been
    delivered and their evaluations have finished.

    Example:
        ```python
        await watch_file(FileEditor(Path("demo.php")), manager)
        ```
    """
    path = editor.path
    manager.open(editor)
    snapshot = path.read_text(encoding="utf-8")
    last_mtime = path.stat().st_mtime_ns
    editor.cursor_line = fixed_line if fixed_line is not None else max(0, len(snapshot.splitlines()) - 1)
    manager.text_changed(editor.key)
    delivered = 1
    logger.info("Watching %s", path)

    try:
        while max_events is None or delivered < max_events:
            await asyncio.sleep(poll_interval)
            try:
                mtime = path.stat().st_mtime_ns
            except FileNotFoundError:
                logger.warning("Watched file %s disappeared", path)
                continue
            if mtime == last_mtime:
                continue
            last_mtime = mtime
            try:
                current = path.read_text(encoding="utf-8")
            except OSError as exc:
                logger.warning("Could not read %s: %s", path, exc)
                continue
            if current == snapshot:
                continue
            if fixed_line is None:
                editor.cursor_line = first_changed_line(snapshot, current)
            snapshot = current
            logger.debug("Change detected in %s at line %s", path, editor.cursor_line + 1)
            manager.text_changed(editor.key)
            delivered += 1

        session = manager.get(editor.key)
        while session is not None and session.pending:
            await asyncio.sleep(poll_interval)
        await manager.wait_idle()
    finally:
        manager.close(editor.key)
