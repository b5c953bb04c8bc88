"""Editor-facing seams the runner talks to.

An editor integration provides implementations of these protocols; the CLI
ships terminal-backed ones in `qphp.terminal`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class TextDocument:
    """In-memory document snapshot.

    Example:
        ```python
        doc = TextDocument(text='echo "hi";', path=None)
        ```
    """

    text: str
    path: str | None = None

    @property
    def is_untitled(self) -> bool:
        return self.path is None

    @property
    def line_count(self) -> int:
        return len(self.text.splitlines()) or 1

    def line_at(self, index: int) -> str:
        """Return the text of one zero-based line, or "" when out of range.

        Example:
            ```python
            TextDocument("a\\nb").line_at(1)  # "b"
            ```
        """
        lines = self.text.splitlines()
        if 0 <= index < len(lines):
            return lines[index]
        return ""


class Document(Protocol):
    text: str
    path: str | None

    @property
    def is_untitled(self) -> bool: ...

    def line_at(self, index: int) -> str: ...


class Editor(Protocol):
    """Live view of one open editor, read at the moment a timer fires."""

    @property
    def key(self) -> str: ...

    @property
    def document(self) -> Document: ...

    @property
    def cursor_line(self) -> int: ...

    @property
    def selection_text(self) -> str: ...


class Decoration(Protocol):
    def dispose(self) -> None: ...


class DecorationSurface(Protocol):
    def create(self, editor_key: str, line: int, text: str, color: str) -> Decoration:
        """Render trailing text at the end of `line` and return its handle."""
        ...


class MessageSurface(Protocol):
    def info(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...
