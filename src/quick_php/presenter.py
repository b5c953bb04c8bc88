from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass

from .config import QuickPhpSettings
from .host import Decoration, DecorationSurface

_LINE_BREAKS = re.compile(r"\s*[\r\n]+\s*")


@dataclass(frozen=True, slots=True)
class Annotation:
    """Rendered end-of-line annotation.

    Example:
        ```python
        ann = Annotation(line=0, text="// hi (Execution Time: 0.01s)", color="grey", is_error=False)
        ```
    """

    line: int
    text: str
    color: str
    is_error: bool


def collapse_lines(text: str) -> str:
    """Fold multi-line output onto a single line.

    Example:
        ```python
        collapse_lines("a\\nb")  # "a b"
        ```
    """
    return _LINE_BREAKS.sub(" ", text.strip())


def format_annotation(text: str, elapsed_seconds: float, *, is_error: bool = False) -> str:
    """Build the trailing annotation text for one result.

    Example:
        ```python
        format_annotation("hi", 0.014)  # "// hi (Execution Time: 0.01s)"
        ```
    """
    body = collapse_lines(text)
    if is_error:
        body = f"Error: {body}"
    return f"// {body} (Execution Time: {elapsed_seconds:.2f}s)"


class Presenter:
    """Own the single annotation shown in one editor.

    Example:
        ```python
        presenter = Presenter(surface, "editor-1", settings_provider=QuickPhpSettings)
        presenter.show(3, "hi", 0.02)
        ```
    """

    def __init__(
        self,
        surface: DecorationSurface,
        editor_key: str,
        *,
        settings_provider: Callable[[], QuickPhpSettings] = QuickPhpSettings,
    ) -> None:
        self._surface = surface
        self._editor_key = editor_key
        self._settings_provider = settings_provider
        self._active: Decoration | None = None
        self._annotation: Annotation | None = None

    @property
    def annotation(self) -> Annotation | None:
        return self._annotation

    def show(self, line: int, text: str, elapsed_seconds: float, *, is_error: bool = False) -> Annotation | None:
        """Replace the current annotation, or clear it when `text` is blank.

        Example:
            ```python
            presenter.show(0, "Undefined variable $x", 0.03, is_error=True)
            ```
        """
        if not text.strip():
            self.clear()
            return None
        self.clear()
        settings = self._settings_provider()
        color = settings.error_color if is_error else settings.inline_color
        annotation = Annotation(
            line=line,
            text=format_annotation(text, elapsed_seconds, is_error=is_error),
            color=color,
            is_error=is_error,
        )
        self._active = self._surface.create(self._editor_key, line, annotation.text, color)
        self._annotation = annotation
        return annotation

    def clear(self) -> None:
        """Dispose the active annotation if there is one."""
        active, self._active = self._active, None
        self._annotation = None
        if active is not None:
            active.dispose()
