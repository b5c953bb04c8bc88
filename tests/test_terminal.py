import asyncio
import io
import os
from pathlib import Path

import pytest
from rich.console import Console

from qphp.terminal import (
    ConsoleMessages,
    ConsoleSurface,
    FileEditor,
    first_changed_line,
    rich_color,
    watch_file,
)
from quick_php import PhpEngine, QuickPhpSettings, SessionManager


@pytest.mark.parametrize(
    ("before", "after", "expected"),
    [
        ("a\nb\nc", "a\nX\nc", 1),
        ("a\nb", "a\nb\nc", 2),
        ("a\nb\nc", "a\nb", 1),
        ("a", "a", 0),
        ("", "echo 1;", 0),
    ],
)
def test_first_changed_line(before: str, after: str, expected: int) -> None:
    assert first_changed_line(before, after) == expected


def test_rich_color_aliases_and_fallback() -> None:
    assert rich_color("grey") == "grey50"
    assert rich_color("red") == "red"
    assert rich_color("#00ff00") == "#00ff00"
    assert rich_color("not-a-color") == "default"


def test_console_surface_prints_source_line_and_annotation(tmp_path: Path) -> None:
    script = tmp_path / "demo.php"
    script.write_text('<?php\necho "hi";\n', encoding="utf-8")
    buffer = io.StringIO()
    surface = ConsoleSurface(Console(file=buffer, width=200))
    editor = FileEditor(script)
    surface.register(editor)

    decoration = surface.create(editor.key, 1, "// hi (Execution Time: 0.01s)", "grey")
    decoration.dispose()

    output = buffer.getvalue()
    assert '2 | echo "hi"; // hi (Execution Time: 0.01s)' in output
    assert decoration.disposed is True


def test_console_messages_render_panels() -> None:
    buffer = io.StringIO()
    messages = ConsoleMessages(Console(file=buffer, width=100))

    messages.info("42")
    messages.error("No PHP code selected to execute.")

    output = buffer.getvalue()
    assert "42" in output
    assert "Error: No PHP code selected to execute." in output


def test_watch_file_annotates_initial_and_changed_lines(fake_php, tmp_path: Path, surface, messages) -> None:
    script = tmp_path / "watched.php"
    script.write_text('<?php\n$x = 1;\necho "first";\n', encoding="utf-8")
    editor = FileEditor(script)
    engine = PhpEngine(php_path=fake_php.path)
    settings = QuickPhpSettings(execution_delay_ms=10)

    async def scenario() -> None:
        manager = SessionManager(
            surface,
            messages,
            settings_provider=lambda: settings,
            engine_factory=lambda _settings: engine,
        )
        task = asyncio.create_task(
            watch_file(editor, manager, poll_interval=0.02, max_events=2)
        )
        await asyncio.sleep(0.5)
        previous = script.stat().st_mtime_ns
        script.write_text('<?php\n$x = 1;\necho "second";\n', encoding="utf-8")
        bumped = previous + 1_000_000_000
        os.utime(script, ns=(bumped, bumped))
        await asyncio.wait_for(task, timeout=10)
        assert editor.key not in manager

    asyncio.run(scenario())

    assert [(d.line, d.text.split(" (")[0]) for d in surface.created] == [
        (2, "// first"),
        (2, "// second"),
    ]
    assert surface.live == []
    assert fake_php.calls() == [str(script), str(script)]


def test_watch_file_fixed_line(fake_php, tmp_path: Path, surface, messages) -> None:
    script = tmp_path / "fixed.php"
    script.write_text('<?php\necho "top";\n$y = 2;\n', encoding="utf-8")
    editor = FileEditor(script)
    engine = PhpEngine(php_path=fake_php.path)

    async def scenario() -> None:
        manager = SessionManager(
            surface,
            messages,
            settings_provider=lambda: QuickPhpSettings(execution_delay_ms=0),
            engine_factory=lambda _settings: engine,
        )
        await watch_file(editor, manager, fixed_line=1, poll_interval=0.01, max_events=1)

    asyncio.run(scenario())

    assert [d.line for d in surface.created] == [1]
    assert surface.created[0].text.startswith("// top")
