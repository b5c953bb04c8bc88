from __future__ import annotations

import stat
import sys
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from quick_php.host import TextDocument

_FAKE_PHP_SOURCE = '''
import os
import re
import sys
import time
from pathlib import Path

script = sys.argv[1]
reported = os.path.realpath(script)
with open({log!r}, "a", encoding="utf-8") as log:
    log.write(script + "\\n")
source = Path(script).read_text(encoding="utf-8")
with open({log!r} + ".src", "a", encoding="utf-8") as log:
    log.write(source + "\\0")

delay = re.search(r"sleep\\((\\d+(?:\\.\\d+)?)\\)", source)
if delay:
    time.sleep(float(delay.group(1)))
if "$undefined" in source:
    sys.stderr.write(f"PHP Warning:  Undefined variable $undefined in {{reported}} on line 2\\n")
    sys.exit(0)
if "latin1()" in source:
    sys.stdout.buffer.write(b"caf\\xe9\\n")
    sys.exit(0)
if "fatal()" in source:
    sys.stdout.write(f"PHP Fatal error:  Call to undefined function fatal() in {{reported}}\\n")
    sys.exit(255)
for text in re.findall(r'echo\\s+"([^"]*)"', source):
    sys.stdout.write(text.replace("\\\\n", "\\n"))
'''


@dataclass
class FakePhp:
    """Stand-in interpreter that echoes string literals and logs every call.

    Like PHP, it reports the script path with symlinks resolved.
    """

    path: str
    log_path: Path

    def calls(self) -> list[str]:
        if not self.log_path.exists():
            return []
        return self.log_path.read_text(encoding="utf-8").splitlines()

    def sources(self) -> list[str]:
        source_log = Path(str(self.log_path) + ".src")
        if not source_log.exists():
            return []
        return [chunk for chunk in source_log.read_text(encoding="utf-8").split("\0") if chunk]


@pytest.fixture
def fake_php(tmp_path: Path) -> FakePhp:
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    log_path = tmp_path / "php_calls.log"
    script = bin_dir / "fake_php.py"
    script.write_text(_FAKE_PHP_SOURCE.format(log=str(log_path)), encoding="utf-8")
    launcher = bin_dir / "php"
    launcher.write_text(f'#!/bin/sh\nexec "{sys.executable}" "{script}" "$@"\n', encoding="utf-8")
    launcher.chmod(launcher.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return FakePhp(path=str(launcher), log_path=log_path)


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    path = tmp_path / "scratch"
    path.mkdir()
    return path


@dataclass
class MutableEditor:
    key: str
    document: TextDocument
    cursor_line: int = 0
    selection_text: str = ""


class RecordingDecoration:
    def __init__(self, surface: "RecordingSurface", editor_key: str, line: int, text: str, color: str) -> None:
        self._surface = surface
        self.editor_key = editor_key
        self.line = line
        self.text = text
        self.color = color
        self.disposed = False

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self._surface.live.remove(self)


class RecordingSurface:
    def __init__(self) -> None:
        self.created: list[RecordingDecoration] = []
        self.live: list[RecordingDecoration] = []
        self.max_live = 0

    def create(self, editor_key: str, line: int, text: str, color: str) -> RecordingDecoration:
        decoration = RecordingDecoration(self, editor_key, line, text, color)
        self.created.append(decoration)
        self.live.append(decoration)
        self.max_live = max(self.max_live, len(self.live))
        return decoration


@dataclass
class RecordingMessages:
    infos: list[str] = field(default_factory=list)
    errors: list[str] = field(default_factory=list)

    def info(self, message: str) -> None:
        self.infos.append(message)

    def error(self, message: str) -> None:
        self.errors.append(message)


@pytest.fixture
def surface() -> RecordingSurface:
    return RecordingSurface()


@pytest.fixture
def messages() -> RecordingMessages:
    return RecordingMessages()
