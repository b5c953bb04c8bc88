from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import fields
from functools import partial
from pathlib import Path
from typing import Any, Never, Sequence

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.pretty import Pretty
from rich.text import Text
from rich_argparse import RawTextRichHelpFormatter

from qphp.terminal import ConsoleMessages, ConsoleSurface, FileEditor, rich_color, watch_file
from quick_php import QuickPhpSettings, resolve_settings
from quick_php.execution.engine import ExecutionEngine
from quick_php.host import TextDocument
from quick_php.presenter import format_annotation
from quick_php.runner import EmptySelectionError, RunOutcome, run_block, run_live
from quick_php.session import SessionManager, default_engine
from quick_php.trigger import should_evaluate

_CONSOLE = Console(no_color=False)
_ERR_CONSOLE = Console(stderr=True)

DEFAULT_CONFIG_NAME = "quickphp.toml"


class _CLIHelpFormatter(RawTextRichHelpFormatter):
    """Rich formatter with explicit high-contrast CLI styles.

    Example:
        ```python
        parser = argparse.ArgumentParser(formatter_class=_CLIHelpFormatter)
        ```
    """

    styles = {
        "argparse.args": "bold cyan",
        "argparse.groups": "bold magenta",
        "argparse.help": "white",
        "argparse.metavar": "bold yellow",
        "argparse.prog": "bold bright_blue",
        "argparse.syntax": "bold bright_white",
        "argparse.text": "bright_white",
    }


_HELP_FORMATTER = partial(
    _CLIHelpFormatter,
    max_help_position=34,
    width=120,
)


class _RichArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that renders errors via Rich.

    Example:
        ```python
        parser = _RichArgumentParser(prog="qphp")
        ```
    """

    def error(self, message: str) -> Never:
        """Render parse errors with Rich and exit.

        Example:
            ```python
            # parser.error("invalid usage")
            ```
        """
        _CONSOLE.print(Panel.fit(f"[bold red]Error:[/bold red] {message}", border_style="red"))
        self.print_help()
        raise SystemExit(2)


def _positive_line(value: str) -> int:
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError("line numbers start at 1")
    return number


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser for the inline PHP runner.

    Example:
        ```python
        parser = build_parser()
        ```
    """
    parser = _RichArgumentParser(
        prog="qphp",
        description=(
            "quick-php CLI\n"
            "Evaluate PHP as you edit and print the result next to the line."
        ),
        epilog=(
            "Quick Examples:\n"
            "  qphp watch demo.php\n"
            "  qphp watch demo.php --line 4\n"
            "  qphp run demo.php --line 2\n"
            "  qphp block demo.php --start 3 --end 7\n"
            "  cat snippet.php | qphp block -\n"
            "  qphp config\n\n"
            "Settings:\n"
            "  Read from --config, or ./quickphp.toml when present.\n"
            "  Keys: phpPath, executionDelay, inlineColor, errorColor, timeoutSeconds"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    parser.add_argument(
        "--config",
        help="Path to a TOML settings file (default: ./quickphp.toml if it exists).",
    )
    parser.add_argument(
        "--php-path",
        help="PHP interpreter to run (default: php from PATH).",
    )
    parser.add_argument(
        "--delay-ms",
        type=int,
        help="Debounce delay in milliseconds for watch mode (default: 300).",
    )
    parser.add_argument(
        "--color",
        help="Annotation color for successful output (default: grey).",
    )
    parser.add_argument(
        "--timeout-seconds",
        type=float,
        help="Kill the interpreter after this many seconds (default: no timeout).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log interpreter commands and timings.",
    )

    sub = parser.add_subparsers(
        dest="command",
        required=True,
        parser_class=_RichArgumentParser,
    )

    watch_cmd = sub.add_parser(
        "watch",
        help="Re-evaluate a PHP file every time it changes.",
        description=(
            "Watch a PHP file and annotate the edited line after each change.\n"
            "The first changed line is treated as the cursor unless --line is given."
        ),
        epilog=(
            "Examples:\n"
            "  qphp watch demo.php\n"
            "  qphp --delay-ms 500 watch demo.php --line 10"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    watch_cmd.add_argument("file")
    watch_cmd.add_argument(
        "--line",
        type=_positive_line,
        help="Always annotate this 1-based line.",
    )
    watch_cmd.add_argument(
        "--poll-interval",
        type=float,
        default=0.1,
        help="Seconds between file checks (default: 0.1).",
    )

    run_cmd = sub.add_parser(
        "run",
        help="Evaluate a PHP file once and annotate one line.",
        description=(
            "Run the whole file and print the annotated line.\n"
            "Without --line the last line that looks evaluable is used."
        ),
        formatter_class=_HELP_FORMATTER,
    )
    run_cmd.add_argument("file")
    run_cmd.add_argument(
        "--line",
        type=_positive_line,
        help="1-based line to annotate.",
    )

    block_cmd = sub.add_parser(
        "block",
        help="Run a selected block of PHP verbatim.",
        description=(
            "Run a line range of a file, or stdin when FILE is '-'.\n"
            "The block is executed exactly as selected, without added tags."
        ),
        epilog=(
            "Examples:\n"
            "  qphp block demo.php --start 3 --end 7\n"
            "  echo '<?php echo 1 + 1;' | qphp block -"
        ),
        formatter_class=_HELP_FORMATTER,
    )
    block_cmd.add_argument("file")
    block_cmd.add_argument("--start", type=_positive_line, help="First 1-based line of the block.")
    block_cmd.add_argument("--end", type=_positive_line, help="Last 1-based line of the block.")

    sub.add_parser(
        "config",
        help="Show the effective settings.",
        description="Print settings after applying the settings file and CLI flags.",
        formatter_class=_HELP_FORMATTER,
    )

    return parser


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=_ERR_CONSOLE, show_path=False)],
        force=True,
    )


def build_settings(args: argparse.Namespace) -> QuickPhpSettings:
    """Resolve settings from the config file and global CLI flags.

    Example:
        ```python
        settings = build_settings(args)
        ```
    """
    config_path = args.config
    if config_path is None and Path(DEFAULT_CONFIG_NAME).is_file():
        config_path = DEFAULT_CONFIG_NAME
    settings = resolve_settings(None, config_path)
    return settings.with_overrides(
        php_path=args.php_path,
        execution_delay_ms=args.delay_ms,
        inline_color=args.color,
        timeout_seconds=args.timeout_seconds,
    )


def build_engine(settings: QuickPhpSettings) -> ExecutionEngine:
    """Create the PHP engine for a settings snapshot.

    Example:
        ```python
        engine = build_engine(QuickPhpSettings())
        ```
    """
    return default_engine(settings)


def _read_file(path: str) -> str | None:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        _CONSOLE.print(Panel.fit(f"Cannot read {path}: {exc.strerror or exc}", style="bold red"))
        return None


def _default_line(document: TextDocument) -> int:
    lines = document.text.splitlines()
    for index in range(len(lines) - 1, -1, -1):
        if should_evaluate(lines[index]):
            return index
    return max(0, len(lines) - 1)


def _print_outcome(document: TextDocument, outcome: RunOutcome, settings: QuickPhpSettings) -> None:
    if not outcome.text.strip():
        _CONSOLE.print(Panel.fit("No output.", style="bold yellow"))
        return
    color = settings.error_color if outcome.is_error else settings.inline_color
    rendered = Text.assemble(
        (f"{outcome.line + 1:>4} | ", "dim"),
        document.line_at(outcome.line),
        " ",
        (
            format_annotation(outcome.text, outcome.elapsed_seconds, is_error=outcome.is_error),
            rich_color(color),
        ),
    )
    _CONSOLE.print(rendered, soft_wrap=True)


def _cmd_run(args: argparse.Namespace, settings: QuickPhpSettings) -> int:
    text = _read_file(args.file)
    if text is None:
        return 1
    document = TextDocument(text=text, path=str(Path(args.file).resolve()))
    line = args.line - 1 if args.line is not None else _default_line(document)
    if not should_evaluate(document.line_at(line)):
        _CONSOLE.print(Panel.fit(f"Line {line + 1} has nothing to evaluate.", style="bold yellow"))
        return 0
    outcome = run_live(document, line, build_engine(settings))
    _print_outcome(document, outcome, settings)
    return 1 if outcome.is_error else 0


def _cmd_block(args: argparse.Namespace, settings: QuickPhpSettings) -> int:
    if args.file == "-":
        selection = sys.stdin.read()
        start = 0
    else:
        text = _read_file(args.file)
        if text is None:
            return 1
        lines = text.splitlines(keepends=True)
        start = (args.start or 1) - 1
        end = args.end or len(lines)
        if end < start + 1:
            _CONSOLE.print(Panel.fit("--end must not be before --start", style="bold red"))
            return 2
        selection = "".join(lines[start:end])

    messages = ConsoleMessages(_CONSOLE)
    try:
        outcome = run_block(selection, build_engine(settings), line=start)
    except EmptySelectionError as exc:
        messages.error(str(exc))
        return 1
    if outcome.is_error:
        messages.error(outcome.text)
        return 1
    messages.info(outcome.text)
    return 0


def _cmd_watch(args: argparse.Namespace, settings: QuickPhpSettings) -> int:
    path = Path(args.file).resolve()
    if not path.is_file():
        _CONSOLE.print(Panel.fit(f"No such file: {args.file}", style="bold red"))
        return 1
    editor = FileEditor(path)
    surface = ConsoleSurface(_CONSOLE)
    surface.register(editor)
    _CONSOLE.print(Panel.fit(f"Watching {path} (Ctrl+C to stop)", style="bold cyan"))

    async def _run() -> None:
        manager = SessionManager(
            surface,
            ConsoleMessages(_CONSOLE),
            settings_provider=lambda: settings,
            engine_factory=build_engine,
        )
        await watch_file(
            editor,
            manager,
            fixed_line=args.line - 1 if args.line is not None else None,
            poll_interval=args.poll_interval,
        )

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        _CONSOLE.print(Panel.fit("Stopped watching.", style="bold yellow"))
    return 0


def _settings_payload(settings: QuickPhpSettings) -> dict[str, Any]:
    return {field.name: getattr(settings, field.name) for field in fields(settings)}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the `qphp` CLI command handler.

    Example:
        ```python
        code = main(["run", "demo.php"])
        ```
    """
    parser = build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)
    _configure_logging(args.verbose)

    try:
        settings = build_settings(args)
    except ValueError as exc:
        _CONSOLE.print(Panel.fit(f"[bold red]Invalid settings:[/bold red] {exc}", border_style="red"))
        return 2

    if args.command == "config":
        _CONSOLE.print(Panel.fit(Pretty(_settings_payload(settings)), title="Settings", border_style="cyan"))
        return 0
    if args.command == "run":
        return _cmd_run(args, settings)
    if args.command == "block":
        return _cmd_block(args, settings)
    if args.command == "watch":
        return _cmd_watch(args, settings)

    parser.error("Unhandled command")
