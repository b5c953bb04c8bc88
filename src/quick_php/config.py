from __future__ import annotations

import tomllib
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

SETTINGS_TABLE = "quickphp"


def _default_settings_path() -> Path:
    """Return bundled default settings TOML path.

    Example:
        ```python
        path = _default_settings_path()
        ```
    """
    return Path(__file__).with_name("default_settings.toml")


def _read_settings_toml(path: Path) -> dict[str, Any]:
    """Read settings TOML and return the raw settings dictionary.

    Keys may live at the top level or under a `[quickphp]` table.

    Example:
        ```python
        raw = _read_settings_toml(Path("/tmp/quickphp.toml"))
        ```
    """
    if not path.exists():
        return {
            "phpPath": "php",
            "executionDelay": 300,
            "inlineColor": "grey",
            "errorColor": "red",
        }
    raw = tomllib.loads(path.read_text(encoding="utf-8"))
    settings_obj = raw.get(SETTINGS_TABLE, raw)
    if not isinstance(settings_obj, dict):
        raise ValueError("Settings config must be a TOML table")
    return settings_obj


def _non_empty_str(value: Any, field_name: str) -> str:
    """Validate a string setting that must not be blank.

    Example:
        ```python
        php = _non_empty_str("php", "phpPath")
        ```
    """
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"'{field_name}' must be a non-empty string")
    return value.strip()


_DEFAULT_SETTINGS_RAW = _read_settings_toml(_default_settings_path())
DEFAULT_PHP_PATH = str(_DEFAULT_SETTINGS_RAW.get("phpPath", "php"))
DEFAULT_EXECUTION_DELAY_MS = int(_DEFAULT_SETTINGS_RAW.get("executionDelay", 300))
DEFAULT_INLINE_COLOR = str(_DEFAULT_SETTINGS_RAW.get("inlineColor", "grey"))
DEFAULT_ERROR_COLOR = str(_DEFAULT_SETTINGS_RAW.get("errorColor", "red"))


@dataclass(frozen=True, slots=True)
class QuickPhpSettings:
    """Snapshot of the inline runner settings.

    Example:
        ```python
        settings = QuickPhpSettings(php_path="/usr/bin/php", execution_delay_ms=150)
        ```
    """

    php_path: str = DEFAULT_PHP_PATH
    execution_delay_ms: int = DEFAULT_EXECUTION_DELAY_MS
    inline_color: str = DEFAULT_INLINE_COLOR
    error_color: str = DEFAULT_ERROR_COLOR
    timeout_seconds: float | None = None
    config_path: str | None = None

    def __post_init__(self) -> None:
        """Validate field values after dataclass initialization.

        Example:
            ```python
            QuickPhpSettings(execution_delay_ms=0)
            ```
        """
        _non_empty_str(self.php_path, "phpPath")
        _non_empty_str(self.inline_color, "inlineColor")
        _non_empty_str(self.error_color, "errorColor")
        if isinstance(self.execution_delay_ms, bool) or not isinstance(self.execution_delay_ms, int):
            raise ValueError("'executionDelay' must be an integer number of milliseconds")
        if self.execution_delay_ms < 0:
            raise ValueError("'executionDelay' must not be negative")
        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            raise ValueError("'timeoutSeconds' must be positive when set")

    @property
    def execution_delay_seconds(self) -> float:
        return self.execution_delay_ms / 1000

    @classmethod
    def from_file(cls, config_path: str) -> "QuickPhpSettings":
        """Create a settings instance from a TOML file.

        Example:
            ```python
            settings = QuickPhpSettings.from_file("/tmp/quickphp.toml")
            ```
        """
        if not Path(config_path).exists():
            raise ValueError(f"Settings file not found: {config_path}")
        raw = _read_settings_toml(Path(config_path))
        delay = raw.get("executionDelay", DEFAULT_EXECUTION_DELAY_MS)
        if isinstance(delay, bool) or not isinstance(delay, int):
            raise ValueError("'executionDelay' must be an integer number of milliseconds")
        timeout = raw.get("timeoutSeconds")
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
            raise ValueError("'timeoutSeconds' must be a number")
        return cls(
            php_path=_non_empty_str(raw.get("phpPath", DEFAULT_PHP_PATH), "phpPath"),
            execution_delay_ms=delay,
            inline_color=_non_empty_str(raw.get("inlineColor", DEFAULT_INLINE_COLOR), "inlineColor"),
            error_color=_non_empty_str(raw.get("errorColor", DEFAULT_ERROR_COLOR), "errorColor"),
            timeout_seconds=float(timeout) if timeout is not None else None,
            config_path=config_path,
        )

    def with_overrides(self, **overrides: Any) -> "QuickPhpSettings":
        """Return a copy with every non-None override applied.

        Example:
            ```python
            settings = QuickPhpSettings().with_overrides(php_path="/opt/php/bin/php")
            ```
        """
        changes = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **changes) if changes else self


def resolve_settings(
    settings: QuickPhpSettings | None,
    settings_file: str | None,
) -> QuickPhpSettings:
    """Resolve the effective settings snapshot.

    Example:
        ```python
        settings = resolve_settings(None, "/tmp/quickphp.toml")
        ```
    """
    if settings is not None and settings_file is not None:
        raise ValueError("Provide either 'settings' or 'settings_file', not both")
    if settings is None and settings_file is not None:
        return QuickPhpSettings.from_file(settings_file)
    if settings is None:
        return QuickPhpSettings()
    return settings
