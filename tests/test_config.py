from pathlib import Path

import pytest

from quick_php import QuickPhpSettings, resolve_settings
from quick_php.config import (
    DEFAULT_EXECUTION_DELAY_MS,
    DEFAULT_INLINE_COLOR,
    DEFAULT_PHP_PATH,
)


def test_bundled_defaults() -> None:
    settings = QuickPhpSettings()

    assert DEFAULT_PHP_PATH == "php"
    assert DEFAULT_EXECUTION_DELAY_MS == 300
    assert DEFAULT_INLINE_COLOR == "grey"
    assert settings.error_color == "red"
    assert settings.timeout_seconds is None
    assert settings.execution_delay_seconds == pytest.approx(0.3)


def test_settings_file_with_table(tmp_path: Path) -> None:
    config = tmp_path / "quickphp.toml"
    config.write_text(
        (
            "[quickphp]\n"
            "phpPath = \"/opt/php/bin/php\"\n"
            "executionDelay = 120\n"
            "inlineColor = \"cyan\"\n"
            "timeoutSeconds = 4\n"
        ),
        encoding="utf-8",
    )

    settings = QuickPhpSettings.from_file(str(config))

    assert settings.php_path == "/opt/php/bin/php"
    assert settings.execution_delay_ms == 120
    assert settings.inline_color == "cyan"
    assert settings.error_color == "red"
    assert settings.timeout_seconds == 4.0
    assert settings.config_path == str(config)


def test_settings_file_top_level_keys(tmp_path: Path) -> None:
    config = tmp_path / "quickphp.toml"
    config.write_text("phpPath = \"php8.3\"\n", encoding="utf-8")

    settings = QuickPhpSettings.from_file(str(config))

    assert settings.php_path == "php8.3"
    assert settings.execution_delay_ms == 300


def test_settings_file_rejects_bad_delay(tmp_path: Path) -> None:
    config = tmp_path / "quickphp.toml"
    config.write_text("[quickphp]\nexecutionDelay = \"fast\"\n", encoding="utf-8")

    with pytest.raises(ValueError, match="executionDelay"):
        QuickPhpSettings.from_file(str(config))


def test_settings_file_rejects_blank_php_path(tmp_path: Path) -> None:
    config = tmp_path / "quickphp.toml"
    config.write_text("[quickphp]\nphpPath = \"  \"\n", encoding="utf-8")

    with pytest.raises(ValueError, match="phpPath"):
        QuickPhpSettings.from_file(str(config))


def test_missing_settings_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="not found"):
        QuickPhpSettings.from_file(str(tmp_path / "absent.toml"))


def test_negative_delay_rejected() -> None:
    with pytest.raises(ValueError, match="negative"):
        QuickPhpSettings(execution_delay_ms=-1)


def test_with_overrides_skips_none() -> None:
    base = QuickPhpSettings()
    updated = base.with_overrides(php_path="/usr/bin/php", inline_color=None)

    assert updated.php_path == "/usr/bin/php"
    assert updated.inline_color == base.inline_color
    assert base.with_overrides(php_path=None) is base


def test_resolve_settings_rejects_both_sources(tmp_path: Path) -> None:
    config = tmp_path / "quickphp.toml"
    config.write_text("[quickphp]\n", encoding="utf-8")

    with pytest.raises(ValueError, match="Provide either 'settings' or 'settings_file'"):
        resolve_settings(QuickPhpSettings(), str(config))


def test_resolve_settings_prefers_given_snapshot() -> None:
    settings = QuickPhpSettings(execution_delay_ms=10)

    assert resolve_settings(settings, None) is settings
    assert resolve_settings(None, None) == QuickPhpSettings()
