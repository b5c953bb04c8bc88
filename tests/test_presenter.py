from quick_php import Presenter, QuickPhpSettings
from quick_php.presenter import collapse_lines, format_annotation


def test_format_annotation_success_and_error() -> None:
    assert format_annotation("hi", 0.014) == "// hi (Execution Time: 0.01s)"
    assert format_annotation("bad", 1.5, is_error=True) == "// Error: bad (Execution Time: 1.50s)"


def test_multiline_output_is_collapsed() -> None:
    assert collapse_lines("one\ntwo\r\n  three\n") == "one two three"
    assert format_annotation("a\nb", 0.0) == "// a b (Execution Time: 0.00s)"


def test_show_uses_configured_and_alert_colors(surface) -> None:
    settings = QuickPhpSettings(inline_color="cyan")
    presenter = Presenter(surface, "ed", settings_provider=lambda: settings)

    ok = presenter.show(2, "42", 0.1)
    failed = presenter.show(3, "boom", 0.1, is_error=True)

    assert ok is not None and ok.color == "cyan"
    assert failed is not None and failed.color == "red"
    assert failed.is_error is True
    assert surface.created[-1].line == 3
    assert surface.created[-1].text.startswith("// Error: boom")


def test_new_annotation_disposes_previous(surface) -> None:
    presenter = Presenter(surface, "ed")

    presenter.show(0, "first", 0.0)
    presenter.show(1, "second", 0.0)

    first, second = surface.created
    assert first.disposed is True
    assert second.disposed is False
    assert surface.max_live == 1
    assert presenter.annotation is not None and presenter.annotation.line == 1


def test_blank_text_clears(surface) -> None:
    presenter = Presenter(surface, "ed")
    presenter.show(0, "value", 0.0)

    assert presenter.show(0, "  \n", 0.0) is None

    assert surface.live == []
    assert presenter.annotation is None


def test_clear_without_annotation_is_noop(surface) -> None:
    presenter = Presenter(surface, "ed")

    presenter.clear()

    assert surface.created == []
