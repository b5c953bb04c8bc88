from __future__ import annotations

ECHO_PREFIX = "echo "
PRINT_MARKER = "print"
VARIABLE_SIGIL = "$"


def should_evaluate(line_text: str) -> bool:
    """Return True when a source line looks worth evaluating.

    This is a lexical guess, not a parse: a comment mentioning `$` still
    triggers, and a statement split across lines may not.

    Example:
        ```python
        should_evaluate('echo "hi";')  # True
        ```
    """
    stripped = line_text.strip()
    return (
        stripped.startswith(ECHO_PREFIX)
        or PRINT_MARKER in stripped
        or VARIABLE_SIGIL in stripped
    )
