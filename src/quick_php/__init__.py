from .config import QuickPhpSettings, resolve_settings
from .execution.php_engine import PhpEngine
from .host import TextDocument
from .presenter import Annotation, Presenter
from .runner import EmptySelectionError, RunOutcome, run_block, run_live
from .session import EditorSession, SessionManager
from .trigger import should_evaluate

__all__ = [
    "Annotation",
    "EditorSession",
    "EmptySelectionError",
    "PhpEngine",
    "Presenter",
    "QuickPhpSettings",
    "RunOutcome",
    "SessionManager",
    "TextDocument",
    "resolve_settings",
    "run_block",
    "run_live",
    "should_evaluate",
]
