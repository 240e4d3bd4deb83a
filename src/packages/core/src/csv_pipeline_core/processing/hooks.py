"""Row hooks applied to every parsed row.

A hook takes the row dict and returns nothing; raising any exception marks
the row as failed, with the exception message recorded against its line.
"""
import importlib
from typing import Any, Callable

from csv_pipeline_core.util.errors import ValidationError

RowHook = Callable[[dict[str, Any]], None]


def accept_row(row: dict[str, Any]) -> None:
    """Default hook: every row succeeds."""
    return None


def required_fields(*names: str) -> RowHook:
    """Hook that fails rows with a missing or blank value in any of ``names``."""

    def hook(row: dict[str, Any]) -> None:
        missing = [n for n in names if not str(row.get(n) or "").strip()]
        if missing:
            raise ValueError(f"missing required field(s): {', '.join(missing)}")

    return hook


def load_hook(path: str | None) -> RowHook:
    """Resolve a ``package.module:function`` reference; empty means ``accept_row``."""
    if not path:
        return accept_row
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise ValidationError(f"Row hook must look like 'package.module:function', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ValidationError(f"Cannot import row hook module {module_name!r}: {e}") from e
    hook = getattr(module, attr, None)
    if not callable(hook):
        raise ValidationError(f"Row hook {path!r} is not a callable")
    return hook
