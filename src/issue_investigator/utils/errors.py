"""Error formatting helpers."""

import json
import traceback
from typing import Any


def format_error(error: Any) -> str:
    """Render an error as ``"{Type}: {message}"`` followed by its traceback.

    Strings are returned unchanged; anything else is dumped as JSON where
    possible so it can be stored in an audit entry.
    """
    if isinstance(error, BaseException):
        header = f"{type(error).__name__}: {error}"
        trace = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        return f"{header}\n{trace}".rstrip()

    if isinstance(error, str):
        return error

    try:
        return json.dumps(error, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(error)


def short_error(error: BaseException) -> str:
    """One-line ``Type: message`` form used in progress messages and logs."""
    return f"{type(error).__name__}: {error}"
