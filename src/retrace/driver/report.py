"""Textual form of failures shown at the prompt."""

from __future__ import annotations

from typing import Any

from retrace.lang import RaisedObject, to_written


def format_error(error: BaseException) -> str:
    """Render ``error`` the way the prompt reports it.

    Objects passed to ``raise`` print as their written form. Errors carrying a
    message print it followed by each irritant's written form.
    """

    if isinstance(error, RaisedObject):
        return to_written(error.payload)
    message: Any = getattr(error, "message", None)
    if message is None:
        return str(error) or type(error).__name__
    irritants = getattr(error, "irritants", ())
    return " ".join([str(message), *(to_written(item) for item in irritants)])


def format_parse_error(message: str) -> str:
    return f"parse error: {message}"


__all__ = ["format_error", "format_parse_error"]
