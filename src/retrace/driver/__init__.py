"""The prompt loop tying control, terminal, replay and language together."""

from .driver import Driver
from .report import format_error, format_parse_error
from .session import create_session, marker_styles
from .states import ReplState, SessionSummary

__all__ = [
    "Driver",
    "ReplState",
    "SessionSummary",
    "create_session",
    "format_error",
    "format_parse_error",
    "marker_styles",
]
