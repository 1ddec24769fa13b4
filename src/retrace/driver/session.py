"""Assemble a complete session from settings and a pair of streams."""

from __future__ import annotations

from typing import Optional, TextIO

from retrace.control import ControlContext
from retrace.lang import Environment, Interpreter
from retrace.replay import RedoLog
from retrace.runtime.settings import (
    ERROR_STYLE,
    RESET_STYLE,
    VALUE_STYLE,
    ReplSettings,
)
from retrace.terminal import MarkerStyles, RegionWriter, StreamTerminal, VirtualTerminal

from .driver import Driver


def marker_styles(settings: ReplSettings) -> MarkerStyles:
    if not settings.color:
        return MarkerStyles.plain()
    return MarkerStyles(value=VALUE_STYLE, error=ERROR_STYLE, reset=RESET_STYLE)


def create_session(
    settings: Optional[ReplSettings] = None,
    *,
    stdin: Optional[TextIO] = None,
    stdout: Optional[TextIO] = None,
    echo_input: Optional[bool] = None,
    environment: Optional[Environment] = None,
) -> Driver:
    """Wire control engine, terminals, redo log and interpreter into a ``Driver``.

    Nothing is read or written until ``Driver.run`` is called.
    """

    settings = settings or ReplSettings.from_env()
    control = ControlContext()
    real = StreamTerminal(stdin, stdout, echo_input=echo_input)
    terminal = VirtualTerminal(real, styles=marker_styles(settings))
    writer = RegionWriter(control, terminal)
    redo = RedoLog(control, terminal, writer)
    interpreter = Interpreter(
        control, output=writer, input_port=redo, environment=environment
    )
    return Driver(control, terminal, writer, redo, interpreter, settings=settings)


__all__ = ["create_session", "marker_styles"]
