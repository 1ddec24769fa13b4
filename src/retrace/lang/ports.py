"""Output/input strategies injected into the interpreter."""

from __future__ import annotations

import sys
from typing import Optional, Protocol, TextIO

from retrace.control import Bounce, Continuation, Step


class OutputPort(Protocol):
    def emit(self, text: str, k: Continuation) -> Step:
        ...


class InputPort(Protocol):
    def read_line(self, k: Continuation) -> Step:
        """Continue with the raw line, ``""`` meaning end of input."""
        ...


class StreamOutput:
    """Unvirtualized output: writes immediately, nothing to undo."""

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def emit(self, text: str, k: Continuation) -> Step:
        self.stream.write(text)
        return Bounce(k, (None,))


class StreamInput:
    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdin

    def read_line(self, k: Continuation) -> Step:
        return Bounce(k, (self.stream.readline(),))


__all__ = ["InputPort", "OutputPort", "StreamInput", "StreamOutput"]
