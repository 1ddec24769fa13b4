"""Real terminal backed by a pair of text streams."""

from __future__ import annotations

import sys
from typing import Optional, Protocol, TextIO


class Terminal(Protocol):
    """What the virtual terminal needs from the real one."""

    def write(self, text: str) -> None:
        ...

    def flush(self) -> None:
        ...

    def read_line(self) -> str:
        """Return the next line including its newline; ``""`` at end of input."""
        ...


def echo_text(line: str) -> str:
    """Visible trace of a typed line: the line itself, always newline-terminated."""

    return line if line.endswith("\n") else line + "\n"


def _is_interactive(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    try:
        return bool(isatty()) if isatty is not None else False
    except ValueError:  # closed stream
        return False


class StreamTerminal:
    """Line-oriented terminal over ``stdin``/``stdout``.

    A TTY echoes what the user types. When input is piped the terminal writes
    the line itself, so transcripts look the same either way and cursor
    arithmetic on undo stays valid.
    """

    def __init__(
        self,
        stdin: Optional[TextIO] = None,
        stdout: Optional[TextIO] = None,
        *,
        echo_input: Optional[bool] = None,
    ) -> None:
        self.stdin = stdin if stdin is not None else sys.stdin
        self.stdout = stdout if stdout is not None else sys.stdout
        if echo_input is None:
            echo_input = not _is_interactive(self.stdin)
        self.echo_input = echo_input
        self.lines_read = 0

    def write(self, text: str) -> None:
        if text:
            self.stdout.write(text)

    def flush(self) -> None:
        self.stdout.flush()

    def read_line(self) -> str:
        line = self.stdin.readline()
        if not line:
            return ""
        self.lines_read += 1
        if self.echo_input:
            self.stdout.write(echo_text(line))
            self.stdout.flush()
        return line


__all__ = ["StreamTerminal", "Terminal", "echo_text"]
