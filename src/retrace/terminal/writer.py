"""Region-wrapped output: every write opens a region whose exit undoes it."""

from __future__ import annotations

from typing import Any, Callable, Optional

from retrace.control import Bounce, Continuation, ControlContext, Step

from .records import PendingWrite
from .virtual import VirtualTerminal


class _Written:
    """Enter/exit pair for one logical write; re-entry writes it again."""

    __slots__ = ("_perform", "_terminal", "record")

    def __init__(
        self, perform: Callable[[], PendingWrite], terminal: VirtualTerminal
    ) -> None:
        self._perform = perform
        self._terminal = terminal
        self.record: Optional[PendingWrite] = None

    def enter(self) -> None:
        self.record = self._perform()

    def exit(self) -> None:
        if self.record is not None:
            self._terminal.undo(self.record)


class RegionWriter:
    """Writes through a ``VirtualTerminal`` inside open-ended regions.

    The region opened by a write encloses the rest of the computation, so a
    checkpoint captured before the write retracts it on resume, and a
    checkpoint captured after it writes it again on advance.
    """

    def __init__(self, control: ControlContext, terminal: VirtualTerminal) -> None:
        self.control = control
        self.terminal = terminal

    def display(self, text: str, k: Continuation, *, result: Any = None) -> Step:
        if not text:
            return Bounce(k, (result,))
        return self._wrap(lambda: self.terminal.display(text), k, result, "display")

    def value(self, value: Any, text: str, k: Continuation, *, result: Any = None) -> Step:
        return self._wrap(
            lambda: self.terminal.print_value(value, text), k, result, "value"
        )

    def emit(self, text: str, k: Continuation) -> Step:
        """Output-port entry point used by the language's display procedures."""

        return self.display(text, k)

    def _wrap(
        self,
        perform: Callable[[], PendingWrite],
        k: Continuation,
        result: Any,
        label: str,
    ) -> Step:
        written = _Written(perform, self.terminal)
        return self.control.scoped(
            written.enter,
            written.exit,
            lambda _leave: Bounce(k, (result,)),
            k,
            label=label,
            open_ended=True,
        )


__all__ = ["RegionWriter"]
