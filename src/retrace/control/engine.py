"""Multi-shot capture/resume and scoped regions over a CPS trampoline.

Continuations are ordinary closures ``k(value) -> Step``. Because they are
immutable they can be re-entered any number of times; the only state that has
to be saved and restored around a transfer is the dynamic context held by
``ControlContext``: the active-region stack and the error-trap stack.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Optional, Tuple, Union

from retrace.runtime import telemetry

from .errors import ContinuationError, EngineFault, TrappableError
from .regions import (
    Action,
    Frame,
    Region,
    depth_of,
    find_region,
    shared_depth,
    split_at,
)


@dataclass(slots=True)
class Bounce:
    """Request to the trampoline: call ``target(*args)`` next."""

    target: Callable[..., Any]
    args: Tuple[Any, ...] = ()


@dataclass(slots=True)
class Halt:
    """Terminal step carrying the final value of a run."""

    value: Any = None


Step = Union[Bounce, Halt]
Continuation = Callable[[Any], Step]
Body = Callable[[Continuation], Step]
TrapHandler = Callable[[TrappableError, Continuation], Step]


def bounce(target: Callable[..., Any], *args: Any) -> Bounce:
    return Bounce(target, args)


@dataclass(eq=False, slots=True)
class Trap:
    handler: TrapHandler
    k: Continuation
    parent: Optional["Trap"] = None
    # region stack when the trap was installed; errors unwind back to it
    frames: Optional[Frame] = None


@dataclass(eq=False, slots=True)
class Checkpoint:
    """Resumable handle: a continuation plus the dynamic state it expects."""

    continuation: Continuation
    frames: Optional[Frame]
    traps: Optional[Trap]
    guard_depth: int = 0

    def __repr__(self) -> str:
        depth = self.frames.depth if self.frames is not None else 0
        return f"<Checkpoint depth={depth} @{id(self):#x}>"


@dataclass(slots=True)
class ControlStats:
    captures: int = 0
    resumes: int = 0
    regions_entered: int = 0
    regions_exited: int = 0


class ControlContext:
    """Owns the dynamic state every CPS step runs against."""

    def __init__(self, *, logger_name: str = "retrace.control") -> None:
        self.frames: Optional[Frame] = None
        self.traps: Optional[Trap] = None
        self.stats = ControlStats()
        self._guard_depth = 0
        self._logger_name = logger_name
        self.logger = telemetry.get_logger(logger_name)

    @property
    def depth(self) -> int:
        return self.frames.depth if self.frames is not None else 0

    @property
    def guard_depth(self) -> int:
        return self._guard_depth

    def run(self, step: Step) -> Any:
        """Trampoline until a ``Halt`` is produced and return its value."""

        while True:
            if isinstance(step, Halt):
                return step.value
            if not isinstance(step, Bounce):
                raise EngineFault("continuation produced a non-step", detail=step)
            try:
                step = step.target(*step.args)
            except TrappableError as exc:
                trap = self.traps
                if trap is None:
                    raise
                self.traps = trap.parent
                telemetry.record_event(
                    "control.trap",
                    level="debug",
                    data={"error": type(exc).__name__, "depth": self.depth},
                    logger_name=self._logger_name,
                )
                # unwinding runs exit actions, which may fail in turn and
                # reach the next trap out
                step = Bounce(self._unwind_to_trap, (trap, exc))

    def run_nested(self, body: Body) -> Any:
        """Run ``body`` to completion on a private trampoline.

        Used for region actions written in the evaluated language. Errors
        propagate to the caller instead of reaching an outer trap. Scoped
        regions the body leaves open are closed on the way out; open-ended
        ones (anything it printed or read) stay on the restored stack.
        """

        saved_frames, saved_traps = self.frames, self.traps
        self._guard_depth += 1
        self.traps = None
        try:
            return self.run(Bounce(body, (Halt,)))
        except TrappableError:
            self._unwind(saved_frames)
            raise
        finally:
            opened = self._opened_since(saved_frames)
            self._guard_depth -= 1
            self.frames, self.traps = saved_frames, saved_traps
            self._hoist(opened)

    def capture(
        self, fn: Callable[[Checkpoint, Continuation], Step], k: Continuation
    ) -> Step:
        checkpoint = Checkpoint(
            continuation=k,
            frames=self.frames,
            traps=self.traps,
            guard_depth=self._guard_depth,
        )
        self.stats.captures += 1
        return Bounce(fn, (checkpoint, k))

    def resume(self, checkpoint: Checkpoint, value: Any = None) -> Step:
        """Rewind/advance to the checkpoint's regions, then transfer control."""

        if checkpoint.guard_depth != self._guard_depth:
            raise ContinuationError(
                "continuation invoked across a dynamic-wind guard",
                guard_depth=checkpoint.guard_depth,
            )
        exited, entered = self._reroot(checkpoint.frames)
        self.traps = checkpoint.traps
        self.stats.resumes += 1
        telemetry.record_event(
            "control.resume",
            level="debug",
            data={"exited": exited, "entered": entered, "depth": self.depth},
            logger_name=self._logger_name,
        )
        return Bounce(checkpoint.continuation, (value,))

    def scoped(
        self,
        enter: Action,
        exit: Action,
        body: Body,
        k: Continuation,
        *,
        label: str = "region",
        open_ended: bool = False,
    ) -> Step:
        """Run ``enter``, then ``body`` inside a new region closed by ``exit``."""

        region = Region(enter=enter, exit=exit, label=label, open_ended=open_ended)
        enter()
        self.frames = Frame.push(self.frames, region)
        self.stats.regions_entered += 1

        def leave(value: Any) -> Step:
            self._leave(region)
            return Bounce(k, (value,))

        return Bounce(body, (leave,))

    def trap(self, body: Body, handler: TrapHandler, k: Continuation) -> Step:
        """Run ``body`` with ``handler`` receiving any trappable error it raises.

        Before the handler runs, scoped regions opened by ``body`` are exited
        innermost-first. Open-ended regions survive, so output printed before
        the failure stays visible and a later rewind can still retract it.
        """

        installed = Trap(handler=handler, k=k, parent=self.traps, frames=self.frames)
        self.traps = installed

        def done(value: Any) -> Step:
            if self.traps is not installed:
                raise EngineFault("error trap stack out of order", detail=self.traps)
            self.traps = installed.parent
            return Bounce(k, (value,))

        return Bounce(body, (done,))

    def _unwind_to_trap(self, trap: Trap, error: TrappableError) -> Step:
        self._unwind(trap.frames)
        return Bounce(trap.handler, (error, trap.k))

    def _unwind(self, mark: Optional[Frame]) -> None:
        ancestor, above = split_at(self.frames, depth_of(mark))
        if ancestor is not mark:
            # already below the mark (a failing exit during a rewind)
            return
        base = mark
        for frame in reversed(above):
            if frame.region.open_ended:
                base = Frame.push(base, frame.region)
        for frame in above:
            if frame.region.open_ended:
                continue
            self.frames = base
            frame.region.exit()
            self.stats.regions_exited += 1
            base = self.frames
        self.frames = base

    def _leave(self, region: Region) -> None:
        node = find_region(self.frames, region)
        if node is None:
            raise EngineFault("region left while not active", detail=region)
        # Open-ended regions entered inside the extent outlive it: they are
        # re-pushed on the parent without re-running their enter, followed by
        # whatever the exit action itself printed.
        _, above = split_at(self.frames, node.depth)
        self.frames = node.parent
        region.exit()
        self.stats.regions_exited += 1
        printed = self._opened_since(node.parent)
        self.frames = node.parent
        self._hoist(frame.region for frame in reversed(above))
        self._hoist(printed)

    def _reroot(self, target: Optional[Frame]) -> Tuple[int, int]:
        # Actions run during a transfer may print; those writes happen now,
        # so they land on top of the target stack.
        printed: List[Region] = []
        with telemetry.span(
            "control::reroot",
            logger_name=self._logger_name,
            metadata={"from": self.depth, "to": target.depth if target else 0},
        ):
            shared = shared_depth(self.frames, target)
            _, leaving = split_at(self.frames, shared)
            for frame in leaving:
                self.frames = frame.parent
                frame.region.exit()
                printed.extend(self._opened_since(frame.parent))
                self.stats.regions_exited += 1
            _, arriving = split_at(target, shared)
            for frame in reversed(arriving):
                self.frames = frame.parent
                frame.region.enter()
                printed.extend(self._opened_since(frame.parent))
                self.frames = frame
                self.stats.regions_entered += 1
            self.frames = target
            self._hoist(printed)
        return len(leaving), len(arriving)

    def _opened_since(self, base: Optional[Frame]) -> List[Region]:
        """Open-ended regions pushed above ``base``, outermost-first."""

        ancestor, above = split_at(self.frames, depth_of(base))
        if ancestor is not base:
            return []
        return [frame.region for frame in reversed(above) if frame.region.open_ended]

    def _hoist(self, regions: Iterable[Region]) -> None:
        for region in regions:
            self.frames = Frame.push(self.frames, region)


__all__ = [
    "Body",
    "Bounce",
    "Checkpoint",
    "Continuation",
    "ControlContext",
    "ControlStats",
    "Halt",
    "Step",
    "Trap",
    "TrapHandler",
    "bounce",
]
