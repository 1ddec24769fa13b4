"""Scoped regions and the persistent active-region stack."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Tuple

Action = Callable[[], None]


def _nothing() -> None:
    return None


@dataclass(eq=False, slots=True)
class Region:
    """Enter/exit pair bracketing a dynamic extent.

    Regions compare by identity: two regions built from the same actions are
    still different regions and fire independently. An open-ended region
    (a write, a consumed input line) stays open after the extent that opened
    it ends; only a rewind past it closes it.
    """

    enter: Action = _nothing
    exit: Action = _nothing
    label: str = "region"
    open_ended: bool = False

    def __repr__(self) -> str:
        return f"<Region {self.label} @{id(self):#x}>"


@dataclass(eq=False, slots=True)
class Frame:
    """One node of the immutable region stack; ``parent`` is the next outer frame."""

    region: Region
    parent: Optional["Frame"] = None
    depth: int = field(default=1)

    @classmethod
    def push(cls, parent: Optional["Frame"], region: Region) -> "Frame":
        return cls(region=region, parent=parent, depth=depth_of(parent) + 1)


def depth_of(frame: Optional[Frame]) -> int:
    return frame.depth if frame is not None else 0


def regions_of(frame: Optional[Frame]) -> List[Region]:
    """Regions of a stack listed outermost-first."""

    regions: List[Region] = []
    node = frame
    while node is not None:
        regions.append(node.region)
        node = node.parent
    regions.reverse()
    return regions


def find_region(frame: Optional[Frame], region: Region) -> Optional[Frame]:
    node = frame
    while node is not None:
        if node.region is region:
            return node
        node = node.parent
    return None


def shared_depth(current: Optional[Frame], target: Optional[Frame]) -> int:
    """Length of the longest outer run both stacks share, by region identity."""

    shared = 0
    for mine, theirs in zip(regions_of(current), regions_of(target)):
        if mine is not theirs:
            break
        shared += 1
    return shared


def split_at(frame: Optional[Frame], depth: int) -> Tuple[Optional[Frame], List[Frame]]:
    """Return the ancestor at ``depth`` and the frames above it, innermost-first."""

    above: List[Frame] = []
    node = frame
    while node is not None and node.depth > depth:
        above.append(node)
        node = node.parent
    return node, above


__all__ = [
    "Action",
    "Frame",
    "Region",
    "depth_of",
    "find_region",
    "regions_of",
    "shared_depth",
    "split_at",
]
