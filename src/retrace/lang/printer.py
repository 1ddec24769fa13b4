"""Printed forms of runtime values."""

from __future__ import annotations

from typing import Any, List, Set

from retrace.control import Checkpoint

from .types import (
    EOF_OBJECT,
    NIL,
    NO_VALUE,
    ControlPrimitive,
    Pair,
    Primitive,
    Procedure,
    Symbol,
)

_STRING_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\t": "\\t", "\r": "\\r"}


def _number(value: Any) -> str:
    if isinstance(value, float):
        if value != value:
            return "+nan.0"
        if value in (float("inf"), float("-inf")):
            return "+inf.0" if value > 0 else "-inf.0"
        return repr(value)
    return str(value)


def _quote_string(text: str) -> str:
    return '"' + "".join(_STRING_ESCAPES.get(char, char) for char in text) + '"'


class _Markup(str):
    """Literal text queued between values while rendering a list."""


class _Close:
    __slots__ = ("ids",)

    def __init__(self, ids: List[int]) -> None:
        self.ids = ids


def _atom(value: Any, written: bool) -> str:
    if value is True:
        return "#t"
    if value is False:
        return "#f"
    if isinstance(value, Symbol):
        return str(value)
    if isinstance(value, str):
        return _quote_string(value) if written else value
    if isinstance(value, (int, float)):
        return _number(value)
    if value is NIL:
        return "()"
    if isinstance(value, Procedure):
        return f"#<procedure {value.name}>"
    if isinstance(value, (Primitive, ControlPrimitive)):
        return f"#<primitive {value.name}>"
    if isinstance(value, Checkpoint):
        return "#<continuation>"
    if value is NO_VALUE:
        return ""
    if value is EOF_OBJECT:
        return "#<eof>"
    return f"#<{type(value).__name__}>"


def _render(value: Any, written: bool) -> str:
    """Render with an explicit work stack so nesting depth is unbounded.

    A pair reached again while it is still being rendered prints as ``...``.
    """

    out: List[str] = []
    active: Set[int] = set()
    work: List[Any] = [value]
    while work:
        item = work.pop()
        if isinstance(item, _Markup):
            out.append(item)
            continue
        if isinstance(item, _Close):
            active.difference_update(item.ids)
            continue
        if not isinstance(item, Pair):
            out.append(_atom(item, written))
            continue
        if id(item) in active:
            out.append("...")
            continue
        ids: List[int] = []
        elements: List[Any] = []
        node: Any = item
        while isinstance(node, Pair) and id(node) not in active:
            active.add(id(node))
            ids.append(id(node))
            elements.append(node.car)
            node = node.cdr
        work.append(_Close(ids))
        work.append(_Markup(")"))
        if isinstance(node, Pair):
            work.append(_Markup(" . ..."))
        elif node is not NIL:
            work.append(node)
            work.append(_Markup(" . "))
        for index in range(len(elements) - 1, -1, -1):
            work.append(elements[index])
            if index:
                work.append(_Markup(" "))
        work.append(_Markup("("))
    return "".join(out)


def to_written(value: Any) -> str:
    """Machine-readable form: strings quoted and escaped."""

    return _render(value, True)


def to_display(value: Any) -> str:
    """Human form used by ``display``: strings verbatim."""

    return _render(value, False)


__all__ = ["to_display", "to_written"]
