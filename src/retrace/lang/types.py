"""Runtime values of the Scheme dialect evaluated at the prompt."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from retrace.control import TrappableError


class Symbol(str):
    """Interned identifier; distinct from string values by type."""

    __slots__ = ()
    _table: Dict[str, "Symbol"] = {}

    def __new__(cls, name: str) -> "Symbol":
        existing = cls._table.get(name)
        if existing is None:
            existing = super().__new__(cls, name)
            cls._table[name] = existing
        return existing

    def __repr__(self) -> str:
        return f"Symbol({str.__repr__(self)})"


class _Singleton:
    __slots__ = ("_name",)

    def __init__(self, name: str) -> None:
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return True


class _EmptyList(_Singleton):
    def __iter__(self) -> Iterator[Any]:
        return iter(())


NIL = _EmptyList("()")
# Result of forms evaluated for effect; the prompt prints nothing for it.
NO_VALUE = _Singleton("#<no-value>")
EOF_OBJECT = _Singleton("#<eof>")


@dataclass(eq=False, slots=True)
class Pair:
    car: Any
    cdr: Any

    def __iter__(self) -> Iterator[Any]:
        node: Any = self
        while isinstance(node, Pair):
            yield node.car
            node = node.cdr
        if node is not NIL:
            raise LispError("improper list", node)


def make_list(items: Iterable[Any], tail: Any = NIL) -> Any:
    result = tail
    for item in reversed(list(items)):
        result = Pair(item, result)
    return result


def is_list(value: Any) -> bool:
    node = value
    while isinstance(node, Pair):
        node = node.cdr
    return node is NIL


class LanguageError(TrappableError):
    """Recoverable evaluation failure carrying a message and irritants."""

    def __init__(self, message: str, *irritants: Any) -> None:
        super().__init__(message)
        self.message = message
        self.irritants: Tuple[Any, ...] = irritants


class LispError(LanguageError):
    """Raised by ``error`` and by the evaluator itself."""


class RaisedObject(LanguageError):
    """Arbitrary object passed to ``raise``; reported by its printed form."""

    def __init__(self, payload: Any) -> None:
        super().__init__("")
        self.payload = payload


class Environment:
    """Lexical frame with a parent chain."""

    __slots__ = ("bindings", "parent")

    def __init__(
        self,
        bindings: Optional[Dict[Symbol, Any]] = None,
        parent: Optional["Environment"] = None,
    ) -> None:
        self.bindings: Dict[Symbol, Any] = dict(bindings or {})
        self.parent = parent

    def lookup(self, name: Symbol) -> Any:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.bindings:
                return env.bindings[name]
            env = env.parent
        raise LispError("unbound variable:", name)

    def define(self, name: Symbol, value: Any) -> None:
        self.bindings[name] = value

    def assign(self, name: Symbol, value: Any) -> None:
        env: Optional[Environment] = self
        while env is not None:
            if name in env.bindings:
                env.bindings[name] = value
                return
            env = env.parent
        raise LispError("cannot set! unbound variable:", name)


@dataclass(eq=False, slots=True)
class Procedure:
    """Closure created by ``lambda``."""

    params: Tuple[Symbol, ...]
    rest: Optional[Symbol]
    body: Tuple[Any, ...]
    env: Environment
    name: str = "lambda"

    def bind(self, args: List[Any]) -> Environment:
        required = len(self.params)
        if len(args) < required or (self.rest is None and len(args) > required):
            raise LispError(
                f"{self.name}: expected {required}{'+' if self.rest else ''} "
                f"arguments, got",
                len(args),
            )
        frame = Environment(dict(zip(self.params, args)), self.env)
        if self.rest is not None:
            frame.define(self.rest, make_list(args[required:]))
        return frame


@dataclass(eq=False, slots=True)
class Primitive:
    """Builtin returning its result directly."""

    name: str
    fn: Callable[..., Any]
    min_args: int = 0
    max_args: Optional[int] = None


@dataclass(eq=False, slots=True)
class ControlPrimitive:
    """Builtin receiving the interpreter and its continuation."""

    name: str
    fn: Callable[..., Any]
    min_args: int = 0
    max_args: Optional[int] = None
    extra: Dict[str, Any] = field(default_factory=dict)


def check_arity(name: str, count: int, low: int, high: Optional[int]) -> None:
    if count < low or (high is not None and count > high):
        if high is None:
            expected = f"at least {low}"
        elif low == high:
            expected = str(low)
        else:
            expected = f"{low} to {high}"
        raise LispError(f"{name}: expected {expected} arguments, got", count)


__all__ = [
    "ControlPrimitive",
    "EOF_OBJECT",
    "Environment",
    "LanguageError",
    "LispError",
    "NIL",
    "NO_VALUE",
    "Pair",
    "Primitive",
    "Procedure",
    "RaisedObject",
    "Symbol",
    "check_arity",
    "is_list",
    "make_list",
]
