"""Builtin procedures installed into the global environment."""

from __future__ import annotations

import operator
from functools import reduce
from typing import Any, Callable, Iterable, List, Optional, Tuple

from retrace.control import Bounce, Checkpoint, Continuation, Step

from .printer import to_display, to_written
from .types import (
    EOF_OBJECT,
    NIL,
    NO_VALUE,
    ControlPrimitive,
    Environment,
    LispError,
    Pair,
    Primitive,
    Procedure,
    RaisedObject,
    Symbol,
    is_list,
    make_list,
)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _numbers(name: str, args: Iterable[Any]) -> List[Any]:
    values = list(args)
    for value in values:
        if not _is_number(value):
            raise LispError(f"{name}: not a number:", value)
    return values


def _add(*args: Any) -> Any:
    return sum(_numbers("+", args), 0)


def _multiply(*args: Any) -> Any:
    return reduce(operator.mul, _numbers("*", args), 1)


def _subtract(first: Any, *rest: Any) -> Any:
    values = _numbers("-", (first, *rest))
    if not rest:
        return -values[0]
    return reduce(operator.sub, values)


def _divide(first: Any, *rest: Any) -> Any:
    values = _numbers("/", (first, *rest))
    if not rest:
        values = [1, *values]
    result = values[0]
    for divisor in values[1:]:
        if divisor == 0:
            raise LispError("/: division by zero")
        if isinstance(result, int) and isinstance(divisor, int) and result % divisor == 0:
            result = result // divisor
        else:
            result = result / divisor
    return result


def _integer_op(name: str, fn: Callable[[int, int], int]) -> Callable[[Any, Any], int]:
    def apply(left: Any, right: Any) -> int:
        for value in (left, right):
            if not isinstance(value, int) or isinstance(value, bool):
                raise LispError(f"{name}: not an integer:", value)
        if right == 0:
            raise LispError(f"{name}: division by zero")
        return fn(left, right)

    return apply


def _truncating_remainder(left: int, right: int) -> int:
    result = abs(left) % abs(right)
    return -result if left < 0 else result


def _truncating_quotient(left: int, right: int) -> int:
    quotient = abs(left) // abs(right)
    return quotient if (left < 0) == (right < 0) else -quotient


def _compare(name: str, test: Callable[[Any, Any], bool]) -> Callable[..., bool]:
    def apply(*args: Any) -> bool:
        values = _numbers(name, args)
        return all(test(a, b) for a, b in zip(values, values[1:]))

    return apply


def _eqv(left: Any, right: Any) -> bool:
    if left is right:
        return True
    if _is_number(left) and _is_number(right):
        return type(left) is type(right) and left == right
    # symbols are interned, so identity already covered them
    return False


def _equal(left: Any, right: Any) -> bool:
    pending = [(left, right)]
    while pending:
        left, right = pending.pop()
        while isinstance(left, Pair) and isinstance(right, Pair):
            pending.append((left.car, right.car))
            left, right = left.cdr, right.cdr
        if isinstance(left, str) and isinstance(right, str):
            if type(left) is not type(right) or left != right:
                return False
        elif not _eqv(left, right):
            return False
    return True


def _pair(name: str, value: Any) -> Pair:
    if not isinstance(value, Pair):
        raise LispError(f"{name}: not a pair:", value)
    return value


def _set_car(pair: Any, value: Any) -> Any:
    _pair("set-car!", pair).car = value
    return NO_VALUE


def _set_cdr(pair: Any, value: Any) -> Any:
    _pair("set-cdr!", pair).cdr = value
    return NO_VALUE


def _proper(name: str, value: Any) -> List[Any]:
    if not is_list(value):
        raise LispError(f"{name}: not a proper list:", value)
    return list(value)


def _append(*lists: Any) -> Any:
    if not lists:
        return NIL
    items: List[Any] = []
    for value in lists[:-1]:
        items.extend(_proper("append", value))
    return make_list(items, lists[-1])


def _list_ref(value: Any, index: Any) -> Any:
    items = _proper("list-ref", value)
    if not isinstance(index, int) or not 0 <= index < len(items):
        raise LispError("list-ref: index out of range:", index)
    return items[index]


def _string(name: str, value: Any) -> str:
    if not isinstance(value, str) or isinstance(value, Symbol):
        raise LispError(f"{name}: not a string:", value)
    return value


def _string_append(*args: Any) -> str:
    return "".join(_string("string-append", arg) for arg in args)


def _number_to_string(value: Any) -> str:
    return to_display(_numbers("number->string", (value,))[0])


def _string_to_symbol(value: Any) -> Symbol:
    return Symbol(_string("string->symbol", value))


def _symbol_to_string(value: Any) -> str:
    if not isinstance(value, Symbol):
        raise LispError("symbol->string: not a symbol:", value)
    return str(value)


def _error(message: Any, *irritants: Any) -> Any:
    text = message if isinstance(message, str) and not isinstance(message, Symbol) else to_written(message)
    raise LispError(text, *irritants)


def _raise(payload: Any) -> Any:
    raise RaisedObject(payload)


def _is_procedure(value: Any) -> bool:
    return isinstance(value, (Procedure, Primitive, ControlPrimitive, Checkpoint))


# -- control primitives -------------------------------------------------------


def _strip_newline(line: str) -> str:
    if line.endswith("\r\n"):
        return line[:-2]
    if line.endswith("\n"):
        return line[:-1]
    return line


def _display(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    return interp.output.emit(to_display(args[0]), lambda _: Bounce(k, (NO_VALUE,)))


def _write(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    return interp.output.emit(to_written(args[0]), lambda _: Bounce(k, (NO_VALUE,)))


def _newline(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    del args
    return interp.output.emit("\n", lambda _: Bounce(k, (NO_VALUE,)))


def _read_line(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    del args

    def deliver(line: str) -> Step:
        return Bounce(k, (EOF_OBJECT if not line else _strip_newline(line),))

    return interp.input.read_line(deliver)


def _call_cc(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    receiver = args[0]
    return interp.control.capture(
        lambda checkpoint, here: interp.apply(receiver, (checkpoint,), here), k
    )


def _dynamic_wind(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    before, thunk, after = args
    return interp.control.scoped(
        lambda: interp.call_sync(before),
        lambda: interp.call_sync(after),
        lambda leave: interp.apply(thunk, (), leave),
        k,
        label="dynamic-wind",
    )


def _apply(interp: Any, args: Tuple[Any, ...], k: Continuation) -> Step:
    proc, *spread = args
    if not spread:
        return interp.apply(proc, (), k)
    final = _proper("apply", spread[-1])
    return interp.apply(proc, (*spread[:-1], *final), k)


PRIMITIVES: Tuple[Primitive, ...] = (
    Primitive("+", _add),
    Primitive("-", _subtract, 1),
    Primitive("*", _multiply),
    Primitive("/", _divide, 1),
    Primitive("quotient", _integer_op("quotient", _truncating_quotient), 2, 2),
    Primitive("remainder", _integer_op("remainder", _truncating_remainder), 2, 2),
    Primitive("modulo", _integer_op("modulo", operator.mod), 2, 2),
    Primitive("abs", lambda value: abs(_numbers("abs", (value,))[0]), 1, 1),
    Primitive("min", lambda *args: min(_numbers("min", args)), 1),
    Primitive("max", lambda *args: max(_numbers("max", args)), 1),
    Primitive("=", _compare("=", operator.eq), 1),
    Primitive("<", _compare("<", operator.lt), 1),
    Primitive(">", _compare(">", operator.gt), 1),
    Primitive("<=", _compare("<=", operator.le), 1),
    Primitive(">=", _compare(">=", operator.ge), 1),
    Primitive("zero?", lambda value: _numbers("zero?", (value,))[0] == 0, 1, 1),
    Primitive("not", lambda value: value is False, 1, 1),
    Primitive("eq?", _eqv, 2, 2),
    Primitive("eqv?", _eqv, 2, 2),
    Primitive("equal?", _equal, 2, 2),
    Primitive("cons", Pair, 2, 2),
    Primitive("car", lambda value: _pair("car", value).car, 1, 1),
    Primitive("cdr", lambda value: _pair("cdr", value).cdr, 1, 1),
    Primitive("set-car!", _set_car, 2, 2),
    Primitive("set-cdr!", _set_cdr, 2, 2),
    Primitive("list", lambda *args: make_list(args)),
    Primitive("length", lambda value: len(_proper("length", value)), 1, 1),
    Primitive("append", _append),
    Primitive("reverse", lambda value: make_list(reversed(_proper("reverse", value))), 1, 1),
    Primitive("list-ref", _list_ref, 2, 2),
    Primitive("null?", lambda value: value is NIL, 1, 1),
    Primitive("pair?", lambda value: isinstance(value, Pair), 1, 1),
    Primitive("list?", is_list, 1, 1),
    Primitive("number?", _is_number, 1, 1),
    Primitive("integer?", lambda value: _is_number(value) and float(value).is_integer(), 1, 1),
    Primitive("boolean?", lambda value: isinstance(value, bool), 1, 1),
    Primitive("symbol?", lambda value: isinstance(value, Symbol), 1, 1),
    Primitive("string?", lambda value: isinstance(value, str) and not isinstance(value, Symbol), 1, 1),
    Primitive("procedure?", _is_procedure, 1, 1),
    Primitive("eof-object?", lambda value: value is EOF_OBJECT, 1, 1),
    Primitive("string-append", _string_append),
    Primitive("string-length", lambda value: len(_string("string-length", value)), 1, 1),
    Primitive("string=?", lambda a, b: _string("string=?", a) == _string("string=?", b), 2, 2),
    Primitive("number->string", _number_to_string, 1, 1),
    Primitive("string->symbol", _string_to_symbol, 1, 1),
    Primitive("symbol->string", _symbol_to_string, 1, 1),
    Primitive("error", _error, 1),
    Primitive("raise", _raise, 1, 1),
    Primitive("void", lambda *args: NO_VALUE),
)

CONTROL_PRIMITIVES: Tuple[ControlPrimitive, ...] = (
    ControlPrimitive("display", _display, 1, 1),
    ControlPrimitive("write", _write, 1, 1),
    ControlPrimitive("newline", _newline, 0, 0),
    ControlPrimitive("read-line", _read_line, 0, 0),
    ControlPrimitive("call/cc", _call_cc, 1, 1),
    ControlPrimitive("call-with-current-continuation", _call_cc, 1, 1),
    ControlPrimitive("dynamic-wind", _dynamic_wind, 3, 3),
    ControlPrimitive("apply", _apply, 1),
)


def install(env: Environment, *, extra: Optional[Iterable[Any]] = None) -> Environment:
    for primitive in (*PRIMITIVES, *CONTROL_PRIMITIVES, *(extra or ())):
        env.define(Symbol(primitive.name), primitive)
    return env


__all__ = ["CONTROL_PRIMITIVES", "PRIMITIVES", "install"]
