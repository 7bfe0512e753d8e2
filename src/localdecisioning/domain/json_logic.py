"""Closed JSON-logic interpreter for rule conditions.

Conditions are compiled into a small node tree (Literal / ArrayExpr /
Operation) before evaluation, so an unknown operator is rejected up front and
no rule content is ever executed as code.

Supported operators::

    var missing missing_some
    if ?: and or ! !!
    == === != !== < <= > >=
    + - * / % max min
    in cat substr merge
    map filter reduce all some none
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Callable, Union

from ..errors import RuleEvaluationError


@dataclass(frozen=True)
class Literal:
    value: Any


@dataclass(frozen=True)
class ArrayExpr:
    items: tuple["Expr", ...]


@dataclass(frozen=True)
class Operation:
    op: str
    args: tuple["Expr", ...]


Expr = Union[Literal, ArrayExpr, Operation]


# ---------------------------------------------------------------------------
# JavaScript-flavoured value semantics
# ---------------------------------------------------------------------------


def truthy(value: Any) -> bool:
    """JSON-logic truthiness: [], "", 0, NaN, null and false are false."""
    if value is None or value is False:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, (str, list, tuple)):
        return len(value) > 0
    return True


def _js_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


def _to_number(value: Any) -> float:
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return 0.0
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _number_result(value: float) -> int | float:
    if math.isfinite(value) and value == int(value):
        return int(value)
    return value


def _js_str(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value == int(value) and math.isfinite(value):
        return str(int(value))
    if isinstance(value, (list, tuple)):
        return ",".join("" if v is None else _js_str(v) for v in value)
    return str(value)


def _soft_equals(a: Any, b: Any) -> bool:
    if a is None or b is None:
        return a is None and b is None
    type_a, type_b = _js_type(a), _js_type(b)
    if type_a == type_b:
        return a == b
    if {type_a, type_b} <= {"number", "string", "boolean"}:
        return _to_number(a) == _to_number(b)
    return False


def _hard_equals(a: Any, b: Any) -> bool:
    return _js_type(a) == _js_type(b) and a == b


def _less(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a < b
    return _to_number(a) < _to_number(b)


def _less_or_equal(a: Any, b: Any) -> bool:
    if isinstance(a, str) and isinstance(b, str):
        return a <= b
    return _to_number(a) <= _to_number(b)


# ---------------------------------------------------------------------------
# Eager operations (arguments evaluated first)
# ---------------------------------------------------------------------------


def _var(data: Any, path: Any = None, default: Any = None) -> Any:
    if path is None or path == "" or path == []:
        return data
    current = data
    for key in str(path).split("."):
        if isinstance(current, dict):
            if key not in current:
                return default
            current = current[key]
        elif isinstance(current, (list, tuple)):
            try:
                current = current[int(key)]
            except (ValueError, IndexError):
                return default
        else:
            return default
    return default if current is None else current


def _missing(data: Any, *keys: Any) -> list[Any]:
    if len(keys) == 1 and isinstance(keys[0], list):
        keys = tuple(keys[0])
    return [key for key in keys if _var(data, key) in (None, "")]


def _missing_some(data: Any, need: Any, keys: Any) -> list[Any]:
    keys = list(keys or [])
    absent = _missing(data, *keys)
    if len(keys) - len(absent) >= _to_number(need):
        return []
    return absent


def _less_op(a: Any, b: Any, c: Any = ...) -> bool:
    if c is ...:
        return _less(a, b)
    return _less(a, b) and _less(b, c)


def _less_or_equal_op(a: Any, b: Any, c: Any = ...) -> bool:
    if c is ...:
        return _less_or_equal(a, b)
    return _less_or_equal(a, b) and _less_or_equal(b, c)


def _plus(*args: Any) -> int | float:
    return _number_result(sum(_to_number(a) for a in args))


def _minus(a: Any, b: Any = ...) -> int | float:
    if b is ...:
        return _number_result(-_to_number(a))
    return _number_result(_to_number(a) - _to_number(b))


def _times(*args: Any) -> int | float:
    product = 1.0
    for a in args:
        product *= _to_number(a)
    return _number_result(product)


def _divide(a: Any, b: Any) -> int | float:
    divisor = _to_number(b)
    if divisor == 0:
        raise RuleEvaluationError("Division by zero in rule condition")
    return _number_result(_to_number(a) / divisor)


def _modulo(a: Any, b: Any) -> int | float:
    divisor = _to_number(b)
    if divisor == 0:
        raise RuleEvaluationError("Modulo by zero in rule condition")
    return _number_result(math.fmod(_to_number(a), divisor))


def _max(*args: Any) -> int | float | None:
    if not args:
        return None
    return _number_result(max(_to_number(a) for a in args))


def _min(*args: Any) -> int | float | None:
    if not args:
        return None
    return _number_result(min(_to_number(a) for a in args))


def _in(needle: Any, haystack: Any) -> bool:
    if isinstance(haystack, str):
        return _js_str(needle) in haystack
    if isinstance(haystack, (list, tuple)):
        return any(_hard_equals(needle, item) for item in haystack)
    return False


def _cat(*args: Any) -> str:
    return "".join(_js_str(a) for a in args)


def _substr(source: Any, start: Any, length: Any = None) -> str:
    text = _js_str(source)
    begin = int(_to_number(start))
    if begin < 0:
        begin = max(len(text) + begin, 0)
    if length is None:
        return text[begin:]
    count = int(_to_number(length))
    if count < 0:
        return text[begin:len(text) + count]
    return text[begin:begin + count]


def _merge(*args: Any) -> list[Any]:
    merged: list[Any] = []
    for a in args:
        if isinstance(a, (list, tuple)):
            merged.extend(a)
        else:
            merged.append(a)
    return merged


_OPERATIONS: dict[str, Callable[..., Any]] = {
    "==": _soft_equals,
    "===": _hard_equals,
    "!=": lambda a, b: not _soft_equals(a, b),
    "!==": lambda a, b: not _hard_equals(a, b),
    "!": lambda a=None: not truthy(a),
    "!!": lambda a=None: truthy(a),
    "<": _less_op,
    "<=": _less_or_equal_op,
    ">": lambda a, b: _less(b, a),
    ">=": lambda a, b: _less_or_equal(b, a),
    "+": _plus,
    "-": _minus,
    "*": _times,
    "/": _divide,
    "%": _modulo,
    "max": _max,
    "min": _min,
    "in": _in,
    "cat": _cat,
    "substr": _substr,
    "merge": _merge,
}

_DATA_OPERATIONS: dict[str, Callable[..., Any]] = {
    "var": _var,
    "missing": _missing,
    "missing_some": _missing_some,
}


# ---------------------------------------------------------------------------
# Lazy operations (control their own argument evaluation)
# ---------------------------------------------------------------------------


def _if(args: tuple[Expr, ...], data: Any) -> Any:
    for i in range(0, len(args) - 1, 2):
        if truthy(evaluate(args[i], data)):
            return evaluate(args[i + 1], data)
    if len(args) % 2 == 1:
        return evaluate(args[-1], data)
    return None


def _and(args: tuple[Expr, ...], data: Any) -> Any:
    value = None
    for arg in args:
        value = evaluate(arg, data)
        if not truthy(value):
            return value
    return value


def _or(args: tuple[Expr, ...], data: Any) -> Any:
    value = None
    for arg in args:
        value = evaluate(arg, data)
        if truthy(value):
            return value
    return value


def _scope(args: tuple[Expr, ...], data: Any) -> list[Any]:
    items = evaluate(args[0], data) if args else None
    return list(items) if isinstance(items, (list, tuple)) else []


def _map(args: tuple[Expr, ...], data: Any) -> list[Any]:
    return [evaluate(args[1], item) for item in _scope(args, data)]


def _filter(args: tuple[Expr, ...], data: Any) -> list[Any]:
    return [item for item in _scope(args, data) if truthy(evaluate(args[1], item))]


def _reduce(args: tuple[Expr, ...], data: Any) -> Any:
    accumulator = evaluate(args[2], data) if len(args) > 2 else None
    for item in _scope(args, data):
        accumulator = evaluate(args[1], {"current": item, "accumulator": accumulator})
    return accumulator


def _all(args: tuple[Expr, ...], data: Any) -> bool:
    items = _scope(args, data)
    return bool(items) and all(truthy(evaluate(args[1], item)) for item in items)


def _some(args: tuple[Expr, ...], data: Any) -> bool:
    return any(truthy(evaluate(args[1], item)) for item in _scope(args, data))


def _none(args: tuple[Expr, ...], data: Any) -> bool:
    return not _some(args, data)


_LAZY_OPERATIONS: dict[str, Callable[[tuple[Expr, ...], Any], Any]] = {
    "if": _if,
    "?:": _if,
    "and": _and,
    "or": _or,
    "map": _map,
    "filter": _filter,
    "reduce": _reduce,
    "all": _all,
    "some": _some,
    "none": _none,
}

_ITERATING = frozenset({"map", "filter", "reduce", "all", "some", "none"})

SUPPORTED_OPERATIONS = frozenset(_OPERATIONS) | frozenset(_DATA_OPERATIONS) | frozenset(_LAZY_OPERATIONS)


# ---------------------------------------------------------------------------
# Compile / evaluate
# ---------------------------------------------------------------------------


def compile_expression(raw: Any) -> Expr:
    """Compile a decoded JSON-logic document into an expression tree."""
    if isinstance(raw, list):
        return ArrayExpr(tuple(compile_expression(item) for item in raw))
    if isinstance(raw, dict) and len(raw) == 1:
        op, operands = next(iter(raw.items()))
        if op not in SUPPORTED_OPERATIONS:
            raise RuleEvaluationError(f"Unrecognized operation {op}", details={"op": op})
        if not isinstance(operands, list):
            operands = [operands]
        args = tuple(compile_expression(item) for item in operands)
        if op in _ITERATING and len(args) < 2:
            raise RuleEvaluationError(f"Operation {op} needs a list and a sub-expression", details={"op": op})
        return Operation(op, args)
    return Literal(raw)


def evaluate(expr: Expr, data: Any) -> Any:
    if isinstance(expr, Literal):
        return expr.value
    if isinstance(expr, ArrayExpr):
        return [evaluate(item, data) for item in expr.items]
    lazy = _LAZY_OPERATIONS.get(expr.op)
    if lazy is not None:
        return lazy(expr.args, data)
    values = [evaluate(arg, data) for arg in expr.args]
    data_op = _DATA_OPERATIONS.get(expr.op)
    if data_op is not None:
        return data_op(data, *values)
    return _OPERATIONS[expr.op](*values)


def apply(raw: Any, data: Any) -> Any:
    """Compile and evaluate ``raw`` against ``data``.

    Raises RuleEvaluationError for malformed expressions and for operands the
    operators cannot handle, including conditions nested too deeply to walk.
    """
    try:
        return evaluate(compile_expression(raw), data)
    except RuleEvaluationError:
        raise
    except Exception as e:
        raise RuleEvaluationError(f"Failed to evaluate rule condition: {e!r}") from e
