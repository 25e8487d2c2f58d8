"""Pure operations on datums used when executing ReQL terms.

Every function takes already evaluated datums and returns a datum, raising
:class:`ExecutionError` where the operation cannot be carried out.
"""

from __future__ import annotations

import math
import operator
from typing import Any, Callable, Iterable, Sequence

from photondb.reql.datum import Datum, is_number, type_name
from photondb.reql.terms import TermType

__all__ = [
    "ExecutionError",
    "add",
    "sub",
    "mul",
    "div",
    "mod",
    "compare",
    "logical_and",
    "logical_or",
    "logical_not",
    "count",
    "sum_numbers",
    "average",
    "minimum",
    "maximum",
    "distinct",
    "nth",
    "limit",
    "skip",
    "slice_sequence",
    "filter_matching",
    "type_of",
]


class ExecutionError(Exception):
    """Raised when a query operation fails."""


_ORDERINGS: dict[TermType, Callable[[float, float], bool]] = {
    TermType.LT: operator.lt,
    TermType.LE: operator.le,
    TermType.GT: operator.gt,
    TermType.GE: operator.ge,
}


def _datum_equal(a: Any, b: Any) -> bool:
    """Structural equality that keeps booleans and numbers apart."""
    if isinstance(a, bool) or isinstance(b, bool):
        return isinstance(a, bool) and isinstance(b, bool) and a == b
    if is_number(a) or is_number(b):
        return is_number(a) and is_number(b) and float(a) == float(b)
    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        return len(a) == len(b) and all(_datum_equal(x, y) for x, y in zip(a, b))
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(_datum_equal(a[k], b[k]) for k in a)
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, str) and isinstance(b, str):
        return a == b
    return False


def _number(value: Any, message: str) -> float:
    if not is_number(value):
        raise ExecutionError(message)
    return float(value)


def _sequence(value: Any, name: str) -> list:
    if not isinstance(value, (list, tuple)):
        raise ExecutionError(f"{name} requires sequence")
    return list(value)


def _to_index(value: Any, message: str) -> int:
    """Convert a numeric datum to a non-negative index, saturating at zero."""
    number = _number(value, message)
    if math.isnan(number) or number <= 0:
        return 0
    if math.isinf(number):
        return 2**63
    return int(number)


# Math


def add(values: Iterable[Datum]) -> float:
    """Sum of the numbers in ``values``; 0 when there are none."""
    return sum((_number(v, "ADD requires numbers") for v in values), 0.0)


def sub(values: Iterable[Datum]) -> float:
    """First number minus all the following ones."""
    numbers = iter(values)
    try:
        first = next(numbers)
    except StopIteration:
        raise ExecutionError("SUB requires at least one argument") from None
    result = _number(first, "SUB requires numbers")
    for value in numbers:
        result -= _number(value, "SUB requires numbers")
    return result


def mul(values: Iterable[Datum]) -> float:
    """Product of the numbers in ``values``; 1 when there are none."""
    product = 1.0
    for value in values:
        product *= _number(value, "MUL requires numbers")
    return product


def div(a: Datum, b: Datum) -> float:
    """``a`` divided by ``b``; dividing by zero is an error."""
    dividend = _number(a, "DIV requires numbers")
    divisor = _number(b, "DIV requires numbers")
    if divisor == 0.0:
        raise ExecutionError("Division by zero")
    return dividend / divisor


def mod(a: Datum, b: Datum) -> float:
    """Remainder of ``a / b`` with the sign of ``a``; NaN when ``b`` is zero."""
    dividend = _number(a, "MOD requires numbers")
    divisor = _number(b, "MOD requires numbers")
    if divisor == 0.0 or math.isinf(dividend) or math.isnan(divisor):
        return math.nan
    return math.fmod(dividend, divisor)


# Logic


def compare(op: TermType | str, a: Datum, b: Datum) -> bool:
    """Apply comparison ``op`` (EQ, NE, LT, LE, GT or GE) to two datums.

    EQ and NE accept any datums; the ordering comparisons require numbers.
    """
    if isinstance(op, str):
        try:
            op = TermType[op.upper()]
        except KeyError:
            raise ExecutionError(f"Unknown comparison: {op}") from None
    if op == TermType.EQ:
        return _datum_equal(a, b)
    if op == TermType.NE:
        return not _datum_equal(a, b)
    ordering = _ORDERINGS.get(op)
    if ordering is None:
        raise ExecutionError(f"Unknown comparison: {op}")
    message = f"{op.name} requires numbers"
    return ordering(_number(a, message), _number(b, message))


def logical_and(values: Iterable[Datum]) -> bool:
    """True unless some value is false; stops at the first false value."""
    for value in values:
        if not isinstance(value, bool):
            raise ExecutionError("AND requires booleans")
        if not value:
            return False
    return True


def logical_or(values: Iterable[Datum]) -> bool:
    """False unless some value is true; stops at the first true value."""
    for value in values:
        if not isinstance(value, bool):
            raise ExecutionError("OR requires booleans")
        if value:
            return True
    return False


def logical_not(value: Datum) -> bool:
    """Negation of a boolean datum."""
    if not isinstance(value, bool):
        raise ExecutionError("NOT requires boolean")
    return not value


# Aggregations


def count(sequence: Datum) -> float:
    """Number of elements in a sequence."""
    return float(len(_sequence(sequence, "COUNT")))


def sum_numbers(sequence: Datum) -> float:
    """Sum of the numeric elements of a sequence; others are ignored."""
    items = _sequence(sequence, "SUM")
    return sum((float(item) for item in items if is_number(item)), 0.0)


def average(sequence: Datum) -> float | None:
    """Sum of the numeric elements divided by the sequence length; None if empty."""
    items = _sequence(sequence, "AVG")
    if not items:
        return None
    total = sum((float(item) for item in items if is_number(item)), 0.0)
    return total / len(items)


def minimum(sequence: Datum) -> float:
    """Smallest numeric element of a sequence."""
    numbers = [float(item) for item in _sequence(sequence, "MIN") if is_number(item)]
    if not numbers:
        raise ExecutionError("MIN on empty sequence")
    return min(numbers)


def maximum(sequence: Datum) -> float:
    """Largest numeric element of a sequence."""
    numbers = [float(item) for item in _sequence(sequence, "MAX") if is_number(item)]
    if not numbers:
        raise ExecutionError("MAX on empty sequence")
    return max(numbers)


# Selection


def distinct(sequence: Datum) -> list:
    """Elements of a sequence without repeats, in first-seen order."""
    result: list = []
    for item in _sequence(sequence, "DISTINCT"):
        if not any(_datum_equal(item, seen) for seen in result):
            result.append(item)
    return result


def nth(sequence: Datum, index: Datum) -> Datum:
    """Element at ``index`` of a sequence."""
    position = _to_index(index, "NTH requires index")
    items = _sequence(sequence, "NTH")
    if position >= len(items):
        raise ExecutionError("Index out of bounds")
    return items[position]


def limit(sequence: Datum, n: Datum) -> list:
    """The first ``n`` elements of a sequence."""
    count_ = _to_index(n, "LIMIT requires number")
    return _sequence(sequence, "LIMIT")[:count_]


def skip(sequence: Datum, n: Datum) -> list:
    """A sequence without its first ``n`` elements."""
    count_ = _to_index(n, "SKIP requires number")
    return _sequence(sequence, "SKIP")[count_:]


def slice_sequence(sequence: Datum, start: Datum, end: Datum) -> list:
    """Elements from ``start`` up to, not including, ``end``."""
    first = _to_index(start, "SLICE requires start")
    last = _to_index(end, "SLICE requires end")
    items = _sequence(sequence, "SLICE")
    if last < first:
        raise ExecutionError("SLICE end is before start")
    return items[first:last]


def filter_matching(sequence: Datum, predicate: Datum) -> list:
    """Objects of a sequence whose fields equal every field of ``predicate``.

    A predicate that is not an object matches nothing.
    """
    items = _sequence(sequence, "FILTER")
    if not isinstance(predicate, dict):
        return []
    return [
        item
        for item in items
        if isinstance(item, dict)
        and all(key in item and _datum_equal(item[key], value) for key, value in predicate.items())
    ]


def type_of(value: Datum) -> str:
    """ReQL type name of a datum."""
    return type_name(value)


# Keep Sequence importable for annotations in callers.
_ = Sequence