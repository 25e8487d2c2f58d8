"""Datum values: the JSON-like data ReQL operates on.

A datum is represented with plain Python values: ``None``, ``bool``, ``float``,
``str``, ``list`` of datums and ``dict`` mapping ``str`` to datums.
"""

from __future__ import annotations

import math
from decimal import Decimal
from typing import Any, Union

__all__ = ["Datum", "from_json", "to_json", "type_name", "is_number", "format_datum"]

Datum = Union[None, bool, float, str, list, dict]


def is_number(value: object) -> bool:
    """Whether ``value`` is a numeric datum (booleans are not numbers)."""
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def from_json(value: Any) -> Datum:
    """Convert a decoded JSON value into a datum; numbers become floats."""
    if value is None or isinstance(value, (bool, str)):
        return value
    if is_number(value):
        return float(value)
    if isinstance(value, (list, tuple)):
        return [from_json(item) for item in value]
    if isinstance(value, dict):
        result = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"object keys must be strings, got {type(key).__name__}")
            result[key] = from_json(item)
        return result
    raise TypeError(f"not a JSON value: {type(value).__name__}")


def to_json(datum: Datum) -> Any:
    """Convert a datum into a JSON-encodable value; non-finite numbers become 0."""
    if datum is None or isinstance(datum, (bool, str)):
        return datum
    if is_number(datum):
        number = float(datum)
        return number if math.isfinite(number) else 0
    if isinstance(datum, (list, tuple)):
        return [to_json(item) for item in datum]
    if isinstance(datum, dict):
        return {str(key): to_json(item) for key, item in datum.items()}
    raise TypeError(f"not a datum: {type(datum).__name__}")


def type_name(datum: Datum) -> str:
    """The ReQL type name of a datum, e.g. ``"NUMBER"``."""
    if datum is None:
        return "NULL"
    if isinstance(datum, bool):
        return "BOOL"
    if is_number(datum):
        return "NUMBER"
    if isinstance(datum, str):
        return "STRING"
    if isinstance(datum, (list, tuple)):
        return "ARRAY"
    if isinstance(datum, dict):
        return "OBJECT"
    raise TypeError(f"not a datum: {type(datum).__name__}")


def _format_number(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    if number.is_integer():
        return str(int(number))
    return format(Decimal(repr(number)), "f")


def format_datum(datum: Datum) -> str:
    """Render a datum as readable text, with strings in double quotes."""
    if datum is None:
        return "null"
    if isinstance(datum, bool):
        return "true" if datum else "false"
    if is_number(datum):
        return _format_number(float(datum))
    if isinstance(datum, str):
        return f'"{datum}"'
    if isinstance(datum, (list, tuple)):
        return "[" + ", ".join(format_datum(item) for item in datum) + "]"
    if isinstance(datum, dict):
        body = ", ".join(f'"{key}": {format_datum(item)}' for key, item in datum.items())
        return "{" + body + "}"
    raise TypeError(f"not a datum: {type(datum).__name__}")