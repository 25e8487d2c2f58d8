"""Compile wire-format JSON queries into ReQL terms.

A query is either a plain JSON value (a datum) or an array of the form
``[term_type, [args...], {optargs...}]``.
"""

from __future__ import annotations

import math
from typing import Any

from photondb.reql.ast import Term
from photondb.reql.datum import Datum, from_json, is_number
from photondb.reql.terms import TermType

__all__ = ["CompileError", "compile_query", "json_to_datum", "datum_to_json"]


class CompileError(Exception):
    """Raised when a JSON query cannot be compiled."""


def compile_query(query: Any) -> Term:
    """Compile a decoded JSON query into a :class:`Term`."""
    if not isinstance(query, list):
        return Term.literal(json_to_datum(query))
    if not query:
        raise CompileError("Empty term array")

    head = query[0]
    if isinstance(head, bool) or not isinstance(head, int) or head < 0:
        raise CompileError(f"Invalid term type: expected number, got {head!r}")
    term_type = TermType.from_id(head)
    if term_type is None:
        raise CompileError(f"Unknown term type: {head}")

    if term_type == TermType.DATUM:
        if len(query) < 2:
            raise CompileError("DATUM term requires value argument")
        return Term.literal(json_to_datum(query[1]))

    args: list[Term] = []
    if len(query) > 1 and isinstance(query[1], list):
        try:
            args = [compile_query(arg) for arg in query[1]]
        except CompileError as err:
            raise CompileError(f"Failed to parse term arguments: {err}") from err

    optargs: dict[str, Term] = {}
    if len(query) > 2 and isinstance(query[2], dict):
        try:
            optargs = {key: compile_query(value) for key, value in query[2].items()}
        except CompileError as err:
            raise CompileError(f"Failed to parse optional arguments: {err}") from err

    return Term(term_type, args=args, optargs=optargs)


def json_to_datum(value: Any) -> Datum:
    """Convert a decoded JSON value into a datum."""
    try:
        return from_json(value)
    except (TypeError, OverflowError) as err:
        raise CompileError(f"Invalid value: {err}") from err


def datum_to_json(datum: Datum) -> Any:
    """Convert a datum into a JSON-encodable value; non-finite numbers become null."""
    if datum is None or isinstance(datum, (bool, str)):
        return datum
    if is_number(datum):
        number = float(datum)
        return number if math.isfinite(number) else None
    if isinstance(datum, (list, tuple)):
        return [datum_to_json(item) for item in datum]
    if isinstance(datum, dict):
        return {str(key): datum_to_json(item) for key, item in datum.items()}
    raise TypeError(f"not a datum: {type(datum).__name__}")