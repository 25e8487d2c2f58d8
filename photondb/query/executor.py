"""Evaluate ReQL term trees against a storage backend."""

from __future__ import annotations

import json
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Iterable

from photondb.query import operations as ops
from photondb.query.operations import ExecutionError
from photondb.reql.ast import Term
from photondb.reql.datum import Datum, is_number
from photondb.reql.terms import TermType

__all__ = ["ExecutionError", "StorageBackend", "ExecutionContext", "QueryExecutor"]

log = logging.getLogger(__name__)

DEFAULT_DB = "test"


class StorageBackend(ABC):
    """The storage operations the executor relies on."""

    @abstractmethod
    async def list_databases(self) -> list[str]:
        """Names of all databases."""

    @abstractmethod
    async def create_database(self, name: str) -> None:
        """Create database ``name``."""

    @abstractmethod
    async def drop_database(self, name: str) -> None:
        """Drop database ``name``."""

    @abstractmethod
    async def list_tables(self) -> list[str]:
        """Names of all tables in every database."""

    @abstractmethod
    async def list_tables_in_db(self, db: str) -> list[str]:
        """Names of the tables in database ``db``."""

    @abstractmethod
    async def create_table(self, db: str, table: str, primary_key: str) -> None:
        """Create ``table`` in ``db`` keyed by ``primary_key``."""

    @abstractmethod
    async def drop_table(self, db: str, table: str) -> None:
        """Drop ``table`` from ``db``."""

    @abstractmethod
    async def scan_table(self, db: str, table: str) -> list[Datum]:
        """All documents of ``table`` in ``db``."""

    @abstractmethod
    async def get(self, key: bytes) -> Datum | None:
        """The document stored under ``key``, or None."""


@dataclass
class ExecutionContext:
    """State carried through the evaluation of one query."""

    variables: dict[int, Datum] = field(default_factory=dict)
    current_db: str | None = DEFAULT_DB

    def with_db(self, db: str) -> ExecutionContext:
        """Select ``db`` as the current database and return this context."""
        self.current_db = db
        return self

    def bind_var(self, var_id: int, value: Datum) -> None:
        """Bind variable ``var_id`` to ``value``."""
        self.variables[var_id] = value

    def get_var(self, var_id: int) -> Datum | None:
        """The value bound to ``var_id``, or None."""
        return self.variables.get(var_id)


def _write_summary(**counts: float) -> Callable[[], dict]:
    return lambda: {key: float(value) for key, value in counts.items()}


# Operations that are accepted but yield a fixed result.
_FIXED_RESULTS: dict[TermType, Callable[[], Datum]] = {
    TermType.GET_ALL: list,
    TermType.BETWEEN: list,
    TermType.MAP: list,
    TermType.CONCAT_MAP: list,
    TermType.ORDER_BY: list,
    TermType.PLUCK: list,
    TermType.WITHOUT: list,
    TermType.MERGE: dict,
    TermType.GROUP: list,
    TermType.REDUCE: lambda: None,
    TermType.INSERT: _write_summary(inserted=1, errors=0),
    TermType.UPDATE: _write_summary(replaced=0, unchanged=0, errors=0),
    TermType.REPLACE: _write_summary(replaced=0, errors=0),
    TermType.DELETE: _write_summary(deleted=0, errors=0),
    TermType.GET_FIELD: lambda: None,
    TermType.HAS_FIELDS: lambda: False,
    TermType.KEYS: list,
    TermType.VALUES: list,
    TermType.APPEND: list,
    TermType.PREPEND: list,
    TermType.DIFFERENCE: list,
    TermType.SET_INSERT: list,
    TermType.SET_UNION: list,
    TermType.SET_INTERSECTION: list,
    TermType.SET_DIFFERENCE: list,
    TermType.INSERT_AT: list,
    TermType.DELETE_AT: list,
    TermType.CHANGE_AT: list,
    TermType.SPLICE_AT: list,
    TermType.CONTAINS: lambda: False,
    TermType.FOR_EACH: lambda: None,
    TermType.FUNC: lambda: None,
    TermType.COERCE_TO: lambda: None,
}

_AGGREGATES: dict[TermType, Callable[[Datum], Datum]] = {
    TermType.COUNT: ops.count,
    TermType.SUM: ops.sum_numbers,
    TermType.AVG: ops.average,
    TermType.MIN: ops.minimum,
    TermType.MAX: ops.maximum,
    TermType.DISTINCT: ops.distinct,
    TermType.TYPE_OF: ops.type_of,
    TermType.NOT: ops.logical_not,
}

_COMPARISONS = (TermType.EQ, TermType.NE, TermType.LT, TermType.LE, TermType.GT, TermType.GE)


def _float_repr(number: float) -> str:
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "inf" if number > 0 else "-inf"
    return repr(number)


def _key_repr(value: Datum) -> str:
    """Tagged textual form of a datum, used as a raw storage key."""
    if value is None:
        return "Null"
    if isinstance(value, bool):
        return f"Boolean({'true' if value else 'false'})"
    if is_number(value):
        return f"Number({_float_repr(float(value))})"
    if isinstance(value, str):
        return f"String({json.dumps(value, ensure_ascii=False)})"
    if isinstance(value, (list, tuple)):
        return "Array([" + ", ".join(_key_repr(item) for item in value) + "])"
    if isinstance(value, dict):
        body = ", ".join(
            f"{json.dumps(key, ensure_ascii=False)}: {_key_repr(item)}" for key, item in value.items()
        )
        return "Object({" + body + "})"
    raise ExecutionError(f"not a datum: {type(value).__name__}")


def _required_arg(term: Term, index: int) -> Term:
    arg = term.arg(index)
    if arg is None:
        raise ExecutionError(f"{term.term_type.name} requires argument {index}")
    return arg


def _literal_string(term: Term, index: int, message: str) -> str:
    arg = term.arg(index)
    if arg is None or not isinstance(arg.datum, str):
        raise ExecutionError(message)
    return arg.datum


def _literal_number(term: Term, index: int, message: str) -> float:
    arg = term.arg(index)
    if arg is None or not is_number(arg.datum):
        raise ExecutionError(message)
    return float(arg.datum)


def _current_db(ctx: ExecutionContext) -> str:
    if ctx.current_db is None:
        raise ExecutionError("No database selected")
    return ctx.current_db


class QueryExecutor:
    """Evaluates ReQL terms, delegating data access to a storage backend."""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage
        self._handlers: dict[TermType, Callable[[Term, ExecutionContext], Awaitable[Datum]]] = {
            TermType.DATUM: self._datum,
            TermType.MAKE_ARRAY: self._make_array,
            TermType.MAKE_OBJ: self._make_obj,
            TermType.DB_LIST: self._db_list,
            TermType.DB_CREATE: self._db_create,
            TermType.DB_DROP: self._db_drop,
            TermType.DB: self._db,
            TermType.TABLE_LIST: self._table_list,
            TermType.TABLE_CREATE: self._table_create,
            TermType.TABLE_DROP: self._table_drop,
            TermType.TABLE: self._table,
            TermType.GET: self._get,
            TermType.FILTER: self._filter,
            TermType.NTH: self._nth,
            TermType.LIMIT: self._limit,
            TermType.SKIP: self._skip,
            TermType.SLICE: self._slice,
            TermType.ADD: self._add,
            TermType.SUB: self._sub,
            TermType.MUL: self._mul,
            TermType.DIV: self._div,
            TermType.MOD: self._mod,
            TermType.AND: self._and,
            TermType.OR: self._or,
            TermType.BRANCH: self._branch,
        }
        for term_type in _AGGREGATES:
            self._handlers[term_type] = self._unary
        for term_type in _COMPARISONS:
            self._handlers[term_type] = self._compare

    async def execute(self, term: Term) -> Datum:
        """Evaluate ``term`` in a fresh context and return its value."""
        return await self._evaluate(term, ExecutionContext())

    async def _evaluate(self, term: Term, ctx: ExecutionContext) -> Datum:
        log.debug("Executing term %s with %d args", term.term_type.name, len(term.args))
        if term.is_datum():
            return term.datum
        handler = self._handlers.get(term.term_type)
        if handler is not None:
            return await handler(term, ctx)
        fixed = _FIXED_RESULTS.get(term.term_type)
        if fixed is not None:
            return fixed()
        log.warning("Unsupported term type: %s", term.term_type.name)
        raise ExecutionError(f"Unsupported term type: {term.term_type.name}")

    async def _storage_call(self, action: str, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except ExecutionError:
            raise
        except Exception as err:
            raise ExecutionError(f"Failed to {action}: {err}") from err

    async def _evaluate_numbers(
        self, args: Iterable[Term], ctx: ExecutionContext, message: str
    ) -> list[float]:
        numbers = []
        for arg in args:
            value = await self._evaluate(arg, ctx)
            if not is_number(value):
                raise ExecutionError(message)
            numbers.append(float(value))
        return numbers

    # Core data

    async def _datum(self, term: Term, ctx: ExecutionContext) -> Datum:
        return term.datum

    async def _make_array(self, term: Term, ctx: ExecutionContext) -> Datum:
        return [await self._evaluate(arg, ctx) for arg in term.args]

    async def _make_obj(self, term: Term, ctx: ExecutionContext) -> Datum:
        return {key: await self._evaluate(value, ctx) for key, value in term.optargs.items()}

    # Databases

    async def _db_list(self, term: Term, ctx: ExecutionContext) -> Datum:
        names = await self._storage_call("list databases", self._storage.list_databases())
        return list(names)

    async def _db_create(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "DB_CREATE requires database name")
        await self._storage_call("create database", self._storage.create_database(name))
        return {"dbs_created": 1.0}

    async def _db_drop(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "DB_DROP requires database name")
        await self._storage_call("drop database", self._storage.drop_database(name))
        return {"dbs_dropped": 1.0}

    async def _db(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "DB requires database name")
        ctx.with_db(name)
        return {"$reql_type$": "DB", "db": name}

    # Tables

    async def _table_list(self, term: Term, ctx: ExecutionContext) -> Datum:
        db = _current_db(ctx)
        names = await self._storage_call("list tables", self._storage.list_tables_in_db(db))
        return list(names)

    async def _table_create(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "TABLE_CREATE requires table name")
        db = _current_db(ctx)
        key_term = term.optarg("primary_key")
        primary_key = key_term.datum if key_term is not None and isinstance(key_term.datum, str) else "id"
        await self._storage_call("create table", self._storage.create_table(db, name, primary_key))
        return {"tables_created": 1.0}

    async def _table_drop(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "TABLE_DROP requires table name")
        db = _current_db(ctx)
        await self._storage_call("drop table", self._storage.drop_table(db, name))
        return {"tables_dropped": 1.0}

    async def _table(self, term: Term, ctx: ExecutionContext) -> Datum:
        name = _literal_string(term, 0, "TABLE requires table name")
        db = _current_db(ctx)
        docs = await self._storage_call("scan table", self._storage.scan_table(db, name))
        return list(docs)

    # Data access

    async def _get(self, term: Term, ctx: ExecutionContext) -> Datum:
        if term.arg(0) is None:
            raise ExecutionError("GET requires table")
        key_term = term.arg(1)
        if key_term is None:
            raise ExecutionError("GET requires key")
        key = _key_repr(key_term.datum).encode("utf-8")
        doc = await self._storage_call("get document", self._storage.get(key))
        if doc is None:
            raise ExecutionError("Document not found")
        return doc

    # Selection

    async def _filter(self, term: Term, ctx: ExecutionContext) -> Datum:
        sequence = await self._evaluate(_required_arg(term, 0), ctx)
        predicate = term.arg(1)
        if predicate is None:
            raise ExecutionError("FILTER requires predicate")
        return ops.filter_matching(sequence, predicate.datum if predicate.is_datum() else None)

    async def _nth(self, term: Term, ctx: ExecutionContext) -> Datum:
        sequence = await self._evaluate(_required_arg(term, 0), ctx)
        index = _literal_number(term, 1, "NTH requires index")
        return ops.nth(sequence, index)

    async def _limit(self, term: Term, ctx: ExecutionContext) -> Datum:
        sequence = await self._evaluate(_required_arg(term, 0), ctx)
        n = _literal_number(term, 1, "LIMIT requires number")
        return ops.limit(sequence, n)

    async def _skip(self, term: Term, ctx: ExecutionContext) -> Datum:
        sequence = await self._evaluate(_required_arg(term, 0), ctx)
        n = _literal_number(term, 1, "SKIP requires number")
        return ops.skip(sequence, n)

    async def _slice(self, term: Term, ctx: ExecutionContext) -> Datum:
        sequence = await self._evaluate(_required_arg(term, 0), ctx)
        start = _literal_number(term, 1, "SLICE requires start")
        end = _literal_number(term, 2, "SLICE requires end")
        return ops.slice_sequence(sequence, start, end)

    async def _unary(self, term: Term, ctx: ExecutionContext) -> Datum:
        value = await self._evaluate(_required_arg(term, 0), ctx)
        return _AGGREGATES[term.term_type](value)

    # Math

    async def _add(self, term: Term, ctx: ExecutionContext) -> Datum:
        return ops.add(await self._evaluate_numbers(term.args, ctx, "ADD requires numbers"))

    async def _sub(self, term: Term, ctx: ExecutionContext) -> Datum:
        if not term.args:
            raise ExecutionError("SUB requires at least one argument")
        return ops.sub(await self._evaluate_numbers(term.args, ctx, "SUB requires numbers"))

    async def _mul(self, term: Term, ctx: ExecutionContext) -> Datum:
        return ops.mul(await self._evaluate_numbers(term.args, ctx, "MUL requires numbers"))

    async def _div(self, term: Term, ctx: ExecutionContext) -> Datum:
        if len(term.args) != 2:
            raise ExecutionError("DIV requires exactly two arguments")
        a, b = await self._evaluate_numbers(term.args, ctx, "DIV requires numbers")
        return ops.div(a, b)

    async def _mod(self, term: Term, ctx: ExecutionContext) -> Datum:
        if len(term.args) != 2:
            raise ExecutionError("MOD requires exactly two arguments")
        a, b = await self._evaluate_numbers(term.args, ctx, "MOD requires numbers")
        return ops.mod(a, b)

    # Logic

    async def _compare(self, term: Term, ctx: ExecutionContext) -> Datum:
        op = term.term_type
        if len(term.args) != 2:
            raise ExecutionError(f"{op.name} requires exactly two arguments")
        a = await self._evaluate(term.args[0], ctx)
        b = await self._evaluate(term.args[1], ctx)
        return ops.compare(op, a, b)

    async def _and(self, term: Term, ctx: ExecutionContext) -> Datum:
        for arg in term.args:
            value = await self._evaluate(arg, ctx)
            if not isinstance(value, bool):
                raise ExecutionError("AND requires booleans")
            if not value:
                return False
        return True

    async def _or(self, term: Term, ctx: ExecutionContext) -> Datum:
        for arg in term.args:
            value = await self._evaluate(arg, ctx)
            if not isinstance(value, bool):
                raise ExecutionError("OR requires booleans")
            if value:
                return True
        return False

    # Control flow

    async def _branch(self, term: Term, ctx: ExecutionContext) -> Datum:
        condition = await self._evaluate(_required_arg(term, 0), ctx)
        chosen = 1 if condition is True else 2
        return await self._evaluate(_required_arg(term, chosen), ctx)