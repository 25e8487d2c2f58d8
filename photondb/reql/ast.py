"""ReQL abstract syntax tree: terms and a fluent builder."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Mapping

from photondb.reql.datum import Datum, format_datum
from photondb.reql.terms import TermType

__all__ = ["Term", "TermBuilder"]


@dataclass
class Term:
    """One node of a query tree.

    ``args`` are positional child terms, ``optargs`` named child terms and
    ``datum`` holds the literal value of a DATUM term.
    """

    term_type: TermType
    args: list[Term] = field(default_factory=list)
    optargs: dict[str, Term] = field(default_factory=dict)
    datum: Any = None

    @classmethod
    def literal(cls, value: Datum) -> Term:
        """A DATUM term holding ``value``."""
        return cls(TermType.DATUM, datum=value)

    def with_arg(self, arg: Term) -> Term:
        """A copy of this term with ``arg`` appended to its arguments."""
        return replace(self, args=[*self.args, arg])

    def with_args(self, args: Iterable[Term]) -> Term:
        """A copy of this term with ``args`` appended to its arguments."""
        return replace(self, args=[*self.args, *args])

    def with_optarg(self, name: str, value: Term) -> Term:
        """A copy of this term with the named argument ``name`` set."""
        return replace(self, optargs={**self.optargs, name: value})

    def with_optargs(self, optargs: Mapping[str, Term]) -> Term:
        """A copy of this term with all of ``optargs`` set."""
        return replace(self, optargs={**self.optargs, **optargs})

    def first_arg(self) -> Term | None:
        """The first positional argument, or None."""
        return self.arg(0)

    def arg(self, index: int) -> Term | None:
        """The positional argument at ``index``, or None if there is none."""
        if 0 <= index < len(self.args):
            return self.args[index]
        return None

    def optarg(self, name: str) -> Term | None:
        """The named argument ``name``, or None."""
        return self.optargs.get(name)

    def is_datum(self) -> bool:
        """Whether this is a DATUM term."""
        return self.term_type == TermType.DATUM

    def pretty_print(self, indent: int = 0) -> str:
        """Render the term tree as indented text."""
        pad = "  " * indent
        parts = [f"{pad}{self.term_type.name}("]
        if self.is_datum():
            parts.append(format_datum(self.datum))
        if self.args:
            parts.append("\n")
            parts.append(",\n".join(arg.pretty_print(indent + 1) for arg in self.args))
            parts.append("\n")
            parts.append(pad)
        if self.optargs:
            parts.append(" {")
            for key, value in self.optargs.items():
                parts.append(f"\n{pad}  {key}: ")
                parts.append(value.pretty_print(indent + 2))
            parts.append(f"\n{pad}}}")
        parts.append(")")
        return "".join(parts)

    # Database and table access

    @classmethod
    def db(cls, name: str) -> Term:
        return cls(TermType.DB, args=[cls.literal(name)])

    @classmethod
    def table(cls, name: str) -> Term:
        return cls(TermType.TABLE, args=[cls.literal(name)])

    @classmethod
    def db_list(cls) -> Term:
        return cls(TermType.DB_LIST)

    @classmethod
    def table_list(cls) -> Term:
        return cls(TermType.TABLE_LIST)

    @classmethod
    def get(cls, table: Term, key: Datum) -> Term:
        return cls(TermType.GET, args=[table, cls.literal(key)])

    @classmethod
    def get_all(cls, table: Term, keys: Iterable[Datum]) -> Term:
        return cls(TermType.GET_ALL, args=[table, *(cls.literal(key) for key in keys)])

    @classmethod
    def filter(cls, sequence: Term, predicate: Term) -> Term:
        return cls(TermType.FILTER, args=[sequence, predicate])

    # Transformations

    @classmethod
    def map(cls, sequence: Term, mapping: Term) -> Term:
        return cls(TermType.MAP, args=[sequence, mapping])

    @classmethod
    def order_by(cls, sequence: Term, fields: Iterable[Term]) -> Term:
        return cls(TermType.ORDER_BY, args=[sequence, *fields])

    @classmethod
    def limit(cls, sequence: Term, n: int) -> Term:
        return cls(TermType.LIMIT, args=[sequence, cls.literal(float(n))])

    @classmethod
    def skip(cls, sequence: Term, n: int) -> Term:
        return cls(TermType.SKIP, args=[sequence, cls.literal(float(n))])

    # Aggregations

    @classmethod
    def count(cls, sequence: Term) -> Term:
        return cls(TermType.COUNT, args=[sequence])

    @classmethod
    def sum(cls, sequence: Term, field: str | None = None) -> Term:
        args = [sequence] if field is None else [sequence, cls.literal(field)]
        return cls(TermType.SUM, args=args)

    @classmethod
    def avg(cls, sequence: Term, field: str | None = None) -> Term:
        args = [sequence] if field is None else [sequence, cls.literal(field)]
        return cls(TermType.AVG, args=args)

    # Writes

    @classmethod
    def insert(cls, table: Term, documents: Iterable[Datum]) -> Term:
        return cls(TermType.INSERT, args=[table, *(cls.literal(doc) for doc in documents)])

    @classmethod
    def update(cls, selection: Term, update_doc: Datum) -> Term:
        return cls(TermType.UPDATE, args=[selection, cls.literal(update_doc)])

    @classmethod
    def delete(cls, selection: Term) -> Term:
        return cls(TermType.DELETE, args=[selection])

    # Math

    @classmethod
    def add(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.ADD, args=list(terms))

    @classmethod
    def sub(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.SUB, args=list(terms))

    @classmethod
    def mul(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.MUL, args=list(terms))

    @classmethod
    def div(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.DIV, args=list(terms))

    # Logic

    @classmethod
    def eq(cls, left: Term, right: Term) -> Term:
        return cls(TermType.EQ, args=[left, right])

    @classmethod
    def ne(cls, left: Term, right: Term) -> Term:
        return cls(TermType.NE, args=[left, right])

    @classmethod
    def lt(cls, left: Term, right: Term) -> Term:
        return cls(TermType.LT, args=[left, right])

    @classmethod
    def gt(cls, left: Term, right: Term) -> Term:
        return cls(TermType.GT, args=[left, right])

    @classmethod
    def and_(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.AND, args=list(terms))

    @classmethod
    def or_(cls, terms: Iterable[Term]) -> Term:
        return cls(TermType.OR, args=list(terms))

    @classmethod
    def not_(cls, term: Term) -> Term:
        return cls(TermType.NOT, args=[term])


class TermBuilder:
    """Incrementally assembles a :class:`Term`."""

    def __init__(self, term_type: TermType) -> None:
        self._term = Term(term_type)

    def arg(self, arg: Term) -> TermBuilder:
        """Append a positional argument."""
        self._term.args.append(arg)
        return self

    def optarg(self, name: str, value: Term) -> TermBuilder:
        """Set a named argument."""
        self._term.optargs[name] = value
        return self

    def build(self) -> Term:
        """The assembled term."""
        return self._term