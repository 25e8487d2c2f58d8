"""ReQL term types and query/response kinds.

The numeric values of :class:`TermType` are the identifiers used on the wire.
"""

from __future__ import annotations

from enum import Enum, IntEnum, auto

__all__ = ["TermType", "QueryType", "ResponseType"]


class TermType(IntEnum):
    """Every ReQL operation, valued by its wire identifier."""

    # Core data types
    DATUM = 0
    MAKE_ARRAY = 1
    MAKE_OBJ = 2

    # Variables
    VAR = 3

    # JavaScript evaluation
    JAVASCRIPT = 4

    # Database operations
    DB = 9
    TABLE = 10
    GET = 11
    GET_ALL = 12

    # Comparison operators
    EQ = 13
    NE = 14
    LT = 15
    LE = 16
    GT = 17
    GE = 18

    # Logic operators
    NOT = 19

    # Math operators
    ADD = 20
    SUB = 21
    MUL = 22
    DIV = 23
    MOD = 24

    # Array/set operations
    APPEND = 28
    PREPEND = 29
    DIFFERENCE = 30
    SET_INSERT = 31
    SET_INTERSECTION = 32
    SET_UNION = 33
    SET_DIFFERENCE = 34

    # Sequence operations
    SLICE = 35
    SKIP = 36
    LIMIT = 37
    CONTAINS = 39

    # Object operations
    GET_FIELD = 40
    KEYS = 41
    VALUES = 42
    HAS_FIELDS = 44
    PLUCK = 46
    WITHOUT = 47
    MERGE = 48

    # Data access
    BETWEEN = 49

    # Aggregations and transformations
    REDUCE = 50
    MAP = 51
    FILTER = 53
    CONCAT_MAP = 54
    ORDER_BY = 55
    DISTINCT = 56
    COUNT = 57
    NTH = 60

    # Array mutations
    INSERT_AT = 67
    DELETE_AT = 68
    CHANGE_AT = 69
    SPLICE_AT = 70

    # Type operations
    COERCE_TO = 71
    TYPE_OF = 72

    # Write operations
    UPDATE = 73
    DELETE = 74
    REPLACE = 75
    INSERT = 76

    # Database admin
    DB_CREATE = 77
    DB_DROP = 78
    DB_LIST = 79

    # Table admin
    TABLE_CREATE = 80
    TABLE_DROP = 81
    TABLE_LIST = 82

    # Control flow
    BRANCH = 99
    OR = 100
    AND = 101
    FOR_EACH = 102
    FUNC = 103

    # Grouping and aggregations
    GROUP = 152
    SUM = 153
    AVG = 154
    MIN = 155
    MAX = 156

    @classmethod
    def from_id(cls, value: object) -> TermType | None:
        """Return the term type with wire identifier ``value``, or None if unknown."""
        if isinstance(value, bool) or not isinstance(value, int):
            return None
        try:
            return cls(value)
        except ValueError:
            return None

    def __str__(self) -> str:
        return self.name


class QueryType(Enum):
    """Kind of a client query."""

    START = auto()
    CONTINUE = auto()
    STOP = auto()
    WAIT = auto()


class ResponseType(Enum):
    """Kind of a server response."""

    SUCCESS_ATOM = auto()
    SUCCESS_SEQUENCE = auto()
    SUCCESS_PARTIAL = auto()
    WAIT_COMPLETE = auto()
    SERVER_INFO = auto()
    CLIENT_ERROR = auto()
    COMPILE_ERROR = auto()
    RUNTIME_ERROR = auto()