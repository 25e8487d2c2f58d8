import pytest

from photondb.query.executor import (
    ExecutionContext,
    ExecutionError,
    QueryExecutor,
    StorageBackend,
)
from photondb.reql.ast import Term
from photondb.reql.terms import TermType


class MemoryStorage(StorageBackend):
    def __init__(self):
        self.dbs = {"test": {}}
        self.documents = {}
        self.requested_keys = []
        self.fail = False

    async def list_databases(self):
        if self.fail:
            raise RuntimeError("disk gone")
        return list(self.dbs)

    async def create_database(self, name):
        if name in self.dbs:
            raise ValueError(f"database exists: {name}")
        self.dbs[name] = {}

    async def drop_database(self, name):
        del self.dbs[name]

    async def list_tables(self):
        return [table for tables in self.dbs.values() for table in tables]

    async def list_tables_in_db(self, db):
        return list(self.dbs[db])

    async def create_table(self, db, table, primary_key):
        self.dbs[db][table] = {"primary_key": primary_key, "docs": []}

    async def drop_table(self, db, table):
        del self.dbs[db][table]

    async def scan_table(self, db, table):
        return list(self.dbs[db][table]["docs"])

    async def get(self, key):
        self.requested_keys.append(key)
        return self.documents.get(key)


@pytest.fixture
def storage():
    return MemoryStorage()


@pytest.fixture
def executor(storage):
    return QueryExecutor(storage)


def lit(value):
    return Term.literal(value)


@pytest.mark.asyncio
async def test_db_list(executor):
    result = await executor.execute(Term.db_list())
    assert isinstance(result, list)
    assert result == ["test"]


@pytest.mark.asyncio
async def test_count(executor):
    result = await executor.execute(Term.count(lit([1.0, 2.0, 3.0])))
    assert result == 3.0


@pytest.mark.asyncio
async def test_math_operations(executor):
    assert await executor.execute(Term.add([lit(5.0), lit(3.0)])) == 8.0
    assert await executor.execute(Term.mul([lit(4.0), lit(3.0)])) == 12.0


@pytest.mark.asyncio
async def test_logic_operations(executor):
    assert await executor.execute(Term.eq(lit(5.0), lit(5.0))) is True
    assert await executor.execute(Term.gt(lit(10.0), lit(5.0))) is True


@pytest.mark.asyncio
async def test_db_create_and_drop(executor, storage):
    created = await executor.execute(Term(TermType.DB_CREATE, args=[lit("extra")]))
    assert created == {"dbs_created": 1.0}
    assert "extra" in storage.dbs
    dropped = await executor.execute(Term(TermType.DB_DROP, args=[lit("extra")]))
    assert dropped == {"dbs_dropped": 1.0}
    assert "extra" not in storage.dbs


@pytest.mark.asyncio
async def test_db_create_failure_is_wrapped(executor):
    with pytest.raises(ExecutionError, match="Failed to create database"):
        await executor.execute(Term(TermType.DB_CREATE, args=[lit("test")]))


@pytest.mark.asyncio
async def test_db_create_requires_name(executor):
    with pytest.raises(ExecutionError, match="DB_CREATE requires database name"):
        await executor.execute(Term(TermType.DB_CREATE))


@pytest.mark.asyncio
async def test_storage_error_wrapped(executor, storage):
    storage.fail = True
    with pytest.raises(ExecutionError, match="Failed to list databases"):
        await executor.execute(Term.db_list())


@pytest.mark.asyncio
async def test_db_term_returns_reference(executor):
    result = await executor.execute(Term.db("mydb"))
    assert result == {"$reql_type$": "DB", "db": "mydb"}


@pytest.mark.asyncio
async def test_db_term_selects_database_for_later_terms(executor, storage):
    storage.dbs["other"] = {"things": {"primary_key": "id", "docs": []}}
    query = Term(TermType.MAKE_ARRAY, args=[Term.db("other"), Term.table_list()])
    result = await executor.execute(query)
    assert result[1] == ["things"]


@pytest.mark.asyncio
async def test_table_create_uses_primary_key(executor, storage):
    default = await executor.execute(Term(TermType.TABLE_CREATE, args=[lit("users")]))
    assert default == {"tables_created": 1.0}
    assert storage.dbs["test"]["users"]["primary_key"] == "id"
    custom = Term(TermType.TABLE_CREATE, args=[lit("items")]).with_optarg("primary_key", lit("sku"))
    await executor.execute(custom)
    assert storage.dbs["test"]["items"]["primary_key"] == "sku"
    assert await executor.execute(Term.table_list()) == ["users", "items"]


@pytest.mark.asyncio
async def test_table_drop(executor, storage):
    storage.dbs["test"]["old"] = {"primary_key": "id", "docs": []}
    result = await executor.execute(Term(TermType.TABLE_DROP, args=[lit("old")]))
    assert result == {"tables_dropped": 1.0}
    assert "old" not in storage.dbs["test"]


@pytest.mark.asyncio
async def test_missing_table_is_error(executor):
    with pytest.raises(ExecutionError, match="Failed to scan table"):
        await executor.execute(Term.table("nope"))


@pytest.mark.asyncio
async def test_filter_table(executor, storage):
    docs = [{"name": "a", "age": 25.0}, {"name": "b", "age": 30.0}, "loose"]
    storage.dbs["test"]["users"] = {"primary_key": "id", "docs": docs}
    result = await executor.execute(Term.filter(Term.table("users"), lit({"age": 25.0})))
    assert result == [{"name": "a", "age": 25.0}]


@pytest.mark.asyncio
async def test_filter_non_datum_predicate_matches_nothing(executor):
    predicate = Term(TermType.MAKE_OBJ).with_optarg("a", lit(1.0))
    result = await executor.execute(Term.filter(lit([{"a": 1.0}]), predicate))
    assert result == []


@pytest.mark.asyncio
async def test_filter_requires_predicate(executor):
    with pytest.raises(ExecutionError, match="FILTER requires predicate"):
        await executor.execute(Term(TermType.FILTER, args=[lit([])]))


@pytest.mark.asyncio
async def test_sequence_selection(executor):
    seq = lit([1.0, 2.0, 3.0, 4.0])
    assert await executor.execute(Term.limit(seq, 2)) == [1.0, 2.0]
    assert await executor.execute(Term.skip(seq, 3)) == [4.0]
    nth = Term(TermType.NTH, args=[seq, lit(1.0)])
    assert await executor.execute(nth) == 2.0
    sliced = Term(TermType.SLICE, args=[seq, lit(1.0), lit(3.0)])
    assert await executor.execute(sliced) == [2.0, 3.0]


@pytest.mark.asyncio
async def test_nth_out_of_bounds(executor):
    with pytest.raises(ExecutionError, match="Index out of bounds"):
        await executor.execute(Term(TermType.NTH, args=[lit([1.0]), lit(5.0)]))


@pytest.mark.asyncio
async def test_limit_requires_literal_number(executor):
    with pytest.raises(ExecutionError, match="LIMIT requires number"):
        await executor.execute(Term(TermType.LIMIT, args=[lit([1.0]), lit("x")]))


@pytest.mark.asyncio
async def test_aggregates(executor):
    seq = lit([2.0, 8.0, "x"])
    assert await executor.execute(Term.sum(seq)) == 10.0
    assert await executor.execute(Term(TermType.MIN, args=[seq])) == 2.0
    assert await executor.execute(Term(TermType.MAX, args=[seq])) == 8.0
    assert await executor.execute(Term.avg(lit([]))) is None


@pytest.mark.asyncio
async def test_distinct(executor):
    result = await executor.execute(Term(TermType.DISTINCT, args=[lit([1.0, 1.0, "a", "a"])]))
    assert result == [1.0, "a"]


@pytest.mark.asyncio
async def test_sub_and_div(executor):
    assert await executor.execute(Term.sub([lit(10.0), lit(4.0)])) == 6.0
    assert await executor.execute(Term.div([lit(9.0), lit(3.0)])) == 3.0


@pytest.mark.asyncio
async def test_arithmetic_errors(executor):
    with pytest.raises(ExecutionError, match="Division by zero"):
        await executor.execute(Term.div([lit(1.0), lit(0.0)]))
    with pytest.raises(ExecutionError, match="SUB requires at least one argument"):
        await executor.execute(Term.sub([]))
    with pytest.raises(ExecutionError, match="ADD requires numbers"):
        await executor.execute(Term.add([lit(1.0), lit("x")]))
    with pytest.raises(ExecutionError, match="DIV requires exactly two arguments"):
        await executor.execute(Term.div([lit(1.0)]))


@pytest.mark.asyncio
async def test_comparison_requires_two_args(executor):
    with pytest.raises(ExecutionError, match="EQ requires exactly two arguments"):
        await executor.execute(Term(TermType.EQ, args=[lit(1.0)]))


@pytest.mark.asyncio
async def test_and_or_short_circuit(executor):
    assert await executor.execute(Term.and_([lit(False), lit("x")])) is False
    assert await executor.execute(Term.or_([lit(True), lit("x")])) is True
    with pytest.raises(ExecutionError, match="OR requires booleans"):
        await executor.execute(Term.or_([lit("x")]))
    assert await executor.execute(Term.not_(lit(True))) is False


@pytest.mark.asyncio
async def test_branch(executor):
    chosen = Term(TermType.BRANCH, args=[lit(True), lit("yes"), lit("no")])
    assert await executor.execute(chosen) == "yes"
    other = Term(TermType.BRANCH, args=[lit(1.0), lit("yes"), lit("no")])
    assert await executor.execute(other) == "no"


@pytest.mark.asyncio
async def test_type_of(executor):
    assert await executor.execute(Term(TermType.TYPE_OF, args=[lit([])])) == "ARRAY"


@pytest.mark.asyncio
async def test_make_obj_evaluates_values(executor):
    term = Term(TermType.MAKE_OBJ).with_optarg("n", Term.add([lit(1.0), lit(1.0)]))
    assert await executor.execute(term) == {"n": 2.0}


@pytest.mark.asyncio
async def test_insert_summary(executor):
    result = await executor.execute(Term.insert(Term.table("users"), [{"a": 1.0}]))
    assert result == {"inserted": 1.0, "errors": 0.0}


@pytest.mark.asyncio
async def test_get_not_found(executor, storage):
    with pytest.raises(ExecutionError, match="Document not found"):
        await executor.execute(Term.get(Term.table("users"), "k1"))
    assert b"k1" in storage.requested_keys[0]


@pytest.mark.asyncio
async def test_get_found(executor, storage):
    await executor.execute(Term.get(Term.table("users"), "k1")) if False else None
    try:
        await executor.execute(Term.get(Term.table("users"), "k1"))
    except ExecutionError:
        pass
    storage.documents[storage.requested_keys[0]] = {"id": "k1"}
    assert await executor.execute(Term.get(Term.table("users"), "k1")) == {"id": "k1"}


@pytest.mark.asyncio
async def test_unsupported_term(executor):
    with pytest.raises(ExecutionError, match="Unsupported term type: VAR"):
        await executor.execute(Term(TermType.VAR, args=[lit(1.0)]))


def test_execution_context():
    ctx = ExecutionContext()
    assert ctx.current_db == "test"
    assert ctx.with_db("other").current_db == "other"
    ctx.bind_var(7, "value")
    assert ctx.get_var(7) == "value"
    assert ctx.get_var(8) is None