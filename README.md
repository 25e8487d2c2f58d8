# photondb

photondb is the core of a document database that speaks the RethinkDB wire
protocol and runs ReQL queries. It is a library: it compiles and executes
queries, frames messages, serves TCP clients and checks credentials, while
the data itself lives in a storage backend you supply.

## Packages

- `photondb.reql`
  - `terms` – `TermType`, every ReQL operation valued by its wire identifier
    (`TermType.from_id(57)` is `TermType.COUNT`, unknown ids give `None`),
    plus the `QueryType` and `ResponseType` enums.
  - `datum` – datums are plain Python values (`None`, `bool`, `float`, `str`,
    `list`, `dict`). `from_json`, `to_json`, `type_name`, `is_number` and
    `format_datum` convert, classify and render them.
  - `ast` – the `Term` query tree with class-method constructors
    (`Term.db`, `Term.table`, `Term.filter`, `Term.count`, `Term.add`,
    `Term.eq`, `Term.and_`, ...) and `TermBuilder`.
- `photondb.query`
  - `compiler` – `compile_query` turns the JSON wire form
    `[term_type, [args...], {optargs...}]` into a `Term`; `json_to_datum`,
    `datum_to_json`; errors raise `CompileError`.
  - `operations` – the pure operations on datums (arithmetic, comparison,
    logic, aggregation, selection); failures raise `ExecutionError`.
  - `executor` – `StorageBackend` (the abstract storage interface),
    `ExecutionContext` and the asynchronous `QueryExecutor`.
  - `api` – `execute_json(storage, query)` compiles, runs and returns JSON;
    `execute(storage, text)` recognises only a few text forms
    (`db_list`, `table_list`, `table(`). Both raise `QueryError`.
- `photondb.network`
  - `protocol` – `ProtocolVersion`, `WireProtocol`, `Handshake.accept` /
    `Handshake.connect`, `QueryMessage`, `ResponseMessage`, and the framing
    functions `read_query`, `write_response`, `read_response`, `write_query`.
    Violations raise `ProtocolError`.
  - `auth` – `AuthManager`, `User`, `Permission`, `AuthError`.
  - `connection` – `Connection` answers `START`, `CONTINUE`, `STOP`,
    `NOREPLY_WAIT` and `SERVER_INFO` queries; `ConnectionHandler` runs the
    handshake and query loop on an asyncio stream pair.
  - `server` – `ServerConfig` and the asyncio `ProtocolServer`.
- `photondb.plugin`
  - `traits` – `Plugin`, `PluginMetadata`, `PluginCapability`,
    `PluginError` and the built-in `ExamplePlugin`.
  - `registry`, `loader`, `manager` – `PluginRegistry`, `PluginLoader`,
    `PluginManager`.

## Compiling and building queries

```python
from photondb.reql.ast import Term
from photondb.reql.terms import TermType
from photondb.query.compiler import compile_query

# r.table("users").filter({"age": 25}).count() in its JSON wire form
term = compile_query([57, [[53, [[10, ["users"]], {"age": 25}]]]])
assert term.term_type is TermType.COUNT

built = Term.count(Term.filter(Term.table("users"), Term.literal({"age": 25})))
print(built.pretty_print(0))
```

## Running queries against your own storage

`QueryExecutor` needs an implementation of `StorageBackend`. A minimal
in-memory one:

```python
import asyncio
from photondb.query.executor import QueryExecutor, StorageBackend
from photondb.reql.ast import Term

class MemoryStorage(StorageBackend):
    def __init__(self):
        self.tables = {("test", "users"): [{"name": "Alice", "age": 30.0}]}

    async def list_databases(self): return sorted({db for db, _ in self.tables})
    async def create_database(self, name): pass
    async def drop_database(self, name): pass
    async def list_tables(self): return [t for _, t in self.tables]
    async def list_tables_in_db(self, db): return [t for d, t in self.tables if d == db]
    async def create_table(self, db, table, primary_key): self.tables[(db, table)] = []
    async def drop_table(self, db, table): del self.tables[(db, table)]
    async def scan_table(self, db, table): return self.tables[(db, table)]
    async def get(self, key): return None

async def main():
    executor = QueryExecutor(MemoryStorage())
    print(await executor.execute(Term.count(Term.table("users"))))  # 1.0

asyncio.run(main())
```

Queries run in the database `test` unless a `DB` term selects another.
Numbers are floats throughout.

## Data values

```python
from photondb.reql.datum import to_json, type_name, format_datum

doc = {"name": "Alice", "age": 30.0, "active": True}
type_name(doc)      # "OBJECT"
format_datum(doc)   # '{"name": "Alice", "age": 30, "active": true}'
```

## Wire protocol and server

All integers on the wire are little-endian. A client performs
`Handshake.connect` and then exchanges messages with `write_query` and
`read_response`; the server side uses `Handshake.accept`, `read_query` and
`write_response`. `ProtocolVersion` reports `supports_json`,
`supports_parallel_queries` and `supports_auth`; only the JSON wire protocol
is accepted, and messages larger than `MAX_MESSAGE_SIZE` are refused.

`ProtocolServer(ServerConfig(), storage)` listens on `127.0.0.1:28015` by
default when `serve()` is awaited, and serves at most `max_connections`
clients at a time. Failed queries are answered with a runtime-error response
(`"t": 18`) carrying the error message.

## Authentication

```python
import asyncio
from photondb.network.auth import AuthManager, Permission

async def main():
    auth = AuthManager.with_admin("password")
    admin = await auth.authenticate("admin", "password")
    print(await auth.user_count(), admin.username)
    print(AuthManager.has_permission(admin, Permission.WRITE))  # True

asyncio.run(main())
```

Passwords are stored as bcrypt hashes. `has_permission` treats `ADMIN` as
granting every other permission. `authenticate_key("")` with no users
configured yields an all-powerful `default` user.

## Plugins

```python
import asyncio
from photondb.plugin.manager import PluginManager
from photondb.plugin.traits import ExamplePlugin

async def main():
    plugin = ExamplePlugin()
    print(plugin.list_functions())                   # ['hello']
    print(await plugin.execute("hello", ["Rust"]))   # Hello, Rust!

asyncio.run(main())
```

`PluginLoader.load_builtin("example")` returns a new `ExamplePlugin`.
`PluginManager` keeps loaded plugins and the `PluginRegistry` in step.

## What photondb does not do

- It has no storage engine of its own: you must provide a `StorageBackend`.
- It installs no command; start the server from your own code by awaiting
  `ProtocolServer.serve()`.
- `ServerConfig` has TLS fields, but the server does not use them; connections
  are plain TCP.
- Many terms are accepted but return fixed results rather than computing
  anything: `MAP`, `CONCAT_MAP`, `ORDER_BY`, `GROUP`, `REDUCE`, `PLUCK`,
  `WITHOUT`, `MERGE`, `GET_ALL`, `BETWEEN`, the array and set operations,
  `GET_FIELD`, `KEYS`, `VALUES`, `HAS_FIELDS`, `CONTAINS`, `FOR_EACH`, `FUNC`,
  `COERCE_TO`, and the writes `INSERT`, `UPDATE`, `REPLACE`, `DELETE`, which
  report fixed counts without touching storage. `FILTER` only matches
  against a literal object.
- `CONTINUE` queries return an empty sequence; there are no cursors.
- `PluginLoader.load` cannot load plugins from files and raises `PluginError`.

## Running the tests

The tests use pytest and pytest-asyncio, available through the `test` extra:

```
pip install -e ".[test]"
pytest
```