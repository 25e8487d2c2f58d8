"""Per-client connection state and the query/response loop."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable

from photondb.network.protocol import (
    SERVER_VERSION,
    Handshake,
    ProtocolError,
    ProtocolVersion,
    QueryMessage,
    ResponseMessage,
    WireProtocol,
    read_query,
    write_response,
)
from photondb.query.api import QueryError
from photondb.query.compiler import CompileError, compile_query, datum_to_json
from photondb.query.executor import ExecutionError, QueryExecutor, StorageBackend

__all__ = ["Connection", "ConnectionHandler"]

log = logging.getLogger(__name__)

SUCCESS_ATOM = 1
SUCCESS_SEQUENCE = 2
WAIT_COMPLETE = 3
SERVER_INFO = 4
RUNTIME_ERROR = 18
ERROR_INTERNAL = 1000000


def _reply(token: int, response_type: int, results: list[Any]) -> ResponseMessage:
    return ResponseMessage(token=token, response={"t": response_type, "r": results})


class Connection:
    """State of one client after a successful handshake."""

    def __init__(self, handshake: Handshake, storage: StorageBackend) -> None:
        self._handshake = handshake
        self._executor = QueryExecutor(storage)
        self._active_queries: dict[int, asyncio.Event] = {}
        self._dispatch: dict[str, Callable[[QueryMessage], Awaitable[ResponseMessage]]] = {
            "START": self._start,
            "CONTINUE": self._continue,
            "STOP": self._stop,
            "NOREPLY_WAIT": self._noreply_wait,
            "SERVER_INFO": self._server_info,
        }

    def version(self) -> ProtocolVersion:
        """Protocol version negotiated in the handshake."""
        return self._handshake.version

    def protocol(self) -> WireProtocol:
        """Wire protocol negotiated in the handshake."""
        return self._handshake.protocol

    def is_authenticated(self) -> bool:
        """Whether the client sent an auth key."""
        return self._handshake.auth_key is not None

    def auth_key(self) -> str | None:
        """The auth key the client sent, if any."""
        return self._handshake.auth_key

    async def handle_query(self, query: QueryMessage) -> ResponseMessage:
        """Answer one query; raise QueryError when it cannot be answered."""
        started = time.perf_counter()
        body = query.query
        query_type = body.get("type") if isinstance(body, dict) else None
        if not isinstance(query_type, str):
            raise QueryError("Missing query type")
        log.debug("Processing query token=%d type=%s", query.token, query_type)

        success = False
        try:
            handler = self._dispatch.get(query_type)
            if handler is None:
                raise QueryError(f"Unknown query type: {query_type}")
            response = await handler(query)
            success = True
            return response
        finally:
            elapsed_ms = (time.perf_counter() - started) * 1000
            log.debug(
                "Query completed type=%s elapsed_ms=%.3f success=%s",
                query_type,
                elapsed_ms,
                success,
            )

    async def _start(self, query: QueryMessage) -> ResponseMessage:
        if "query" not in query.query:
            raise QueryError("Missing query term")
        try:
            term = compile_query(query.query["query"])
        except CompileError as err:
            raise QueryError(f"Query compilation failed: {err}") from err
        try:
            result = await self._executor.execute(term)
        except ExecutionError as err:
            raise QueryError(f"Query execution failed: {err}") from err
        return _reply(query.token, SUCCESS_ATOM, [datum_to_json(result)])

    async def _continue(self, query: QueryMessage) -> ResponseMessage:
        return _reply(query.token, SUCCESS_SEQUENCE, [])

    async def _stop(self, query: QueryMessage) -> ResponseMessage:
        cancel = self._active_queries.pop(query.token, None)
        if cancel is not None:
            cancel.set()
            log.debug("Cancelled query token=%d", query.token)
        return _reply(query.token, SUCCESS_SEQUENCE, [])

    async def _noreply_wait(self, query: QueryMessage) -> ResponseMessage:
        return _reply(query.token, WAIT_COMPLETE, [])

    async def _server_info(self, query: QueryMessage) -> ResponseMessage:
        info = {"id": "rethinkdb-3.0", "name": "RethinkDB 3.0", "version": SERVER_VERSION}
        return _reply(query.token, SERVER_INFO, [info])


class ConnectionHandler:
    """Runs the handshake and query loop for each incoming stream."""

    def __init__(self, storage: StorageBackend) -> None:
        self._storage = storage

    async def handle(self, reader: Any, writer: Any) -> None:
        """Serve one client until it disconnects or the stream fails."""
        peer = writer.get_extra_info("peername")
        log.info("New connection from %s", peer)
        try:
            try:
                handshake = await Handshake.accept(reader, writer)
            except Exception as err:
                log.error("Handshake failed from %s: %s", peer, err)
                raise

            connection = Connection(handshake, self._storage)
            log.info(
                "Connection established from %s (authenticated: %s)",
                peer,
                connection.is_authenticated(),
            )
            await self._query_loop(connection, reader, writer, peer)
            log.info("Connection closed from %s", peer)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def _query_loop(self, connection: Connection, reader: Any, writer: Any, peer: Any) -> None:
        while True:
            try:
                query = await read_query(reader)
            except asyncio.IncompleteReadError:
                log.info("Client disconnected: %s", peer)
                return
            except (ProtocolError, ConnectionError, OSError) as err:
                log.error("Failed to read query: %s", err)
                return

            try:
                response = await connection.handle_query(query)
            except Exception as err:
                log.error("Query execution error: %s", err)
                response = ResponseMessage(
                    token=query.token,
                    response={
                        "t": RUNTIME_ERROR,
                        "r": [],
                        "e": ERROR_INTERNAL,
                        "b": [],
                        "m": str(err),
                    },
                )

            try:
                await write_response(writer, response)
            except (ProtocolError, ConnectionError, OSError) as err:
                log.error("Failed to write response: %s", err)
                return