"""TCP server accepting client connections."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from photondb.network.connection import ConnectionHandler
from photondb.query.executor import StorageBackend

__all__ = ["ServerConfig", "ProtocolServer"]

log = logging.getLogger(__name__)

DEFAULT_PORT = 28015


@dataclass
class ServerConfig:
    """Where and how the server listens."""

    bind_addr: tuple[str, int] = ("127.0.0.1", DEFAULT_PORT)
    max_connections: int = 1024
    tls_enabled: bool = False
    tls_cert_path: str | None = None
    tls_key_path: str | None = None


class ProtocolServer:
    """Accepts TCP clients and serves each with a connection handler."""

    def __init__(self, config: ServerConfig, storage: StorageBackend) -> None:
        self._config = config
        self._handler = ConnectionHandler(storage)
        self._semaphore = asyncio.Semaphore(config.max_connections)
        self._active = 0

    async def serve(self) -> None:
        """Listen on the configured address and serve clients until cancelled."""
        host, port = self._config.bind_addr
        server = await asyncio.start_server(self._on_client, host, port)
        log.info("Protocol server listening on %s:%d", host, port)
        async with server:
            await server.serve_forever()

    async def _on_client(self, reader: Any, writer: Any) -> None:
        peer = writer.get_extra_info("peername")
        async with self._semaphore:
            self._active += 1
            try:
                log.debug("Accepted connection from %s", peer)
                await self._handler.handle(reader, writer)
            except Exception as err:
                log.error("Connection error from %s: %s", peer, err)
            finally:
                self._active -= 1

    def addr(self) -> tuple[str, int]:
        """The configured listening address."""
        return self._config.bind_addr

    def max_connections(self) -> int:
        """Most clients served at once."""
        return self._config.max_connections

    def available_connections(self) -> int:
        """Connection slots not currently in use."""
        return self._config.max_connections - self._active