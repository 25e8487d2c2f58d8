"""Client wire protocol: handshake and length-prefixed JSON messages.

All integers on the wire are little-endian. Readers are expected to offer an
``async readexactly(n)`` method (such as :class:`asyncio.StreamReader`) and
writers a ``write(data)`` method with an ``async drain()``.
"""

from __future__ import annotations

import json
import logging
import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

__all__ = [
    "VERSION_V0_1",
    "VERSION_V0_2",
    "VERSION_V0_3",
    "VERSION_V0_4",
    "VERSION_V1_0",
    "PROTOCOL_PROTOBUF",
    "PROTOCOL_JSON",
    "HARD_LIMIT_TOO_LARGE_QUERY_SIZE",
    "TOO_LARGE_QUERY_SIZE",
    "TOO_LONG_QUERY_TIME",
    "MAX_MESSAGE_SIZE",
    "MAX_AUTH_KEY_LENGTH",
    "MAX_HANDSHAKE_RESPONSE",
    "SERVER_VERSION",
    "ProtocolError",
    "ProtocolVersion",
    "WireProtocol",
    "Handshake",
    "QueryMessage",
    "ResponseMessage",
    "read_query",
    "write_response",
    "read_response",
    "write_query",
]

log = logging.getLogger(__name__)

VERSION_V0_1 = 0x3F61BA36
VERSION_V0_2 = 0x723081E1
VERSION_V0_3 = 0x5F75E83E
VERSION_V0_4 = 0x400C2D20
VERSION_V1_0 = 0x34C2BDC3

PROTOCOL_PROTOBUF = 0x271FFC41
PROTOCOL_JSON = 0x7E6970C7

HARD_LIMIT_TOO_LARGE_QUERY_SIZE = 1024 * 1024 * 1024
TOO_LARGE_QUERY_SIZE = 128 * 1024 * 1024
TOO_LONG_QUERY_TIME = 5 * 60 * 1000
MAX_MESSAGE_SIZE = 256 * 1024 * 1024

MAX_AUTH_KEY_LENGTH = 4096
MAX_HANDSHAKE_RESPONSE = 1024

SERVER_VERSION = "3.0.0-alpha"


class ProtocolError(Exception):
    """Raised when the peer violates the wire protocol."""


class _Reader(Protocol):
    async def readexactly(self, n: int) -> bytes: ...


class _Writer(Protocol):
    def write(self, data: bytes) -> Any: ...

    async def drain(self) -> None: ...


class ProtocolVersion(IntEnum):
    """Protocol versions, valued by their handshake magic number."""

    V0_1 = VERSION_V0_1
    V0_2 = VERSION_V0_2
    V0_3 = VERSION_V0_3
    V0_4 = VERSION_V0_4
    V1_0 = VERSION_V1_0

    @classmethod
    def from_magic(cls, magic: int) -> ProtocolVersion:
        """The version announced by ``magic``."""
        try:
            return cls(magic)
        except ValueError:
            raise ProtocolError(f"Unsupported protocol version: 0x{magic:x}") from None

    @property
    def magic(self) -> int:
        return int(self)

    def supports_json(self) -> bool:
        return self in (ProtocolVersion.V0_3, ProtocolVersion.V0_4, ProtocolVersion.V1_0)

    def supports_parallel_queries(self) -> bool:
        return self in (ProtocolVersion.V0_4, ProtocolVersion.V1_0)

    def supports_auth(self) -> bool:
        return self is ProtocolVersion.V1_0


class WireProtocol(IntEnum):
    """Encoding of queries on the wire, valued by its magic number."""

    JSON = PROTOCOL_JSON
    PROTOBUF = PROTOCOL_PROTOBUF

    @classmethod
    def from_magic(cls, magic: int) -> WireProtocol:
        """The wire protocol announced by ``magic``."""
        try:
            return cls(magic)
        except ValueError:
            raise ProtocolError(f"Unknown protocol type: 0x{magic:x}") from None

    @property
    def magic(self) -> int:
        return int(self)


def _pack(fmt: str, value: int) -> bytes:
    try:
        return struct.pack(fmt, value)
    except struct.error as err:
        raise ProtocolError(f"Value out of range: {value}") from err


async def _read_u32(reader: _Reader) -> int:
    return struct.unpack("<I", await reader.readexactly(4))[0]


async def _read_i64(reader: _Reader) -> int:
    return struct.unpack("<q", await reader.readexactly(8))[0]


def _encode_json(value: Any) -> bytes:
    try:
        return json.dumps(
            value, separators=(",", ":"), ensure_ascii=False, allow_nan=False
        ).encode("utf-8")
    except (TypeError, ValueError) as err:
        raise ProtocolError(f"Cannot encode message: {err}") from err


def _decode_json(data: bytes) -> Any:
    try:
        return json.loads(data.decode("utf-8"))
    except ValueError as err:
        raise ProtocolError(f"Invalid JSON message: {err}") from err


@dataclass
class Handshake:
    """Outcome of a completed handshake."""

    version: ProtocolVersion
    protocol: WireProtocol
    auth_key: str | None = None

    @classmethod
    async def accept(cls, reader: _Reader, writer: _Writer) -> Handshake:
        """Perform the server side of the handshake."""
        version = ProtocolVersion.from_magic(await _read_u32(reader))
        log.debug("Client protocol version: %s (0x%x)", version.name, version.magic)

        auth_key: str | None = None
        if version is not ProtocolVersion.V0_1:
            key_len = await _read_u32(reader)
            if key_len > MAX_AUTH_KEY_LENGTH:
                raise ProtocolError(f"Auth key too long: {key_len} bytes")
            key_bytes = await reader.readexactly(key_len)
            if key_bytes.endswith(b"\0"):
                key_bytes = key_bytes[:-1]
            try:
                auth_key = key_bytes.decode("utf-8")
            except UnicodeDecodeError as err:
                raise ProtocolError(f"Auth key is not valid UTF-8: {err}") from err

        if not version.supports_json():
            raise ProtocolError("PROTOBUF protocol is no longer supported")
        protocol = WireProtocol.from_magic(await _read_u32(reader))
        log.debug("Client wire protocol: %s", protocol.name)

        if version is ProtocolVersion.V1_0:
            reply = _encode_json(
                {
                    "success": True,
                    "min_protocol_version": 0,
                    "max_protocol_version": 0,
                    "server_version": SERVER_VERSION,
                }
            )
        else:
            reply = b"SUCCESS"
        writer.write(reply + b"\0")
        await writer.drain()

        log.info("Handshake complete: %s / %s", version.name, protocol.name)
        return cls(version=version, protocol=protocol, auth_key=auth_key)

    @staticmethod
    async def connect(
        reader: _Reader,
        writer: _Writer,
        auth_key: str | None = None,
        version: ProtocolVersion = ProtocolVersion.V1_0,
        protocol: WireProtocol = WireProtocol.JSON,
    ) -> None:
        """Perform the client side of the handshake."""
        parts = [_pack("<I", version.magic)]
        if version is not ProtocolVersion.V0_1:
            key = (auth_key or "").encode("utf-8")
            parts.append(_pack("<I", len(key)))
            parts.append(key)
        if version.supports_json():
            parts.append(_pack("<I", protocol.magic))
        writer.write(b"".join(parts))
        await writer.drain()

        response = bytearray()
        while True:
            byte = await reader.readexactly(1)
            if byte == b"\0":
                break
            response.extend(byte)
            if len(response) > MAX_HANDSHAKE_RESPONSE:
                raise ProtocolError("Handshake response too long")

        try:
            text = response.decode("utf-8")
        except UnicodeDecodeError as err:
            raise ProtocolError(f"Handshake response is not valid UTF-8: {err}") from err

        if version is ProtocolVersion.V1_0:
            reply = _decode_json(response)
            if not isinstance(reply, dict) or reply.get("success") is not True:
                raise ProtocolError(f"Handshake failed: {text}")
        elif text != "SUCCESS":
            raise ProtocolError(f"Handshake failed: {text}")
        log.info("Client handshake complete")


@dataclass
class QueryMessage:
    """A query and the token that identifies it."""

    token: int
    query: Any


@dataclass
class ResponseMessage:
    """A response to the query with the same token."""

    token: int
    response: Any


async def read_query(reader: _Reader) -> QueryMessage:
    """Read one query: size, token, then the JSON body."""
    size = await _read_u32(reader)
    if size == 0:
        raise ProtocolError("Empty query message")
    if size > MAX_MESSAGE_SIZE:
        raise ProtocolError(f"Query too large: {size} bytes (max: {MAX_MESSAGE_SIZE})")
    token = await _read_i64(reader)
    body = await reader.readexactly(size)
    return QueryMessage(token=token, query=_decode_json(body))


async def write_response(writer: _Writer, msg: ResponseMessage) -> None:
    """Write one response: token, size, then the JSON body."""
    body = _encode_json(msg.response)
    writer.write(_pack("<q", msg.token) + _pack("<I", len(body)) + body)
    await writer.drain()


async def read_response(reader: _Reader) -> ResponseMessage:
    """Read one response: token, size, then the JSON body."""
    token = await _read_i64(reader)
    size = await _read_u32(reader)
    if size > MAX_MESSAGE_SIZE:
        raise ProtocolError(f"Response too large: {size} bytes (max: {MAX_MESSAGE_SIZE})")
    body = await reader.readexactly(size)
    return ResponseMessage(token=token, response=_decode_json(body))


async def write_query(writer: _Writer, msg: QueryMessage) -> None:
    """Write one query: size, token, then the JSON body."""
    body = _encode_json(msg.query)
    writer.write(_pack("<I", len(body)) + _pack("<q", msg.token) + body)
    await writer.drain()