"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import time
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator, Dict, Optional, Tuple

from yamemcache.client import Client
from yamemcache.network.codec import MetaCodec
from yamemcache.protocol.parser import ResponseParser


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ResponseParser:
    """Create a ResponseParser instance."""
    return ResponseParser()


@pytest.fixture
def codec() -> MetaCodec:
    """Create a MetaCodec instance."""
    return MetaCodec()


# ============================================================================
# Scripted Stream Fixtures
# ============================================================================

class RecordingWriter:
    """
    Stand-in for StreamWriter that keeps everything written to it.

    Attributes:
        data: All bytes passed to write()
        drains: Number of drain() calls
    """

    def __init__(self):
        self.data = bytearray()
        self.drains = 0
        self.closed = False

    def write(self, data: bytes) -> None:
        self.data.extend(data)

    async def drain(self) -> None:
        self.drains += 1

    def close(self) -> None:
        self.closed = True

    async def wait_closed(self) -> None:
        pass


class FailingWriter(RecordingWriter):
    """Writer whose drain fails as if the peer reset the connection."""

    async def drain(self) -> None:
        raise ConnectionResetError("connection reset by peer")


def scripted_reader(response: bytes) -> asyncio.StreamReader:
    """Create a StreamReader that yields a canned server response, then EOF."""
    reader = asyncio.StreamReader()
    reader.feed_data(response)
    reader.feed_eof()
    return reader


@pytest.fixture
def scripted_stream():
    """
    Factory fixture returning a (reader, writer) pair for a canned response.

    Must be called from inside a running event loop.

    Usage:
        async def test_something(codec, scripted_stream):
            reader, writer = scripted_stream(b"EN\\r\\n")
            assert await codec.get(reader, writer, "key") is None
            assert bytes(writer.data) == b"mg key f v\\r\\n"
    """
    def factory(response: bytes = b"") -> Tuple[asyncio.StreamReader, RecordingWriter]:
        return scripted_reader(response), RecordingWriter()
    return factory


@pytest.fixture
def failing_writer() -> FailingWriter:
    """Create a writer that fails on drain()."""
    return FailingWriter()


# ============================================================================
# Fake Server Fixtures
# ============================================================================

class FakeMemcached:
    """
    In-process server speaking the part of the memcached protocol the
    client uses: mg, ms, get, delete and version.

    Entries are kept as key -> (data, flags, expires_at), where an
    expires_at of 0 means no expiration.
    """

    VERSION = b"1.6.21"

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.entries: Dict[bytes, Tuple[bytes, int, float]] = {}
        self.requests = []
        self._server: Optional[asyncio.Server] = None

    def _lookup(self, key: bytes) -> Optional[Tuple[bytes, int, float]]:
        entry = self.entries.get(key)
        if entry is None:
            return None
        expires_at = entry[2]
        if expires_at and time.time() >= expires_at:
            del self.entries[key]
            return None
        return entry

    async def _meta_set(self, parts, reader: asyncio.StreamReader) -> bytes:
        if len(parts) < 3:
            return b"CLIENT_ERROR bad command line format\r\n"
        key = parts[1]
        size, ttl, flags = None, 0, 0
        for token in parts[2:]:
            if not token[1:].isdigit():
                return b"CLIENT_ERROR bad token in command line format\r\n"
            if token[:1] == b"S":
                size = int(token[1:])
            elif token[:1] == b"T":
                ttl = int(token[1:])
            elif token[:1] == b"F":
                flags = int(token[1:])
        if size is None:
            return b"CLIENT_ERROR bad data chunk\r\n"

        chunk = await reader.readexactly(size + 2)
        if chunk[-2:] != b"\r\n":
            return b"CLIENT_ERROR bad data chunk\r\n"

        expires_at = time.time() + ttl if ttl > 0 else 0
        self.entries[key] = (chunk[:-2], flags, expires_at)
        return b"HD\r\n"

    async def handle_client(
            self,
            reader: asyncio.StreamReader,
            writer: asyncio.StreamWriter
    ) -> None:
        try:
            while True:
                line = await reader.readline()
                if not line:
                    break
                self.requests.append(line)
                parts = line.split()
                command = parts[0] if parts else b""

                if command == b"mg" and len(parts) >= 2:
                    entry = self._lookup(parts[1])
                    if entry is None:
                        response = b"EN\r\n"
                    else:
                        data, flags, _ = entry
                        response = b"VA %d f%d\r\n%s\r\n" % (len(data), flags, data)
                elif command == b"ms":
                    response = await self._meta_set(parts, reader)
                elif command == b"get" and len(parts) >= 2:
                    response = b""
                    for key in parts[1:]:
                        entry = self._lookup(key)
                        if entry is not None:
                            data, flags, _ = entry
                            response += b"VALUE %s %d %d\r\n%s\r\n" % (key, flags, len(data), data)
                    response += b"END\r\n"
                elif command == b"delete" and len(parts) == 2:
                    if self._lookup(parts[1]) is None:
                        response = b"NOT_FOUND\r\n"
                    else:
                        del self.entries[parts[1]]
                        response = b"DELETED\r\n"
                elif command == b"version":
                    response = b"VERSION " + self.VERSION + b"\r\n"
                else:
                    response = b"ERROR\r\n"

                writer.write(response)
                await writer.drain()
        except (ConnectionResetError, asyncio.IncompleteReadError):
            pass
        finally:
            writer.close()

    async def start(self) -> None:
        self._server = await asyncio.start_server(
            self.handle_client, self.host, self.port
        )

    async def stop(self) -> None:
        if self._server is None:
            return
        self._server.close()
        await self._server.wait_closed()
        self._server = None


@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[FakeMemcached, None]:
    """Start a FakeMemcached on a free port and stop it after the test."""
    srv = FakeMemcached('127.0.0.1', server_port)
    await srv.start()

    yield srv

    await srv.stop()


@pytest_asyncio.fixture
async def client(server: FakeMemcached, server_port: int) -> AsyncGenerator[Client, None]:
    """Create a Client connected to the fake server."""
    c = await Client.connect('127.0.0.1', server_port, timeout=5.0)

    yield c

    await c.close()


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that talk to a server over TCP"
    )
