"""
Memcached Client

Binds one asyncio stream pair to the meta protocol codec.

Usage:
    async with await Client.connect('127.0.0.1', 11211) as client:
        await client.set("hello", Value(b"world", flags=7))
        value = await client.get("hello")
"""

import logging
from asyncio import StreamReader, StreamWriter
from typing import List, Optional, Sequence, Tuple

from .config.settings import settings
from .network.codec import MetaCodec, open_stream
from .protocol.commands import Value

logger = logging.getLogger(__name__)


class Client:
    """
    Memcached client over a single long-lived connection.

    The client does no locking and keeps one request in flight at a time;
    share it between tasks only behind a lock of your own. After a
    transport error or a BadServerResponseError the stream position is
    unknown and the client should be closed.

    Attributes:
        reader: StreamReader the responses are read from
        writer: StreamWriter the requests are written to
        codec: The MetaCodec doing the protocol work
    """

    def __init__(
            self,
            reader: StreamReader,
            writer: StreamWriter,
            codec: Optional[MetaCodec] = None,
    ):
        self.reader = reader
        self.writer = writer
        self.codec = codec if codec is not None else MetaCodec()

    @classmethod
    async def connect(
            cls,
            host: Optional[str] = None,
            port: Optional[int] = None,
            timeout: Optional[float] = None,
    ) -> "Client":
        """
        Open a TCP connection and return a client bound to it.

        Args:
            host: Server address (default from settings)
            port: Server port (default from settings)
            timeout: Seconds allowed for the connect (default from settings)
        """
        host = host if host is not None else settings.HOST
        port = port if port is not None else settings.PORT
        timeout = timeout if timeout is not None else settings.CONNECT_TIMEOUT

        reader, writer = await open_stream(
            host, port, limit=settings.READ_BUFFER_SIZE, timeout=timeout
        )
        logger.debug(f"Connected to {host}:{port}")
        return cls(reader, writer)

    async def close(self) -> None:
        """Close the underlying stream."""
        self.writer.close()
        await self.writer.wait_closed()

    async def get(self, key: str) -> Optional[Value]:
        """Return the value stored under key, or None if not found."""
        return await self.codec.get(self.reader, self.writer, key)

    async def get_many(self, keys: Sequence[str]) -> List[Tuple[str, Value]]:
        """
        Return ``(key, Value)`` pairs for the keys that were found.

        A key absent from the result does not exist on the server.
        """
        return await self.codec.get_many(self.reader, self.writer, keys)

    async def set(self, key: str, value: Value) -> None:
        """Store value under key. ``value.ttl`` of None means no expiry."""
        await self.codec.set(self.reader, self.writer, key, value)

    async def delete(self, key: str) -> bool:
        """Delete key; return False if it did not exist."""
        return await self.codec.delete(self.reader, self.writer, key)

    async def version(self) -> str:
        return await self.codec.version(self.reader, self.writer)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
