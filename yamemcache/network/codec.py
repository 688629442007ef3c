"""
Meta Protocol Codec

This module performs the request/response exchanges with memcached over
an asyncio stream pair. Each operation:

1. Validates the key(s); no I/O happens for an invalid key
2. Encodes the request and writes it with a single drain
3. Reads the header line with ``readuntil(b"\\n")``
4. Parses the header into a tagged result
5. Reads ``length + 2`` raw bytes when the header announces a payload
6. Builds the result or raises the matching MemcacheError

A header cut short by EOF is a BadServerResponseError; every other
transport error raised by the stream propagates untouched. Nothing is
retried. Callers must not run two operations on the same stream pair
concurrently.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import List, Optional, Sequence, Tuple

from ..protocol.commands import (
    Value,
    encode_delete,
    encode_get_many,
    encode_meta_get,
    encode_meta_set,
    encode_version,
    validate_key,
)
from ..protocol.errors import BadKeyError, BadQueryError, BadServerResponseError
from ..protocol.parser import HeaderStatus, ResponseParser

logger = logging.getLogger(__name__)

LINE_DELIMITER = b"\n"
# Every payload is followed by \r\n
TERMINATOR_LENGTH = 2


class MetaCodec:
    """
    Stateless dispatcher for the memcached meta protocol.

    The codec owns no connection; every method borrows the reader and
    writer passed in for the duration of one round trip.

    Usage:
        reader, writer = await asyncio.open_connection('127.0.0.1', 11211)
        codec = MetaCodec()
        await codec.set(reader, writer, "greeting", Value(b"hello", flags=1))
        value = await codec.get(reader, writer, "greeting")
    """

    parser = ResponseParser()

    @staticmethod
    async def _send(writer: StreamWriter, request: bytes) -> None:
        writer.write(request)
        await writer.drain()

    @staticmethod
    async def _read_header(reader: StreamReader) -> bytes:
        try:
            return await reader.readuntil(LINE_DELIMITER)
        except asyncio.IncompleteReadError as exc:
            # the partial line is discarded unparsed
            logger.error(f"header truncated after {len(exc.partial)} bytes")
            raise BadServerResponseError("truncated header") from exc

    @staticmethod
    async def _read_payload(reader: StreamReader, length: int) -> bytes:
        data = await reader.readexactly(length + TERMINATOR_LENGTH)
        return data[:length]

    @staticmethod
    def _check_key(operation: str, key: str) -> None:
        try:
            validate_key(key)
        except BadKeyError:
            logger.error(f"{operation}: invalid key {key!r}")
            raise

    async def get(
            self,
            reader: StreamReader,
            writer: StreamWriter,
            key: str,
    ) -> Optional[Value]:
        """
        Fetch a single value with ``mg <key> f v``.

        Returns:
            The Value, or None if the key does not exist.

        Raises:
            BadKeyError: invalid key, nothing was sent
            BadServerResponseError: header could not be parsed
        """
        logger.debug(f"get {key}")
        self._check_key("get", key)
        await self._send(writer, encode_meta_get(key))

        header = self.parser.parse_meta_get_header(await self._read_header(reader))
        if header.status is HeaderStatus.MISS:
            logger.debug("get: no key")
            return None
        if header.status is not HeaderStatus.HIT:
            logger.error(f"get: {header.reason}")
            raise BadServerResponseError(header.reason)

        payload = await self._read_payload(reader, header.length)
        logger.debug("get: received data")
        return Value(payload=payload, flags=header.flags)

    async def get_many(
            self,
            reader: StreamReader,
            writer: StreamWriter,
            keys: Sequence[str],
    ) -> List[Tuple[str, Value]]:
        """
        Fetch any number of values with the legacy ``get`` command.

        Returns:
            ``(key, Value)`` pairs in the order the server sent them.
            Keys missing from the list were not found.

        Raises:
            BadKeyError: any key is invalid, nothing was sent
            BadServerResponseError: any record could not be parsed;
                no partial result is returned
        """
        keys = list(keys)
        logger.debug(f"get_many {len(keys)} keys")
        for key in keys:
            self._check_key("get_many", key)
        await self._send(writer, encode_get_many(keys))

        results: List[Tuple[str, Value]] = []
        while True:
            header = self.parser.parse_value_header(await self._read_header(reader))
            if header.status is HeaderStatus.END:
                logger.debug(f"get_many: {len(results)} found")
                return results
            if header.status is not HeaderStatus.HIT:
                logger.error(f"get_many: {header.reason}")
                raise BadServerResponseError(header.reason)

            payload = await self._read_payload(reader, header.length)
            results.append((header.key, Value(payload=payload, flags=header.flags)))

    async def set(
            self,
            reader: StreamReader,
            writer: StreamWriter,
            key: str,
            value: Value,
    ) -> None:
        """
        Store a value with ``ms <key> S<len> T<ttl> F<flags>``.

        ``value.ttl`` of None is sent as T0 (no expiry). CAS is not
        supported; ``value.cas_token`` is ignored.

        Raises:
            BadKeyError: invalid key, nothing was sent
            BadQueryError: the server answered CLIENT_ERROR
            BadServerResponseError: any other reply
        """
        logger.debug(f"set {key}")
        self._check_key("set", key)
        await self._send(writer, encode_meta_set(key, value))

        reply = self.parser.parse_store_reply(await self._read_header(reader))
        if reply.status is HeaderStatus.STORED:
            logger.debug("set: OK")
            return
        if reply.status is HeaderStatus.CLIENT_ERROR:
            logger.debug(f"set: client error {reply.reason}")
            raise BadQueryError(reply.reason)
        logger.error(f"set: {reply.reason}")
        raise BadServerResponseError(reply.reason)

    async def delete(
            self,
            reader: StreamReader,
            writer: StreamWriter,
            key: str,
    ) -> bool:
        """
        Remove a key with ``delete <key>``.

        Returns:
            True if the key was deleted, False if it did not exist.
        """
        logger.debug(f"delete {key}")
        self._check_key("delete", key)
        await self._send(writer, encode_delete(key))

        reply = self.parser.parse_delete_reply(await self._read_header(reader))
        if reply.status is HeaderStatus.DELETED:
            logger.debug("delete: OK")
            return True
        if reply.status is HeaderStatus.NOT_FOUND:
            logger.debug("delete: not found")
            return False
        logger.error(f"delete: {reply.reason}")
        raise BadServerResponseError(reply.reason)

    async def version(self, reader: StreamReader, writer: StreamWriter) -> str:
        """Return the version string reported by the server."""
        await self._send(writer, encode_version())

        reply = self.parser.parse_version_reply(await self._read_header(reader))
        if reply.status is not HeaderStatus.OK:
            logger.error(f"version: {reply.reason}")
            raise BadServerResponseError(reply.reason)
        return reply.version


async def open_stream(
        host: str,
        port: int,
        limit: int,
        timeout: Optional[float] = None,
) -> Tuple[StreamReader, StreamWriter]:
    """Open a TCP stream pair, bounding only the connect by ``timeout``."""
    connect = asyncio.open_connection(host, port, limit=limit)
    if timeout is None:
        return await connect
    return await asyncio.wait_for(connect, timeout)
