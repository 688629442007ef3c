"""
Response Parser Module

This module turns memcached response header lines into tagged results.
Parsing never raises: every method returns a dataclass whose ``status``
says what the line was, and INVALID results carry a ``reason`` for the
log. The codec decides which statuses become errors.

Response headers handled:
    EN                              meta get miss
    VA <len> f<flags>               meta get hit (payload follows)
    VALUE <key> <flags> <len>       legacy get hit (payload follows)
    END                             legacy get terminator
    HD | OK | CLIENT_ERROR ...      store reply
    DELETED | NOT_FOUND             delete reply
    VERSION <version>               version reply
"""

import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import List, Optional

from .commands import U32_MAX

# space, tab, LF, FF and CR; vertical tab is not a separator
SEPARATOR = re.compile(rb"[ \t\n\x0c\r]+")


class HeaderStatus(Enum):
    """Enumeration of header outcomes."""
    HIT = auto()
    MISS = auto()
    END = auto()
    STORED = auto()
    DELETED = auto()
    NOT_FOUND = auto()
    CLIENT_ERROR = auto()
    OK = auto()
    INVALID = auto()


@dataclass
class MetaGetHeader:
    """
    Parsed ``mg`` response header.

    Attributes:
        status: HIT, MISS or INVALID
        length: Payload length in bytes (HIT only)
        flags: Client flags (HIT only)
        reason: Why the header was rejected (INVALID only)
    """
    status: HeaderStatus
    length: int = 0
    flags: int = 0
    reason: str = ""

    @classmethod
    def invalid(cls, reason: str) -> "MetaGetHeader":
        return cls(status=HeaderStatus.INVALID, reason=reason)


@dataclass
class ValueHeader:
    """
    Parsed ``get`` response record header.

    Attributes:
        status: HIT, END or INVALID
        key: Key echoed by the server (HIT only)
        flags: Client flags (HIT only)
        length: Payload length in bytes (HIT only)
        reason: Why the header was rejected (INVALID only)
    """
    status: HeaderStatus
    key: str = ""
    flags: int = 0
    length: int = 0
    reason: str = ""

    @classmethod
    def invalid(cls, reason: str) -> "ValueHeader":
        return cls(status=HeaderStatus.INVALID, reason=reason)


@dataclass
class Reply:
    """Parsed single-line reply to a store or delete request."""
    status: HeaderStatus
    reason: str = ""


@dataclass
class VersionReply:
    """Parsed reply to a version request."""
    status: HeaderStatus
    version: str = ""
    reason: str = ""


def _parse_decimal(token: bytes, limit: Optional[int] = None) -> Optional[int]:
    # bytes.isdigit() is ASCII-only, so signs, underscores and
    # non-ASCII digits are all refused
    if not token or not token.isdigit():
        return None
    number = int(token)
    if limit is not None and number > limit:
        return None
    return number


class ResponseParser:
    """
    Parser for memcached response header lines.

    The parser holds no state; one instance can serve any number of
    streams. Every ``parse_*`` method accepts a raw header line as read
    from the stream, terminator included or already stripped.
    """

    @staticmethod
    def strip_line_ending(line: bytes) -> bytes:
        """
        Remove the trailing ``\\n`` and a preceding ``\\r`` if present.

        Examples:
            >>> ResponseParser.strip_line_ending(b"END\\r\\n")
            b'END'
            >>> ResponseParser.strip_line_ending(b"END\\n")
            b'END'
        """
        if line.endswith(b"\n"):
            line = line[:-1]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def _tokenize(self, line: bytes) -> Optional[List[bytes]]:
        """Split a header on runs of ASCII whitespace.

        Returns None when the header is not valid UTF-8.
        """
        line = self.strip_line_ending(line)
        try:
            line.decode("utf-8")
        except UnicodeDecodeError:
            return None
        return [token for token in SEPARATOR.split(line) if token]

    def parse_meta_get_header(self, line: bytes) -> MetaGetHeader:
        """
        Parse the header of an ``mg <key> f v`` response.

        Format:
            EN
            VA <length> f<flags>

        Examples:
            >>> ResponseParser().parse_meta_get_header(b"VA 4 f33\\r\\n")
            MetaGetHeader(status=<HeaderStatus.HIT: 1>, length=4, flags=33, reason='')
        """
        tokens = self._tokenize(line)
        if tokens is None:
            return MetaGetHeader.invalid("non-UTF-8 response")
        if not tokens:
            return MetaGetHeader.invalid("empty response")

        command = tokens[0]
        if command == b"EN":
            return MetaGetHeader(status=HeaderStatus.MISS)
        if command != b"VA":
            return MetaGetHeader.invalid(f"unexpected response {command!r}")

        length = _parse_decimal(tokens[1]) if len(tokens) > 1 else None
        if length is None:
            return MetaGetHeader.invalid("bad data length")

        flags = None
        if len(tokens) > 2 and tokens[2].startswith(b"f"):
            flags = _parse_decimal(tokens[2][1:], U32_MAX)
        if flags is None:
            return MetaGetHeader.invalid("missing flags")

        if len(tokens) > 3:
            return MetaGetHeader.invalid("header too long")

        return MetaGetHeader(status=HeaderStatus.HIT, length=length, flags=flags)

    def parse_value_header(self, line: bytes) -> ValueHeader:
        """
        Parse one record header of a legacy ``get`` response.

        Format:
            VALUE <key> <flags> <length>
            END
        """
        line = self.strip_line_ending(line)
        if line == b"END":
            return ValueHeader(status=HeaderStatus.END)

        tokens = self._tokenize(line)
        if tokens is None:
            return ValueHeader.invalid("non-UTF-8 response")
        if not tokens:
            return ValueHeader.invalid("empty response")
        if tokens[0] != b"VALUE":
            return ValueHeader.invalid(f"unexpected response {tokens[0]!r}")
        if len(tokens) < 2:
            return ValueHeader.invalid("missing key")

        flags = _parse_decimal(tokens[2], U32_MAX) if len(tokens) > 2 else None
        if flags is None:
            return ValueHeader.invalid("bad flags")

        length = _parse_decimal(tokens[3]) if len(tokens) > 3 else None
        if length is None:
            return ValueHeader.invalid("bad data length")

        if len(tokens) > 4:
            return ValueHeader.invalid("header too long")

        return ValueHeader(
            status=HeaderStatus.HIT,
            key=tokens[1].decode("utf-8"),
            flags=flags,
            length=length,
        )

    def parse_store_reply(self, line: bytes) -> Reply:
        """
        Classify the reply to an ``ms`` request by its first token.

        HD and OK mean stored, CLIENT_ERROR means the server rejected the
        request, anything else is INVALID.
        """
        tokens = self._tokenize(line)
        if tokens is None:
            return Reply(status=HeaderStatus.INVALID, reason="non-UTF-8 response")
        if not tokens:
            return Reply(status=HeaderStatus.INVALID, reason="empty response")

        command = tokens[0]
        if command in (b"HD", b"OK"):
            return Reply(status=HeaderStatus.STORED)
        if command == b"CLIENT_ERROR":
            detail = b" ".join(tokens[1:]).decode("utf-8")
            return Reply(status=HeaderStatus.CLIENT_ERROR, reason=detail)
        return Reply(
            status=HeaderStatus.INVALID,
            reason=f"unexpected response {command!r}",
        )

    def parse_delete_reply(self, line: bytes) -> Reply:
        """Compare the reply to ``delete`` verbatim against DELETED / NOT_FOUND."""
        line = self.strip_line_ending(line)
        if line == b"DELETED":
            return Reply(status=HeaderStatus.DELETED)
        if line == b"NOT_FOUND":
            return Reply(status=HeaderStatus.NOT_FOUND)
        return Reply(
            status=HeaderStatus.INVALID,
            reason=f"unexpected response {line!r}",
        )

    def parse_version_reply(self, line: bytes) -> VersionReply:
        """
        Parse ``VERSION <version>``.

        Surrounding whitespace is trimmed first; the prefix must be
        followed by at least one more character.

        Examples:
            >>> ResponseParser().parse_version_reply(b"VERSION 1.6.21\\r\\n").version
            '1.6.21'
        """
        prefix = b"VERSION "
        line = line.strip()
        if len(line) > len(prefix) and line.startswith(prefix):
            try:
                version = line[len(prefix):].decode("utf-8")
            except UnicodeDecodeError:
                return VersionReply(
                    status=HeaderStatus.INVALID, reason="non-UTF-8 response"
                )
            return VersionReply(status=HeaderStatus.OK, version=version)
        return VersionReply(
            status=HeaderStatus.INVALID,
            reason=f"unexpected response {line!r}",
        )
