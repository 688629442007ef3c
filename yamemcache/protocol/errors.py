"""
Error Taxonomy

Exceptions raised by the codec. Transport failures (``OSError``,
``asyncio.IncompleteReadError`` and friends) are never wrapped; they reach
the caller exactly as the stream raised them.
"""

from enum import Enum


class ErrorKind(Enum):
    """Enumeration of protocol-level failure kinds."""
    BAD_KEY = "bad key"
    BAD_SERVER_RESPONSE = "bad server response"
    BAD_QUERY = "bad query"


class MemcacheError(Exception):
    """Base class for every protocol-level failure."""

    kind: ErrorKind

    def __init__(self, message: str = ""):
        super().__init__(message or self.kind.value)
        self.message = message or self.kind.value


class BadKeyError(MemcacheError):
    """The key contains a control character, a space or a non-ASCII byte.

    Raised before anything is written to the stream.
    """
    kind = ErrorKind.BAD_KEY


class BadServerResponseError(MemcacheError):
    """The server sent something the codec cannot parse.

    The stream framing is no longer trustworthy after this error.
    """
    kind = ErrorKind.BAD_SERVER_RESPONSE


class BadQueryError(MemcacheError):
    """The server understood the request and rejected it (CLIENT_ERROR)."""
    kind = ErrorKind.BAD_QUERY
