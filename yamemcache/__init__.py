"""
yamemcache: Yet Another Memcached Client

An asyncio client for the memcached meta text protocol that exposes the
client flags stored alongside every value.
"""

from .client import Client
from .network.codec import MetaCodec
from .protocol.commands import Value
from .protocol.errors import (
    BadKeyError,
    BadQueryError,
    BadServerResponseError,
    ErrorKind,
    MemcacheError,
)

__version__ = "0.1.0"

__all__ = [
    "Client",
    "MetaCodec",
    "Value",
    "ErrorKind",
    "MemcacheError",
    "BadKeyError",
    "BadQueryError",
    "BadServerResponseError",
]
