"""
Request Definitions

This module defines the value model exchanged with memcached, key
validation, and the encoders that turn each operation into wire bytes.

Wire formats:
    mg <key> f v\r\n                           fetch one (meta get)
    get <key1> <key2> ...\r\n                  fetch many (legacy get)
    ms <key> S<len> T<ttl> F<flags>\r\n<data>\r\n  store (meta set)
    delete <key>\r\n
    version\r\n
"""

from dataclasses import dataclass, replace
from typing import Iterable, Optional

from .errors import BadKeyError

CRLF = b"\r\n"
U32_MAX = 0xFFFFFFFF


def _check_u32(name: str, number: Optional[int], optional: bool = True) -> None:
    if number is None:
        if optional:
            return
        raise TypeError(f"{name} is required")
    if isinstance(number, bool) or not isinstance(number, int):
        raise TypeError(f"{name} must be an int, got {type(number).__name__}")
    if not 0 <= number <= U32_MAX:
        raise ValueError(f"{name} must fit in an unsigned 32-bit integer: {number}")


@dataclass(frozen=True)
class Value:
    """
    Data stored in or read back from memcached.

    Attributes:
        payload: Raw bytes, no encoding assumed
        flags: Opaque 32-bit tag, returned verbatim on reads
        ttl: Seconds until expiry; None asks for no explicit expiry
            (memcached may still evict under memory pressure)
        cas_token: Compare-and-swap token. Carried but never sent.
    """
    payload: bytes
    flags: int = 0
    ttl: Optional[int] = None
    cas_token: Optional[int] = None

    def __post_init__(self):
        if isinstance(self.payload, (bytearray, memoryview)):
            object.__setattr__(self, "payload", bytes(self.payload))
        elif not isinstance(self.payload, bytes):
            raise TypeError(
                f"payload must be bytes, got {type(self.payload).__name__}"
            )
        _check_u32("flags", self.flags, optional=False)
        _check_u32("ttl", self.ttl)
        _check_u32("cas_token", self.cas_token)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Value":
        """Create a value with zero flags and no expiry."""
        return cls(payload=data)

    def with_flags(self, flags: int) -> "Value":
        return replace(self, flags=flags)

    def with_ttl(self, ttl: Optional[int]) -> "Value":
        return replace(self, ttl=ttl)

    def with_cas(self, cas_token: Optional[int]) -> "Value":
        return replace(self, cas_token=cas_token)

    def __len__(self) -> int:
        return len(self.payload)


def check_key_invalid(key: str) -> bool:
    """
    Return True if the key cannot be sent to memcached.

    Every byte of the UTF-8 encoded key must be printable ASCII
    (33..126). Control characters, space and anything non-ASCII are
    rejected.

    Examples:
        >>> check_key_invalid("user:1")
        False
        >>> check_key_invalid("user 1")
        True
    """
    for b in key.encode("utf-8"):
        if b <= 32 or b >= 127:
            return True
    return False


def validate_key(key: str) -> None:
    """Raise BadKeyError if the key is not sendable."""
    if not isinstance(key, str) or check_key_invalid(key):
        raise BadKeyError(f"invalid key: {key!r}")


def encode_meta_get(key: str) -> bytes:
    """Meta get asking for flags and value back."""
    return f"mg {key} f v".encode("ascii") + CRLF


def encode_get_many(keys: Iterable[str]) -> bytes:
    parts = ["get"]
    parts.extend(keys)
    return " ".join(parts).encode("ascii") + CRLF


def encode_meta_set(key: str, value: Value) -> bytes:
    """
    Meta set header, payload and terminator as a single buffer.

    An absent ttl is sent as T0, which memcached reads as "never expire".
    The CAS token is not transmitted.
    """
    ttl = value.ttl if value.ttl is not None else 0
    header = f"ms {key} S{len(value.payload)} T{ttl} F{value.flags}".encode("ascii")
    return b"".join((header, CRLF, value.payload, CRLF))


def encode_delete(key: str) -> bytes:
    return f"delete {key}".encode("ascii") + CRLF


def encode_version() -> bytes:
    return b"version" + CRLF
