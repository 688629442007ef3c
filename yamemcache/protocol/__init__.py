"""Protocol module for yamemcache."""

from .commands import Value, check_key_invalid, validate_key
from .errors import (
    BadKeyError,
    BadQueryError,
    BadServerResponseError,
    ErrorKind,
    MemcacheError,
)
from .parser import HeaderStatus, ResponseParser

__all__ = [
    "Value",
    "check_key_invalid",
    "validate_key",
    "ErrorKind",
    "MemcacheError",
    "BadKeyError",
    "BadQueryError",
    "BadServerResponseError",
    "HeaderStatus",
    "ResponseParser",
]
