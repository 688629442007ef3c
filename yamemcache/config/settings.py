"""
yamemcache Configuration Settings

Defaults for the client connection helpers and the command line tool.
The codec itself reads no settings.
"""

import os
from dataclasses import dataclass


@dataclass
class Settings:
    """Client configuration settings."""

    # Network settings
    HOST: str = os.environ.get("YAMEMCACHE_HOST", "127.0.0.1")
    PORT: int = int(os.environ.get("YAMEMCACHE_PORT", "11211"))
    CONNECT_TIMEOUT: float = float(os.environ.get("YAMEMCACHE_CONNECT_TIMEOUT", "5.0"))

    # StreamReader limit; also caps the length of a response header line
    READ_BUFFER_SIZE: int = 65536

    # Logging settings
    DEBUG: bool = os.environ.get("YAMEMCACHE_DEBUG", "false").lower() == "true"
    LOG_LEVEL: str = os.environ.get("YAMEMCACHE_LOG_LEVEL", "INFO")


# Global settings instance
settings = Settings()
