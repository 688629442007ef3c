"""Network module for yamemcache."""

from .codec import MetaCodec, open_stream

__all__ = ["MetaCodec", "open_stream"]
