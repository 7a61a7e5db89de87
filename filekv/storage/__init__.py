"""Storage module for file-kv."""

from .keys import decode_key, encode_key
from .store import FileStore

__all__ = ["FileStore", "decode_key", "encode_key"]
