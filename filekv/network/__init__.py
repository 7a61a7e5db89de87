"""Network module for file-kv."""

from .tcp_server import KVServer

__all__ = ["KVServer"]
