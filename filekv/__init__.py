"""
file-kv: File-Backed Key-Value Store

A small key-value server built with Python asyncio. Clients send one text
command (SET, GET or DEL) per TCP connection; every record is persisted
as its own file in a data directory.
"""

__version__ = "1.0.0"
