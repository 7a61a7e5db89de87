"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from filekv.network.tcp_server import KVServer
from filekv.protocol.parser import ProtocolParser
from filekv.storage.store import FileStore


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def data_dir(tmp_path):
    """A fresh, not yet existing data directory."""
    return tmp_path / "data"


@pytest_asyncio.fixture
async def store(data_dir) -> AsyncGenerator[FileStore, None]:
    """Create an opened FileStore in a temporary directory (fsync off for speed)."""
    s = FileStore(data_dir=str(data_dir), fsync=False)
    await s.open()
    yield s
    await s.close()


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


async def start_server(srv: KVServer):
    """Bind srv and serve it from a background task."""
    await srv.listen()
    task = asyncio.create_task(srv.start())
    await asyncio.sleep(0)
    return task


async def stop_server(srv: KVServer, task) -> None:
    await srv.stop()
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


@pytest_asyncio.fixture
async def server(store: FileStore, server_port: int) -> AsyncGenerator[KVServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a KVServer on a random free port backed by the store fixture
    2. Starts it in a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = KVServer(
        store,
        host='127.0.0.1',
        port=server_port,
        read_timeout=2,
        connection_timeout=5,
    )
    task = await start_server(srv)

    yield srv

    await stop_server(srv, task)


@pytest_asyncio.fixture
async def server_factory(store: FileStore):
    """
    Factory fixture for servers with non-default options.

    Usage:
        async def test_something(server_factory, client_factory):
            srv = await server_factory(max_connections=1)
            client = client_factory(srv.port)
    """
    started = []

    async def factory(**kwargs) -> KVServer:
        kwargs.setdefault("host", "127.0.0.1")
        kwargs.setdefault("port", find_free_port())
        srv = KVServer(kwargs.pop("store", store), **kwargs)
        task = await start_server(srv)
        started.append((srv, task))
        return srv

    yield factory

    for srv, task in started:
        await stop_server(srv, task)


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper for talking to the server in tests.

    Every request opens its own connection, sends the bytes as-is (a
    newline is added if missing) and returns everything the server wrote
    before closing.

    Usage:
        client = AsyncClient('127.0.0.1', 5000)
        assert await client.request("SET key value") == b"OK\\n"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port

    async def request(self, command, add_newline: bool = True) -> bytes:
        if isinstance(command, str):
            command = command.encode()
        if add_newline and not command.endswith(b"\n"):
            command += b"\n"

        reader, writer = await asyncio.open_connection(self.host, self.port)
        try:
            writer.write(command)
            await writer.drain()
            return await reader.read()
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError:
                pass


@pytest.fixture
def client(server_port: int) -> AsyncClient:
    """
    Client bound to the server fixture's port.

    Usage:
        async def test_something(server, client):
            assert await client.request("GET key") == b"NOTFOUND\\n"
    """
    return AsyncClient('127.0.0.1', server_port)


@pytest.fixture
def client_factory():
    """Factory fixture to create test clients for a given port."""
    def factory(port: int) -> AsyncClient:
        return AsyncClient('127.0.0.1', port)
    return factory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
