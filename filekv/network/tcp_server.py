"""
Async TCP Server Module

This module implements the asynchronous TCP server for file-kv.

Each accepted connection is served by its own coroutine:
    1. Read one request line (bounded size, bounded time)
    2. Parse it with ProtocolParser
    3. Execute it against the FileStore
    4. Write exactly one framed response
    5. Close the connection

At most ``max_connections`` connections are served at the same time;
further connections wait for a free slot. With ``max_connections=1`` the
server handles one client at a time.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..config.settings import settings
from ..errors import FatalSetupError, ProtocolError, StorageError
from ..protocol.commands import Command, CommandType, Response
from ..protocol.parser import ProtocolParser
from ..storage.store import FileStore

logger = logging.getLogger(__name__)


class KVServer:
    """
    Asynchronous TCP server for the file-kv service.

    Usage:
        async with FileStore("data") as store:
            server = KVServer(store, host='0.0.0.0', port=5000)
            await server.start()  # Runs until stop() or cancellation

    Attributes:
        store: The FileStore shared by all connections
        host: Server bind address (e.g., '0.0.0.0')
        port: Server port number; 0 picks a free port, see bound_port
        max_connections: Upper bound on connections served concurrently
        read_timeout: Seconds allowed for the client to send its request
        connection_timeout: Seconds a connection may live in total
        parser: The ProtocolParser for parsing requests
    """

    def __init__(
            self,
            store: FileStore,
            host: str = None,
            port: int = None,
            max_connections: int = None,
            read_timeout: float = None,
            connection_timeout: float = None,
            max_request_size: int = None,
    ):
        self.store = store
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.max_connections = max_connections if max_connections is not None else settings.MAX_CONNECTIONS
        self.read_timeout = read_timeout if read_timeout is not None else settings.READ_TIMEOUT
        self.connection_timeout = (
            connection_timeout if connection_timeout is not None else settings.CONNECTION_TIMEOUT
        )
        self.parser = ProtocolParser()
        if max_request_size is not None:
            self.parser.max_request_size = max_request_size

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._slots: Optional[asyncio.Semaphore] = None
        self._running = False
        self._connection_count = 0
        self._active_connections = 0
        self._total_requests = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Serve a single client connection.

        Errors from one client are logged and never propagate to the
        listener. The writer is always closed.
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1

        try:
            async with self._slots:
                self._active_connections += 1
                logger.debug(f"Client connected: {addr}")
                try:
                    await asyncio.wait_for(
                        self._serve_connection(reader, writer),
                        timeout=self.connection_timeout,
                    )
                finally:
                    self._active_connections -= 1

        except asyncio.TimeoutError:
            logger.warning(f"Connection lifetime exceeded, closing: {addr}")
        except (ConnectionResetError, BrokenPipeError):
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            try:
                writer.close()
                await writer.wait_closed()
            except (ConnectionError, OSError) as exc:
                logger.debug(f"Error closing connection {addr}: {exc}")

    async def _serve_connection(self, reader: StreamReader, writer: StreamWriter) -> None:
        try:
            data = await asyncio.wait_for(self._read_request(reader), timeout=self.read_timeout)
        except asyncio.TimeoutError:
            logger.debug(f"Read timed out: {writer.get_extra_info('peername')}")
            response = Response.error("timeout")
        else:
            response = await self.process_request(data)

        writer.write(self.parser.format_response(response))
        await writer.drain()

    async def _read_request(self, reader: StreamReader) -> bytes:
        """
        Read until a newline, EOF or max_request_size bytes, whichever
        comes first. Data past the first newline is never interpreted.
        """
        limit = self.parser.max_request_size
        data = b""
        while len(data) < limit:
            chunk = await reader.read(limit - len(data))
            if not chunk:
                break
            data += chunk
            if b"\n" in chunk:
                break
        return data

    async def process_request(self, data: bytes) -> Response:
        """
        Turn raw request bytes into a response.

        Protocol errors and storage errors are converted to ERROR
        responses; nothing is raised.
        """
        try:
            command = self.parser.parse_request(data)
        except ProtocolError as exc:
            logger.debug(f"Rejected request {self.parser.extract_line(data)!r}: {exc.reason}")
            return Response.error(exc.reason)

        self._total_requests += 1
        try:
            return await self._execute_command(command)
        except StorageError as exc:
            logger.warning(f"{command.type.value} {command.key!r} failed: {exc.reason}")
            return Response.error(exc.reason)

    async def _execute_command(self, command: Command) -> Response:
        """
        Execute a parsed command on the store.

        Args:
            command: The Command object to execute

        Returns:
            Response object with the result

        Raises:
            StorageError: the store could not complete the operation
        """
        if command.type == CommandType.SET:
            await self.store.put(command.key, command.value)
            return Response.ok()

        if command.type == CommandType.GET:
            value, found = await self.store.get(command.key)
            return Response.value_response(value) if found else Response.not_found()

        if command.type == CommandType.DEL:
            await self.store.delete(command.key)
            return Response.ok()

        return Response.error("unknown command")

    async def listen(self) -> None:
        """
        Bind the listening socket without serving yet.

        Raises:
            FatalSetupError: the address cannot be bound
        """
        if self._server is not None:
            return

        self._slots = asyncio.Semaphore(self.max_connections)
        try:
            self._server = await asyncio.start_server(
                self.handle_client,
                self.host,
                self.port,
                limit=self.parser.max_request_size,
            )
        except OSError as exc:
            raise FatalSetupError(f"cannot listen on {self.host}:{self.port}: {exc.strerror}") from exc

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

    async def start(self) -> None:
        """
        Start the server and serve connections until stop() is called or
        the task is cancelled.

        Example:
            server = KVServer(store, port=5000)
            await server.start()
        """
        if self._running:
            return

        await self.listen()
        self._running = True

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Closes the listener and waits for it to fully shut down.
        """
        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    @property
    def bound_port(self) -> Optional[int]:
        """The port actually bound (useful with port=0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "max_connections": self.max_connections,
            "active_connections": self._active_connections,
            "total_connections": self._connection_count,
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }
