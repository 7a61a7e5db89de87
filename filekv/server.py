#!/usr/bin/env python3
"""
file-kv Server Entry Point

This is the main entry point for starting the file-kv server.

Usage:
    python -m filekv.server                       # Default settings (0.0.0.0:5000, ./data)
    python -m filekv.server --port 8080           # Custom port
    python -m filekv.server --data-dir /var/kv    # Custom data directory
    python -m filekv.server --max-connections 1   # One client at a time
    python -m filekv.server --debug               # Enable debug logging

Environment Variables:
    FILE_KV_HOST                - Server bind address
    FILE_KV_PORT                - Server port
    FILE_KV_DATA_DIR            - Directory holding one file per key
    FILE_KV_MAX_CONNECTIONS     - Connections served concurrently
    FILE_KV_READ_TIMEOUT        - Seconds to wait for the request line
    FILE_KV_CONNECTION_TIMEOUT  - Maximum lifetime of a connection
    FILE_KV_STRICT_VALUES       - Report oversized values instead of truncating
    FILE_KV_FSYNC               - fsync values before replacing records
    FILE_KV_DEBUG               - Enable debug mode (true/false)
    FILE_KV_LOG_LEVEL           - Log level when not in debug mode
"""

import argparse
import asyncio
import logging
import signal
import sys

from .config.settings import settings
from .errors import FatalSetupError
from .network.tcp_server import KVServer
from .storage.store import FileStore

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="file-kv: File-Backed Key-Value Store Server",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    parser.add_argument(
        "--host",
        type=str,
        default=settings.HOST,
        help="Host address to bind to",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=settings.PORT,
        help="Port number to listen on",
    )

    parser.add_argument(
        "--data-dir",
        type=str,
        default=settings.DATA_DIR,
        help="Directory where records are stored",
    )

    parser.add_argument(
        "--max-connections",
        type=int,
        default=settings.MAX_CONNECTIONS,
        help="Maximum number of connections served at once",
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        default=settings.READ_TIMEOUT,
        help="Seconds to wait for a client's request line",
    )

    parser.add_argument(
        "--connection-timeout",
        type=float,
        default=settings.CONNECTION_TIMEOUT,
        help="Maximum lifetime of a connection in seconds",
    )

    parser.add_argument(
        "--strict-values",
        action="store_true",
        default=settings.STRICT_VALUES,
        help=f"Answer 'ERROR value too large' for values over {settings.MAX_VALUE_SIZE} bytes "
             "instead of truncating them",
    )

    parser.add_argument(
        "--no-fsync",
        dest="fsync",
        action="store_false",
        default=settings.FSYNC,
        help="Do not fsync values before replacing records",
    )

    parser.add_argument(
        "--debug",
        action="store_true",
        default=settings.DEBUG,
        help="Enable debug logging",
    )

    args = parser.parse_args(argv)
    if args.max_connections < 1:
        parser.error("--max-connections must be at least 1")
    return args


def setup_logging(debug: bool = False) -> None:
    """Configure logging based on debug flag."""
    level = logging.DEBUG if debug else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
        ]
    )


async def serve(args: argparse.Namespace) -> None:
    """
    Open the store, run the server until a shutdown signal arrives, then
    close everything in reverse order.

    Raises:
        FatalSetupError: the data directory or the listener is unusable
    """
    store = FileStore(
        data_dir=args.data_dir,
        strict_values=args.strict_values,
        fsync=args.fsync,
    )

    async with store:
        server = KVServer(
            store,
            host=args.host,
            port=args.port,
            max_connections=args.max_connections,
            read_timeout=args.read_timeout,
            connection_timeout=args.connection_timeout,
        )
        await server.listen()

        loop = asyncio.get_running_loop()
        server_task = asyncio.create_task(server.start())

        def shutdown(sig: signal.Signals) -> None:
            """Handle shutdown signal."""
            logger.info(f"Received signal {sig.name}, initiating shutdown...")
            server_task.cancel()

        # Register signal handlers (Unix only)
        if sys.platform != 'win32':
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, shutdown, sig)

        try:
            await server_task
        finally:
            await server.stop()


def main(argv=None) -> None:
    """Main entry point for the server."""
    args = parse_args(argv)

    # Setup logging
    setup_logging(debug=args.debug)

    # Log startup info
    logger.info("Starting file-kv server")
    logger.info(f"  Host: {args.host}")
    logger.info(f"  Port: {args.port}")
    logger.info(f"  Data dir: {args.data_dir}")
    logger.info(f"  Max connections: {args.max_connections}")
    logger.info(f"  Strict values: {args.strict_values}")
    logger.info(f"  Debug: {args.debug}")

    try:
        asyncio.run(serve(args))
    except FatalSetupError as exc:
        logger.critical(f"Startup failed: {exc.reason}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Keyboard interrupt received")
    finally:
        logger.info("Server shutdown complete")


if __name__ == "__main__":
    main()
