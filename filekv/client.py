#!/usr/bin/env python3
"""
file-kv Client

A small blocking client for the file-kv server. The server answers one
command per connection, so every request opens a fresh connection.

Usage:
    file-kv-client                          # Interactive prompt, localhost:5000
    file-kv-client SET greeting hello world # Send one command and exit
    file-kv-client --host 1.2.3.4 GET key   # Specific host
    file-kv-client --port 8080              # Specific port

Commands:
    SET <key> <value...>   - Store a value
    GET <key>              - Retrieve a value
    DEL <key>              - Delete a key
    help                   - Show this help
    exit                   - Exit client
"""

import argparse
import socket
import sys
from typing import Optional

from .config.settings import settings
from .errors import ProtocolError, StorageError
from .protocol.commands import Response, ResponseStatus
from .protocol.parser import ProtocolParser

# Enable command history with arrow keys (works on Unix systems)
try:
    import readline  # noqa: F401
except ImportError:
    pass  # readline not available on Windows by default


class KVClient:
    """Simple TCP client for file-kv."""

    def __init__(self, host: str = "127.0.0.1", port: int = None, timeout: float = 5.0):
        self.host = host
        self.port = port if port is not None else settings.PORT
        self.timeout = timeout
        self.parser = ProtocolParser()

    def send_raw(self, request: bytes) -> bytes:
        """Send one request and return everything the server wrote before closing."""
        if not request.endswith(b"\n"):
            request += b"\n"

        with socket.create_connection((self.host, self.port), timeout=self.timeout) as sock:
            sock.sendall(request)
            chunks = []
            while True:
                chunk = sock.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def request(self, request: bytes) -> Response:
        """Send one request and decode the response."""
        return self.parser.parse_response(self.send_raw(request))

    def set(self, key: str, value: bytes = b"") -> None:
        """
        Store value under key.

        Raises:
            StorageError: the server answered with an error
        """
        response = self.request(b"SET " + key.encode() + b" " + value)
        self._raise_for_error(response)

    def get(self, key: str) -> Optional[bytes]:
        """Return the value for key, or None if it does not exist."""
        response = self.request(b"GET " + key.encode())
        self._raise_for_error(response)
        if response.status == ResponseStatus.NOTFOUND:
            return None
        return response.value if response.value is not None else b""

    def delete(self, key: str) -> None:
        """Delete key (missing keys are not an error)."""
        response = self.request(b"DEL " + key.encode())
        self._raise_for_error(response)

    @staticmethod
    def _raise_for_error(response: Response) -> None:
        if response.is_error:
            raise StorageError(response.message)


def print_help():
    """Print help message."""
    print("""
file-kv Commands:
-----------------
  SET <key> <value...>      Store a value (everything after the key)
  GET <key>                 Retrieve the value for a key
  DEL <key>                 Delete a key

Client Commands:
----------------
  help                      Show this help message
  exit                      Exit the client

Examples:
---------
  SET greeting hello world  Store "hello world" under "greeting"
  GET greeting              Get value for "greeting"
  DEL greeting              Delete "greeting"
""")


def send_and_print(client: KVClient, line: str) -> bool:
    """Send one command line and print the raw response. Returns success."""
    try:
        raw = client.send_raw(line.encode())
    except socket.timeout:
        print("ERROR: Request timed out")
        return False
    except OSError as e:
        print(f"ERROR: {e}")
        return False

    sys.stdout.write(raw.decode("utf-8", errors="replace"))
    sys.stdout.flush()
    try:
        return not client.parser.parse_response(raw).is_error
    except ProtocolError:
        return False


def interactive(client: KVClient) -> None:
    """Run the interactive prompt."""
    print(f"file-kv client connected to {client.host}:{client.port}")
    print("Type 'help' for available commands, 'exit' to quit.")

    while True:
        try:
            line = input("kv> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        stripped = line.strip()
        if not stripped:
            continue
        if stripped.lower() in ("exit", "quit"):
            break
        if stripped.lower() == "help":
            print_help()
            continue

        send_and_print(client, line)


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description="file-kv client")
    parser.add_argument("--host", default="127.0.0.1", help="Server host")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Server port")
    parser.add_argument("--timeout", type=float, default=5.0, help="Socket timeout in seconds")
    parser.add_argument("command", nargs=argparse.REMAINDER, help="Command to send, e.g. GET key")
    args = parser.parse_args(argv)

    client = KVClient(args.host, args.port, timeout=args.timeout)

    if args.command:
        ok = send_and_print(client, " ".join(args.command))
        sys.exit(0 if ok else 1)

    interactive(client)


if __name__ == "__main__":
    main()
