"""
Protocol Parser Module

This module handles parsing of raw request lines and framing of responses.
"""

import re

from .commands import Command, CommandType, Response, ResponseStatus
from ..config.settings import settings
from ..errors import ProtocolError

# command, key, and everything after the single separator that follows the key
_REQUEST_RE = re.compile(rb"[ \t]*([^ \t]+)(?:[ \t]+([^ \t]+)(?:[ \t](.*))?)?", re.DOTALL)


class ProtocolParser:
    """
    Parser for the file-kv text protocol.

    Protocol Format:
        Request:  <COMMAND> <key> [value...]\n   (one per connection)
        Response: <STATUS>\n[value\n]

    Commands:
        SET <key> <value...>  -> OK
        GET <key>             -> OK\n<value> | NOTFOUND
        DEL <key>             -> OK

    Errors:
        ERROR invalid command   command or key missing
        ERROR unknown command   command token is not SET, GET or DEL
        ERROR invalid encoding  key is not valid UTF-8
        ERROR <reason>          storage failure

    Constraints:
        - Commands are case-sensitive
        - Keys contain no whitespace
        - The SET value is the rest of the line after the key, verbatim
        - Only the first line of a request is considered
    """

    def __init__(self):
        """Initialize the parser with constraints from settings."""
        self.max_request_size = settings.MAX_REQUEST_SIZE

    @staticmethod
    def extract_line(data: bytes) -> bytes:
        """Return the first line of data without its terminator."""
        line = data.split(b"\n", 1)[0]
        if line.endswith(b"\r"):
            line = line[:-1]
        return line

    def parse_request(self, data: bytes) -> Command:
        """
        Parse a raw request into a Command object.

        Args:
            data: Raw request bytes (may include the newline and anything
                  after it, which is ignored)

        Returns:
            The parsed Command

        Raises:
            ProtocolError: the request is malformed or the command unknown

        Examples:
            >>> parser = ProtocolParser()
            >>> cmd = parser.parse_request(b"SET greeting hello world\\n")
            >>> cmd.type == CommandType.SET
            True
            >>> cmd.key
            'greeting'
            >>> cmd.value
            b'hello world'
        """
        line = self.extract_line(data)
        match = _REQUEST_RE.match(line)
        if match is None or match.group(2) is None:
            raise ProtocolError("invalid command")

        command_token, key_token, value = match.groups()

        try:
            command_type = CommandType(command_token.decode("ascii"))
        except (UnicodeDecodeError, ValueError):
            raise ProtocolError("unknown command")

        try:
            key = key_token.decode("utf-8")
        except UnicodeDecodeError:
            raise ProtocolError("invalid encoding")

        if command_type != CommandType.SET:
            value = None

        return Command(type=command_type, key=key, value=value or b"", raw=line)

    def format_response(self, response: Response) -> bytes:
        """
        Frame a Response object for the wire.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_response(Response.ok())
            b'OK\\n'
            >>> parser.format_response(Response.value_response(b"hello"))
            b'OK\\nhello\\n'
            >>> parser.format_response(Response.not_found())
            b'NOTFOUND\\n'
            >>> parser.format_response(Response.error("unknown command"))
            b'ERROR unknown command\\n'
        """
        if response.status == ResponseStatus.ERROR:
            return f"ERROR {response.message}\n".encode()

        head = response.status.value.encode() + b"\n"
        if response.value is not None:
            return head + response.value + b"\n"
        return head

    def parse_response(self, data: bytes) -> Response:
        """
        Decode a complete response as read by a client until EOF.

        Raises:
            ProtocolError: data is not a valid response
        """
        if data == b"OK\n":
            return Response.ok()
        if data.startswith(b"OK\n") and data.endswith(b"\n"):
            return Response.value_response(data[3:-1])
        if data == b"NOTFOUND\n":
            return Response.not_found()
        if data.startswith(b"ERROR ") and data.endswith(b"\n"):
            return Response.error(data[6:-1].decode("utf-8", errors="replace"))
        raise ProtocolError("invalid response")
