"""
Protocol Command and Response Definitions

This module defines the data structures for protocol commands and responses.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class CommandType(Enum):
    """Supported commands. Values are the exact, case-sensitive wire tokens."""
    SET = "SET"
    GET = "GET"
    DEL = "DEL"


class ResponseStatus(Enum):
    """Enumeration of response statuses."""
    OK = "OK"
    NOTFOUND = "NOTFOUND"
    ERROR = "ERROR"


@dataclass
class Command:
    """
    Represents a parsed protocol command.

    Attributes:
        type: SET, GET or DEL
        key: The record key
        value: The value for SET (empty when absent, unused otherwise)
        raw: The request line as received, without the line terminator
    """
    type: CommandType
    key: str
    value: bytes = b""
    raw: bytes = b""


@dataclass
class Response:
    """
    Represents a protocol response.

    Attributes:
        status: OK, NOTFOUND or ERROR
        message: Error reason (ERROR responses only)
        value: The value returned by GET; None for every other response
    """
    status: ResponseStatus
    message: str = ""
    value: Optional[bytes] = None

    @classmethod
    def ok(cls) -> "Response":
        """Create a bare OK response (SET, DEL)."""
        return cls(status=ResponseStatus.OK)

    @classmethod
    def value_response(cls, value: bytes) -> "Response":
        """Create a GET response carrying a value."""
        return cls(status=ResponseStatus.OK, value=value)

    @classmethod
    def not_found(cls) -> "Response":
        """Create the GET response for a missing key."""
        return cls(status=ResponseStatus.NOTFOUND)

    @classmethod
    def error(cls, message: str) -> "Response":
        """Create an error response."""
        return cls(status=ResponseStatus.ERROR, message=message)

    @property
    def is_error(self) -> bool:
        return self.status == ResponseStatus.ERROR
