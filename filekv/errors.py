"""
Error Types

Every error carries a short ``reason`` tag. Recoverable errors are
answered to the client as ``ERROR <reason>``; ``FatalSetupError`` ends
the process at startup.
"""


class FileKVError(Exception):
    """Base class for all file-kv errors."""

    default_reason = "internal error"

    def __init__(self, reason: str = None):
        self.reason = reason or self.default_reason
        super().__init__(self.reason)


class ProtocolError(FileKVError):
    """Malformed or unrecognized request line."""

    default_reason = "invalid command"


class StorageError(FileKVError):
    """The backing store could not complete an operation."""

    default_reason = "storage failure"


class InvalidKeyError(StorageError):
    """The key cannot be mapped to a storage location."""

    default_reason = "invalid key"


class ValueTooLargeError(StorageError):
    """A stored value exceeds the read ceiling (strict mode only)."""

    default_reason = "value too large"


class FatalSetupError(FileKVError):
    """Startup failed: the listener or the data directory is unusable."""

    default_reason = "setup failed"
