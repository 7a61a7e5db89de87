"""
File-Backed Key-Value Store

Each record lives in its own file inside the data directory; the file
name is the percent-encoded key (see ``keys.py``) and the file content is
the value.

Guarantees:
- put: write to a unique temp file, then os.replace() it over the record,
  so a reader never observes a partially written value
- get: reads at most ``max_value_size`` bytes; larger values are
  truncated (default) or rejected with ValueTooLargeError (strict mode)
- delete: idempotent, a missing key is not an error

Mutations of the same key are serialized with a per-key asyncio lock.
Reads take no lock.
"""

import asyncio
import errno
import logging
import os
import uuid
from typing import Any, Dict, List, Tuple

import aiofiles
import aiofiles.os

from ..config.settings import settings
from ..errors import FatalSetupError, StorageError, ValueTooLargeError
from .keys import TEMP_PREFIX, TEMP_SUFFIX, decode_key, encode_key, is_record_name
from .locks import KeyLockRegistry

logger = logging.getLogger(__name__)

_ERRNO_REASONS = {
    errno.EACCES: "permission denied",
    errno.EPERM: "permission denied",
    errno.EROFS: "permission denied",
    errno.ENOSPC: "no space left",
    errno.ENAMETOOLONG: "invalid key",
}


def _reason(exc: OSError, default: str) -> str:
    return _ERRNO_REASONS.get(exc.errno, default)


def _fsync_dir(path: str) -> None:
    """Persist directory entries (renames, unlinks) of path."""
    if os.name != "posix":
        return
    fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


class FileStore:
    """
    Persistent key-value store with one file per key.

    Lifecycle:
        store = FileStore("data")
        await store.open()      # creates the directory, removes stale temp files
        ...
        await store.close()     # waits for in-flight writes

    or ``async with FileStore("data") as store: ...``

    Attributes:
        data_dir: Directory holding the record files
        max_value_size: Read ceiling for get() in bytes
        strict_values: Raise ValueTooLargeError instead of truncating
        fsync: fsync() every value before it replaces the old record, and
            the directory after each replace or removal
    """

    def __init__(
            self,
            data_dir: str = None,
            max_value_size: int = None,
            strict_values: bool = None,
            fsync: bool = None,
    ):
        self.data_dir = os.path.abspath(data_dir if data_dir is not None else settings.DATA_DIR)
        self.max_value_size = max_value_size if max_value_size is not None else settings.MAX_VALUE_SIZE
        self.strict_values = strict_values if strict_values is not None else settings.STRICT_VALUES
        self.fsync = fsync if fsync is not None else settings.FSYNC

        self._locks = KeyLockRegistry()
        self._open = False

    async def open(self) -> "FileStore":
        """
        Prepare the data directory for use.

        Raises:
            FatalSetupError: the directory cannot be created or written
        """
        if self._open:
            return self

        try:
            await aiofiles.os.makedirs(self.data_dir, exist_ok=True)
            names = await aiofiles.os.listdir(self.data_dir)
        except OSError as exc:
            raise FatalSetupError(f"cannot use data directory {self.data_dir}: {exc.strerror}") from exc

        if not os.access(self.data_dir, os.W_OK | os.X_OK):
            raise FatalSetupError(f"data directory {self.data_dir} is not writable")

        # Leftovers from writes interrupted by a crash
        for name in names:
            if name.startswith(TEMP_PREFIX) and name.endswith(TEMP_SUFFIX):
                await self._discard(os.path.join(self.data_dir, name))

        self._open = True
        logger.debug(f"Store opened at {self.data_dir}")
        return self

    async def close(self) -> None:
        """Stop accepting operations and wait for pending mutations."""
        if not self._open:
            return
        self._open = False

        for lock in self._locks.locks():
            async with lock:
                pass
        logger.debug(f"Store at {self.data_dir} closed")

    @property
    def is_open(self) -> bool:
        return self._open

    async def __aenter__(self) -> "FileStore":
        return await self.open()

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _check_open(self) -> None:
        if not self._open:
            raise StorageError("store closed")

    def _path_for(self, key: str) -> str:
        return os.path.join(self.data_dir, encode_key(key))

    async def put(self, key: str, value: bytes) -> None:
        """
        Create or overwrite the record for key.

        Args:
            key: Record key
            value: Bytes to store (may be empty)

        Raises:
            StorageError: invalid key or the write failed
        """
        self._check_open()
        path = self._path_for(key)

        async with self._locks.lock_for(key):
            tmp_path = os.path.join(self.data_dir, f"{TEMP_PREFIX}{uuid.uuid4().hex}{TEMP_SUFFIX}")
            try:
                async with aiofiles.open(tmp_path, "wb") as f:
                    await f.write(value)
                    await f.flush()
                    if self.fsync:
                        await asyncio.to_thread(os.fsync, f.fileno())
                await aiofiles.os.replace(tmp_path, path)
                if self.fsync:
                    await asyncio.to_thread(_fsync_dir, self.data_dir)
            except OSError as exc:
                await self._discard(tmp_path)
                raise StorageError(_reason(exc, "write failed")) from exc
            except asyncio.CancelledError:
                await self._discard(tmp_path)
                raise

    async def get(self, key: str) -> Tuple[bytes, bool]:
        """
        Read the record for key.

        Returns:
            (value, True) if the record exists, (b"", False) otherwise.
            The value is cut to max_value_size bytes unless strict_values
            is set.

        Raises:
            StorageError: invalid key or the read failed
            ValueTooLargeError: value exceeds max_value_size in strict mode
        """
        self._check_open()
        path = self._path_for(key)

        try:
            async with aiofiles.open(path, "rb") as f:
                data = await f.read(self.max_value_size + 1)
        except FileNotFoundError:
            return b"", False
        except OSError as exc:
            raise StorageError(_reason(exc, "read failed")) from exc

        if len(data) > self.max_value_size:
            if self.strict_values:
                raise ValueTooLargeError()
            logger.debug(f"Value of {key!r} exceeds {self.max_value_size} bytes, truncating")
            data = data[:self.max_value_size]

        return data, True

    async def delete(self, key: str) -> bool:
        """
        Remove the record for key.

        Returns:
            True if a record was removed, False if there was none

        Raises:
            StorageError: invalid key or the removal failed
        """
        self._check_open()
        path = self._path_for(key)

        async with self._locks.lock_for(key):
            try:
                await aiofiles.os.remove(path)
            except FileNotFoundError:
                return False
            except OSError as exc:
                raise StorageError(_reason(exc, "delete failed")) from exc
            if self.fsync:
                try:
                    await asyncio.to_thread(_fsync_dir, self.data_dir)
                except OSError as exc:
                    raise StorageError(_reason(exc, "delete failed")) from exc
        return True

    def keys(self) -> List[str]:
        """Return all stored keys, sorted."""
        try:
            names = os.listdir(self.data_dir)
        except FileNotFoundError:
            return []
        return sorted(decode_key(name) for name in names if is_record_name(name))

    def size(self) -> int:
        """Number of records in the data directory."""
        return len(self.keys())

    async def clear(self) -> int:
        """Delete every record. Returns the number removed."""
        removed = 0
        for key in self.keys():
            if await self.delete(key):
                removed += 1
        return removed

    async def _discard(self, path: str) -> None:
        try:
            await aiofiles.os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning(f"Could not remove temp file {path}: {exc}")

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing data_dir, total_keys, max_value_size,
            strict_values, fsync and open.
        """
        return {
            "data_dir": self.data_dir,
            "total_keys": self.size(),
            "max_value_size": self.max_value_size,
            "strict_values": self.strict_values,
            "fsync": self.fsync,
            "open": self._open,
        }
