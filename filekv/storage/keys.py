"""
Key <-> File Name Mapping

Keys are percent-encoded before they are used as file names. Every byte
outside ``[A-Za-z0-9_~-]`` is written as ``%XX``, including ``/``, ``.``,
``%`` and NUL, so an encoded key can never be ``.``/``..``, contain a
path separator, or look like a temporary file (those always contain a
dot). Because ``%`` itself is escaped the mapping is injective.
"""

from urllib.parse import quote, unquote

from ..errors import InvalidKeyError

# Most filesystems cap a single path component at 255 bytes
MAX_NAME_LENGTH = 255

TEMP_PREFIX = "."
TEMP_SUFFIX = ".tmp"


def encode_key(key: str) -> str:
    """
    Map a key to the file name that stores its record.

    Raises:
        InvalidKeyError: key is empty, not encodable, or too long
    """
    if not key:
        raise InvalidKeyError()
    try:
        name = quote(key, safe="").replace(".", "%2E")
    except UnicodeEncodeError as exc:
        raise InvalidKeyError() from exc
    if len(name) > MAX_NAME_LENGTH:
        raise InvalidKeyError()
    return name


def decode_key(name: str) -> str:
    """Inverse of encode_key()."""
    return unquote(name, errors="strict")


def is_record_name(name: str) -> bool:
    """True for file names produced by encode_key()."""
    if not name or "." in name:
        return False
    try:
        return encode_key(decode_key(name)) == name
    except (UnicodeDecodeError, InvalidKeyError):
        return False
