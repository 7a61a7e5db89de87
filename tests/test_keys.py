"""
Tests for key to file name mapping.

Run with: python -m pytest tests/test_keys.py -v
"""

import pytest
from filekv.errors import InvalidKeyError, StorageError
from filekv.storage.keys import MAX_NAME_LENGTH, decode_key, encode_key, is_record_name


class TestEncodeKey:
    """encode_key() must produce safe, unique file names."""

    def test_plain_key_unchanged(self):
        assert encode_key("user-42_x~") == "user-42_x~"

    @pytest.mark.parametrize("key", [".", "..", "../etc/passwd", "a/b", "/abs", "a\\b", "nul\x00byte"])
    def test_dangerous_keys_become_flat_names(self, key: str):
        name = encode_key(key)
        assert "/" not in name
        assert "\\" not in name
        assert "\x00" not in name
        assert "." not in name
        assert name not in (".", "..")

    def test_dots_are_escaped(self):
        assert encode_key("..") == "%2E%2E"
        assert encode_key("key.dot") == "key%2Edot"

    def test_percent_is_escaped(self):
        """A literal %2E in a key must not collide with an escaped dot."""
        assert encode_key("%2E") != encode_key(".")

    def test_unicode_key(self):
        assert encode_key("clé") == "cl%C3%A9"

    def test_empty_key_rejected(self):
        with pytest.raises(InvalidKeyError):
            encode_key("")

    def test_too_long_key_rejected(self):
        with pytest.raises(InvalidKeyError) as info:
            encode_key("a" * (MAX_NAME_LENGTH + 1))
        assert info.value.reason == "invalid key"

    def test_longest_key_accepted(self):
        assert encode_key("a" * MAX_NAME_LENGTH) == "a" * MAX_NAME_LENGTH

    def test_invalid_key_is_storage_error(self):
        assert issubclass(InvalidKeyError, StorageError)


class TestDecodeKey:
    """decode_key() is the inverse of encode_key()."""

    @pytest.mark.parametrize("key", ["simple", "..", "a/b/c", "100%", "%2E", "clé", "key:colon"])
    def test_inverse(self, key: str):
        assert decode_key(encode_key(key)) == key


class TestIsRecordName:

    def test_record_names(self):
        assert is_record_name(encode_key("anything.at/all"))

    def test_temp_names(self):
        assert not is_record_name(".0123abcd.tmp")
        assert not is_record_name("")

    @pytest.mark.parametrize("name", ["%FF", "%c3%a9", "%zz", "%"])
    def test_foreign_names(self, name: str):
        assert not is_record_name(name)
