"""
Tests for the vault data models.
"""
import pytest

from keyvault.exceptions import MalformedHeaderError
from keyvault.models import EncryptedDataChunk, KeyRecord, check_key_id


def _record(**overrides) -> KeyRecord:
    fields = {
        "id": "key1",
        "encrypted_key": "ZW5j",
        "iv": "aXY=",
        "salt": "c2FsdA==",
        "signature": "c2ln",
    }
    fields.update(overrides)
    return KeyRecord(**fields)


class TestKeyRecord:
    """Tests for KeyRecord construction and dumping."""

    def test_defaults(self):
        record = _record()
        assert record.version == "v1"
        assert record.decrypted_key is None
        assert not record.unlocked

    def test_wrong_version(self):
        with pytest.raises(MalformedHeaderError):
            _record(version="v2")

    @pytest.mark.parametrize(
        "key_id", ["", "a\nb", "a\r\nb", "a\u2028b", "a\x0bb", "end\n"]
    )
    def test_rejects_multiline_or_empty_id(self, key_id):
        """Test ids that would break the ID: header line are refused."""
        with pytest.raises(MalformedHeaderError):
            _record(id=key_id)

    @pytest.mark.parametrize("key_id", ["k", "db:prod", "with space", "#tag"])
    def test_accepts_single_line_id(self, key_id):
        assert _record(id=key_id).id == key_id

    def test_check_key_id_is_value_error(self):
        with pytest.raises(ValueError):
            check_key_id("")

    def test_decrypted_key_not_dumped(self):
        """Test the plaintext key stays out of to_dict, repr and equality."""
        record = _record(decrypted_key=bytearray(b"secret-bytes"))
        assert "decrypted_key" not in record.to_dict()
        assert "secret-bytes" not in repr(record)
        assert record == _record()


class TestEncryptedDataChunk:
    """Tests for EncryptedDataChunk."""

    def test_data_defaults_to_fresh_list(self):
        a = EncryptedDataChunk(iv="aXY=")
        b = EncryptedDataChunk(iv="aXY=")
        a.data.append("x")
        assert b.data == []
