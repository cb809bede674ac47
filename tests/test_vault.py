"""
Tests for KeyVault, the file-level composition of manager, codec and payload.

Tests cover:
- Creating, saving and loading vault files
- Appending and reading encrypted values
- Password change across a save/load cycle
- Zero-filling on close
"""
import pytest

from keyvault.exceptions import DuplicateKeyError, MalformedHeaderError
from keyvault.manager import KeyManager
from keyvault.vault import KeyVault

PASSWORD = "hunter2"


# --- Test Fixtures ---

@pytest.fixture
def vault_path(tmp_path):
    return tmp_path / "vaults" / "k1.vault"


# --- Test Persistence ---

class TestPersistence:
    """Tests for create, save and load."""

    @pytest.mark.asyncio
    async def test_create_and_save(self, manager, reader, vault_path):
        """Test a new vault is written in the v1 text format."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        assert vault.save() == vault_path
        lines = vault_path.read_text().splitlines()
        assert lines[0] == "V:v1"
        assert lines[1] == "ID:k1"
        assert [line.split(":", 1)[0] for line in lines[:6]] == [
            "V", "ID", "K", "IV", "SG", "S"
        ]
        assert lines[6] == ""

    @pytest.mark.asyncio
    async def test_save_without_path(self, manager, reader):
        """Test save needs a destination."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1")
        with pytest.raises(ValueError):
            vault.save()

    @pytest.mark.asyncio
    async def test_load_registers_locked_key(
        self, manager, reader, crypto, vault_path
    ):
        """Test loading adds a locked record to a fresh manager."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        vault.save()

        other = KeyManager(reader=reader, crypto=crypto)
        loaded = KeyVault.load(other, vault_path)
        assert loaded.key_id == "k1"
        assert other.get_key("k1") is loaded.record
        assert loaded.record.decrypted_key is None
        assert loaded.record == vault.record

    @pytest.mark.asyncio
    async def test_load_duplicate(self, manager, reader, vault_path):
        """Test loading a key id that is already registered fails."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        vault.save()
        with pytest.raises(DuplicateKeyError):
            KeyVault.load(manager, vault_path)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key_id", ["db:prod", "with space", "#tag", "é"])
    async def test_saved_id_loads_back(
        self, manager, reader, crypto, tmp_path, key_id
    ):
        """Test any id accepted at creation survives a save/load cycle."""
        path = tmp_path / "id.vault"
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, key_id, path=path)
        vault.save()

        other = KeyManager(reader=reader, crypto=crypto)
        assert KeyVault.load(other, path).key_id == key_id

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key_id", ["", "a\nb", "a\u2028b"])
    async def test_unwritable_id_never_saved(
        self, manager, reader, tmp_path, key_id
    ):
        """Test ids that cannot be read back are refused before any write."""
        path = tmp_path / "id.vault"
        with pytest.raises(MalformedHeaderError):
            await KeyVault.create(manager, key_id, path=path)
        assert not path.exists()
        assert reader.prompts == []

    def test_load_malformed(self, manager, tmp_path):
        """Test a broken header is reported."""
        path = tmp_path / "bad.vault"
        path.write_text("V:v2\nID:x\n")
        with pytest.raises(MalformedHeaderError):
            KeyVault.load(manager, path)

    def test_load_with_comments(self, manager, tmp_path):
        """Test comments in a hand-edited file are ignored."""
        path = tmp_path / "commented.vault"
        path.write_text(
            "# my vault\nV:v1\nID:k9\nK:a2V5\n# salt below\nIV:aXY=\n"
            "SG:c2ln\nS:c2FsdA==\n\nQ0hVTks=\n# data\nZGF0YQ==\n\n"
        )
        vault = KeyVault.load(manager, path)
        assert vault.key_id == "k9"
        assert len(vault.chunks) == 1
        assert vault.chunks[0].data == ["ZGF0YQ=="]


# --- Test Payload ---

class TestPayload:
    """Tests for append and values."""

    @pytest.mark.asyncio
    async def test_append_and_read(self, manager, reader, crypto, vault_path):
        """Test values survive a save/load cycle and need the password."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        await vault.append("api-token")
        await vault.append({"user": "admin", "port": 5432})
        await vault.append(b"\x00raw")
        vault.save()
        vault.close()

        other = KeyManager(reader=reader, crypto=crypto)
        loaded = KeyVault.load(other, vault_path)
        assert len(loaded.chunks) == 3
        reader.push("wrong", PASSWORD)
        assert await loaded.values() == [
            "api-token",
            {"user": "admin", "port": 5432},
            b"\x00raw",
        ]

    @pytest.mark.asyncio
    async def test_append_unlocks_once(self, manager, reader, vault_path):
        """Test appending to a locked vault prompts only once."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        vault.lock()
        reader.prompts.clear()
        reader.push(PASSWORD)
        await vault.append("one")
        await vault.append("two")
        assert len(reader.prompts) == 1
        assert await vault.values() == ["one", "two"]


# --- Test Password Change ---

class TestChangePassword:
    """Tests for change_password."""

    @pytest.mark.asyncio
    async def test_values_readable_with_new_password(
        self, manager, reader, crypto, vault_path
    ):
        """Test chunks stay readable after rewrapping the key."""
        reader.push(PASSWORD, PASSWORD)
        vault = await KeyVault.create(manager, "k1", path=vault_path)
        await vault.append("kept")
        vault.lock()
        reader.push(PASSWORD, "n3w", "n3w")
        await vault.change_password()
        vault.save()
        vault.close()

        other = KeyManager(reader=reader, crypto=crypto)
        loaded = KeyVault.load(other, vault_path)
        reader.push("n3w")
        assert await loaded.values() == ["kept"]


# --- Test Locking ---

class TestClose:
    """Tests for lock and close."""

    @pytest.mark.asyncio
    async def test_close_zeroes_key(self, manager, reader):
        """Test closing removes the key and zero-fills it."""
        reader.push(PASSWORD, PASSWORD)
        async with await KeyVault.create(manager, "k1") as vault:
            key = vault.record.decrypted_key
            assert any(key)
        assert key == bytearray(len(key))
        assert "k1" not in manager
