"""
KeyVault: one vault file bound to a KeyManager record.

Provides the file-level API used by the CLI:
- ``create(manager, key_id)`` → generate a new key under a new password
- ``load(manager, path)`` → parse a vault file and register its key
- ``save(path)`` → write the header and chunks back to disk
- ``append(value)`` / ``values()`` → encrypt and decrypt payload chunks
- ``change_password()`` → rewrap the key under a new password

Security Note:
    Never log plaintext or ciphertext values. Only log key ids, paths and
    counts. Call ``close()`` (or use ``async with``) to zero the decrypted
    key when done.
"""
import os
import logging
import tempfile
from pathlib import Path
from typing import Any

from . import codec
from .manager import KeyManager
from .models import EncryptedDataChunk, KeyRecord
from .payload import (
    decrypt_chunk,
    deserialize_value,
    encrypt_chunk,
    serialize_value,
)
from .crypto import zero

logger = logging.getLogger("keyvault")


class KeyVault:
    """Key record plus its encrypted payload chunks."""

    def __init__(
        self,
        manager: KeyManager,
        record: KeyRecord,
        chunks: list[EncryptedDataChunk] | None = None,
        path: str | Path | None = None,
    ):
        self._manager = manager
        self._record = record
        self._chunks: list[EncryptedDataChunk] = list(chunks or [])
        self._path = Path(path) if path is not None else None

    @property
    def key_id(self) -> str:
        return self._record.id

    @property
    def record(self) -> KeyRecord:
        return self._record

    @property
    def chunks(self) -> list[EncryptedDataChunk]:
        return self._chunks

    @property
    def path(self) -> Path | None:
        return self._path

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    @classmethod
    async def create(
        cls,
        manager: KeyManager,
        key_id: str,
        path: str | Path | None = None,
    ) -> "KeyVault":
        """Create a new key (prompts for a password) with an empty body."""
        record = await manager.create_new_key(key_id)
        return cls(manager, record, path=path)

    @classmethod
    def load(cls, manager: KeyManager, path: str | Path) -> "KeyVault":
        """Read a vault file and register its key with ``manager``.

        Raises:
            MalformedHeaderError: If the file header is invalid.
            DuplicateKeyError: If the key id is already loaded.
        """
        path = Path(path)
        text = path.read_text(encoding="utf-8")
        record, chunks = codec.loads(text)
        manager.add_key(record)
        logger.info(
            "Vault loaded from %s: key=%s, %d chunk(s)",
            path, record.id, len(chunks),
        )
        return cls(manager, record, chunks, path=path)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def dumps(self) -> str:
        return codec.dumps(self._record, self._chunks)

    def save(self, path: str | Path | None = None) -> Path:
        """Write the vault file atomically.

        Args:
            path: Destination; defaults to the path the vault was loaded from.

        Raises:
            ValueError: If no path is known.
        """
        target = Path(path) if path is not None else self._path
        if target is None:
            raise ValueError("No path given for vault file")
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=target.parent, prefix=f".{target.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as fp:
                fp.write(self.dumps())
            os.replace(tmp_name, target)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        self._path = target
        logger.info(
            "Vault saved to %s: key=%s, %d chunk(s)",
            target, self.key_id, len(self._chunks),
        )
        return target

    # ------------------------------------------------------------------
    # Payload
    # ------------------------------------------------------------------

    async def append(self, value: Any) -> EncryptedDataChunk:
        """Encrypt a value into a new chunk (unlocks the key if needed)."""
        key = await self._manager.get_decrypted_key(self.key_id)
        plaintext = bytearray(serialize_value(value))
        try:
            chunk = encrypt_chunk(self._manager.crypto, key, plaintext)
        finally:
            zero(plaintext)
        self._chunks.append(chunk)
        logger.debug("Vault append: key=%s chunks=%d", self.key_id, len(self._chunks))
        return chunk

    async def values(self) -> list[Any]:
        """Decrypt every chunk in order (unlocks the key if needed)."""
        key = await self._manager.get_decrypted_key(self.key_id)
        result = []
        for chunk in self._chunks:
            plaintext = decrypt_chunk(self._manager.crypto, key, chunk)
            try:
                result.append(deserialize_value(bytes(plaintext)))
            finally:
                zero(plaintext)
        return result

    async def change_password(self) -> KeyRecord:
        return await self._manager.change_key_password(self.key_id)

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    def lock(self) -> None:
        self._manager.lock_key(self.key_id)

    def close(self) -> None:
        """Remove the key from the manager, zeroing any decrypted key."""
        self._manager.remove_key(self.key_id)

    async def __aenter__(self) -> "KeyVault":
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.close()
