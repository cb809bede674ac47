"""
KeyManager: in-memory lifecycle of password-protected key records.

Provides the public API for the key vault:
- ``add_key`` / ``get_key`` / ``remove_key`` / ``reset`` manage the registry
- ``lock_key`` / ``lock_all_keys`` erase decrypted key material
- ``create_new_key`` generates a key and wraps it under a new password
- ``get_decrypted_key`` verifies a password and unwraps a key
- ``change_key_password`` rewraps an existing key under a new password

Key wrapping:
    hash = PBKDF2(password, salt, iterations, 2 * key_length)
    wrap_key = hash[:key_length]     → encrypts the protected key
    signature = hash[key_length:]    → stored, verifies the password

A wrong password is detected by comparing signatures before any cipher
operation runs.

Security Note:
    Never log passwords, hashes or key material. Only log key ids and
    operations. Every buffer holding a hash or a plaintext key is zero-filled
    at the end of its life.
"""
import asyncio
import logging

from .config import KeyVaultConfig, DEFAULT_MAX_RETRIES
from .crypto import CryptoProvider, from_text, to_text, zero
from .exceptions import (
    DuplicateKeyError,
    UnknownKeyError,
    PasswordVerificationExhaustedError,
)
from .models import VERSION, KeyRecord, check_key_id
from .reader import ConsoleSecretReader, SecretReader

logger = logging.getLogger("keyvault")

ENCRYPT_PROMPT = "Enter password to encrypt key {key_id}: "
CONFIRM_PROMPT = "Confirm password: "
DECRYPT_PROMPT = "Enter password to decrypt key {key_id}: "


class KeyManager:
    """Registry of key records with password-based wrapping.

    Records handed out by ``get_key`` are the live objects this manager
    mutates; the registry must not be mutated concurrently for the same id.
    """

    VERSION = VERSION
    MAX_RETRIES = DEFAULT_MAX_RETRIES

    def __init__(
        self,
        reader: SecretReader,
        crypto: CryptoProvider,
        max_retries: int = MAX_RETRIES,
    ):
        self._reader = reader
        self._crypto = crypto
        self._max_retries = max_retries
        self._keys: dict[str, KeyRecord] = {}

    @classmethod
    def from_config(
        cls,
        config: KeyVaultConfig | None = None,
        reader: SecretReader | None = None,
    ) -> "KeyManager":
        """Build a manager with the default collaborators.

        Args:
            config: Vault settings; defaults to ``KeyVaultConfig()``.
            reader: Secret reader; defaults to the console reader.
        """
        config = config or KeyVaultConfig()
        return cls(
            reader=reader or ConsoleSecretReader(),
            crypto=CryptoProvider(config),
            max_retries=config.max_retries,
        )

    @property
    def max_retries(self) -> int:
        return self._max_retries

    @property
    def crypto(self) -> CryptoProvider:
        return self._crypto

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def add_key(self, record: KeyRecord) -> None:
        """Insert a record.

        Raises:
            DuplicateKeyError: If a record with the same id is loaded.
        """
        if record.id in self._keys:
            raise DuplicateKeyError(record.id)
        self._keys[record.id] = record
        logger.debug("Key %s added (unlocked=%s)", record.id, record.unlocked)

    def get_key(self, key_id: str) -> KeyRecord:
        """Return the record for ``key_id``.

        Raises:
            UnknownKeyError: If no record with that id is loaded.
        """
        try:
            return self._keys[key_id]
        except KeyError:
            raise UnknownKeyError(key_id) from None

    def has_key(self, key_id: str) -> bool:
        return key_id in self._keys

    def key_ids(self) -> list[str]:
        return list(self._keys)

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key_id: object) -> bool:
        return key_id in self._keys

    def lock_key(self, key_id: str) -> None:
        """Zero-fill and drop the decrypted key. No-op if already locked.

        Raises:
            UnknownKeyError: If no record with that id is loaded.
        """
        record = self.get_key(key_id)
        if record.decrypted_key is None:
            return
        zero(record.decrypted_key)
        record.decrypted_key = None
        logger.debug("Key %s locked", key_id)

    def lock_all_keys(self) -> None:
        for key_id in list(self._keys):
            self.lock_key(key_id)

    def remove_key(self, key_id: str) -> None:
        """Lock and delete a record. Unknown ids are ignored."""
        if key_id not in self._keys:
            return
        self.lock_key(key_id)
        del self._keys[key_id]
        logger.debug("Key %s removed", key_id)

    def reset(self) -> None:
        """Remove every key, locking each first."""
        for key_id in list(self._keys):
            self.remove_key(key_id)

    # ------------------------------------------------------------------
    # Password operations
    # ------------------------------------------------------------------

    async def create_new_key(self, key_id: str) -> KeyRecord:
        """Generate a random key and wrap it under a new password.

        The new key is left unlocked.

        Raises:
            DuplicateKeyError: If ``key_id`` already exists.
            MalformedHeaderError: If ``key_id`` is empty or not a single line.
        """
        check_key_id(key_id)
        if key_id in self._keys:
            raise DuplicateKeyError(key_id)
        key = self._crypto.random_bytes(self._crypto.key_length)
        try:
            record = await self._wrap_key(key_id, key)
        except BaseException:
            zero(key)
            raise
        if key_id in self._keys:
            # created while we were prompting
            zero(key)
            raise DuplicateKeyError(key_id)
        record.decrypted_key = key
        self._keys[key_id] = record
        logger.info("Created key %s", key_id)
        return record

    async def change_key_password(self, key_id: str) -> KeyRecord:
        """Rewrap an existing key under a new password.

        The protected key is unchanged. The record is updated in place.

        Raises:
            UnknownKeyError: If no record with that id is loaded.
            PasswordVerificationExhaustedError: If the current password
                cannot be verified.
        """
        key = await self.get_decrypted_key(key_id)
        wrapped = await self._wrap_key(key_id, key)
        record = self.get_key(key_id)
        record.encrypted_key = wrapped.encrypted_key
        record.iv = wrapped.iv
        record.salt = wrapped.salt
        record.signature = wrapped.signature
        record.decrypted_key = key
        logger.info("Changed password for key %s", key_id)
        return record

    async def get_decrypted_key(
        self, key_id: str, retries: int | None = None
    ) -> bytearray:
        """Return the plaintext key, prompting for the password if locked.

        Args:
            key_id: Key to unlock.
            retries: Wrong passwords tolerated before giving up; defaults to
                ``max_retries``. ``retries + 1`` attempts are made in total.

        Returns:
            The decrypted key buffer, also stored on the record.

        Raises:
            UnknownKeyError: If no record with that id is loaded.
            PasswordVerificationExhaustedError: If every attempt fails.
        """
        record = self.get_key(key_id)
        if record.decrypted_key is not None:
            return record.decrypted_key

        if retries is None:
            retries = self._max_retries
        key_length = self._crypto.key_length
        salt = from_text(record.salt)
        signature = from_text(record.signature)
        attempts = 0
        while True:
            attempts += 1
            password = await self._reader.read(
                DECRYPT_PROMPT.format(key_id=key_id), echo=False
            )
            digest = await asyncio.to_thread(
                self._crypto.derive_bytes, password, salt, 2 * key_length
            )
            verify = digest[key_length:]
            if self._crypto.constant_time_equal(signature, verify):
                zero(verify)
                break
            zero(digest, verify)
            logger.warning("Incorrect password for key %s", key_id)
            if retries <= 0:
                logger.error(
                    "Max retries exceeded for key %s (%d attempts)",
                    key_id, attempts,
                )
                raise PasswordVerificationExhaustedError(key_id, attempts)
            retries -= 1

        wrap_key = digest[:key_length]
        zero(digest)
        try:
            key = self._crypto.decrypt(
                wrap_key, from_text(record.iv), from_text(record.encrypted_key)
            )
        finally:
            zero(wrap_key)
        record.decrypted_key = key
        logger.debug("Key %s unlocked after %d attempt(s)", key_id, attempts)
        return key

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _read_new_password(self, key_id: str) -> str:
        """Prompt for a password and its confirmation until both match."""
        while True:
            password = await self._reader.read(
                ENCRYPT_PROMPT.format(key_id=key_id), echo=False
            )
            confirm = await self._reader.read(CONFIRM_PROMPT, echo=False)
            if password == confirm:
                return password
            logger.warning("Passwords for key %s do not match", key_id)

    async def _wrap_key(self, key_id: str, key: bytearray) -> KeyRecord:
        """Wrap ``key`` under a freshly prompted password.

        Returns a locked record; the caller decides where the plaintext goes.
        """
        password = await self._read_new_password(key_id)
        key_length = self._crypto.key_length
        iv = self._crypto.random_bytes(self._crypto.iv_length)
        salt = self._crypto.random_bytes(self._crypto.salt_length)
        digest = await asyncio.to_thread(
            self._crypto.derive_bytes, password, salt, 2 * key_length
        )
        wrap_key = digest[:key_length]
        signature = digest[key_length:]
        zero(digest)
        try:
            encrypted_key = self._crypto.encrypt(wrap_key, iv, key)
        finally:
            zero(wrap_key)
        record = KeyRecord(
            id=key_id,
            encrypted_key=to_text(encrypted_key),
            iv=to_text(iv),
            salt=to_text(salt),
            signature=to_text(signature),
        )
        zero(signature)
        return record
