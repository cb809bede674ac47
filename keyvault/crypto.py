"""
KeyVault Crypto Core: password hashing, symmetric encryption and helpers.

Implements the primitives used by the ``KeyManager``:
- Password hasher: PBKDF2-HMAC(password, salt, iterations) → bytes
- Symmetric cipher: AES-GCM (or ChaCha20-Poly1305) with an explicit IV
- Secure random bytes and constant-time comparison

Every buffer handed back to callers is a ``bytearray`` so it can be
zero-filled once it is no longer needed.

Security Note:
    Never log plaintext, password hashes or ciphertext values.
"""
import os
import hmac
import base64
import binascii
import logging

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from .config import KeyVaultConfig

logger = logging.getLogger("keyvault")

ENCODING = "ascii"

_DIGESTS = {
    "sha256": hashes.SHA256,
    "sha512": hashes.SHA512,
}

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_bytes(
    password: str,
    salt: bytes,
    iterations: int,
    length: int,
    digest: str = "sha512",
) -> bytearray:
    """Derive ``length`` bytes from a password using PBKDF2-HMAC.

    Args:
        password: Operator password.
        salt: Random salt stored alongside the key record.
        iterations: PBKDF2 iteration count.
        length: Number of output bytes.
        digest: Digest name ("sha256" or "sha512").

    Returns:
        Derived bytes as a mutable buffer.
    """
    kdf = PBKDF2HMAC(
        algorithm=_DIGESTS[digest](),
        length=length,
        salt=bytes(salt),
        iterations=iterations,
    )
    return bytearray(kdf.derive(password.encode("utf-8")))


# ---------------------------------------------------------------------------
# Symmetric encryption
# ---------------------------------------------------------------------------

def encrypt(backend: str, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
    """Encrypt plaintext with an AEAD cipher.

    Args:
        backend: Cipher backend name ("aesgcm" or "chacha20").
        key: Encryption key.
        iv: 96-bit nonce, must never repeat for the same key.
        plaintext: Data to encrypt.

    Returns:
        Ciphertext with the 16-byte authentication tag appended.
    """
    cipher = _CIPHERS[backend](key)
    return cipher.encrypt(bytes(iv), plaintext, None)


def decrypt(backend: str, key: bytes, iv: bytes, ciphertext: bytes) -> bytearray:
    """Decrypt AEAD ciphertext.

    Raises:
        cryptography.exceptions.InvalidTag: If the key is wrong or the
            ciphertext was tampered with.
    """
    cipher = _CIPHERS[backend](key)
    return bytearray(cipher.decrypt(bytes(iv), ciphertext, None))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def random_bytes(length: int) -> bytearray:
    """Return ``length`` cryptographically secure random bytes."""
    return bytearray(os.urandom(length))


def constant_time_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in time independent of the first mismatch."""
    return hmac.compare_digest(a, b)


def zero(*buffers: bytearray | memoryview | None) -> None:
    """Overwrite every byte of the given buffers with zero."""
    for buf in buffers:
        if buf is None:
            continue
        buf[:] = bytes(len(buf))


def to_text(data: bytes) -> str:
    """Encode binary data for the vault file (base64)."""
    return base64.b64encode(data).decode(ENCODING)


def from_text(data: str) -> bytearray:
    """Decode base64 text from the vault file.

    Raises:
        ValueError: If ``data`` is not valid base64.
    """
    try:
        return bytearray(base64.b64decode(data.encode(ENCODING), validate=True))
    except (binascii.Error, UnicodeEncodeError) as err:
        raise ValueError(f"Invalid base64 data: {err}") from err


class CryptoProvider:
    """Crypto capability injected into the ``KeyManager``.

    Binds the primitives above to one ``KeyVaultConfig`` so the manager
    never touches module-level state.
    """

    def __init__(self, config: KeyVaultConfig | None = None):
        self.config = config or KeyVaultConfig()

    @property
    def key_length(self) -> int:
        return self.config.key_length

    @property
    def iv_length(self) -> int:
        return self.config.iv_length

    @property
    def salt_length(self) -> int:
        return self.config.salt_length

    def derive_bytes(self, password: str, salt: bytes, length: int) -> bytearray:
        return derive_bytes(
            password,
            salt,
            self.config.kdf_iterations,
            length,
            self.config.kdf_digest,
        )

    def encrypt(self, key: bytes, iv: bytes, plaintext: bytes) -> bytes:
        return encrypt(self.config.cipher_backend, key, iv, plaintext)

    def decrypt(self, key: bytes, iv: bytes, ciphertext: bytes) -> bytearray:
        return decrypt(self.config.cipher_backend, key, iv, ciphertext)

    def random_bytes(self, length: int) -> bytearray:
        return random_bytes(length)

    def constant_time_equal(self, a: bytes, b: bytes) -> bool:
        return constant_time_equal(a, b)
