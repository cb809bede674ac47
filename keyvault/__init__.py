"""KeyVault: symmetric keys stored on disk, wrapped under an operator password.

Security Note (Threat Model):
    Decrypted keys live in process memory while a key is unlocked. They are
    held in mutable buffers and zero-filled on lock, but copies made by the
    interpreter or the crypto library cannot be erased. A memory dump of the
    process while a key is unlocked can expose it.
"""

from .version import __version__
from .config import KeyVaultConfig
from .crypto import CryptoProvider
from .exceptions import (
    KeyVaultError,
    DuplicateKeyError,
    UnknownKeyError,
    MalformedHeaderError,
    MalformedChunkError,
    PasswordVerificationExhaustedError,
    SecretReaderError,
)
from .manager import KeyManager
from .models import KeyRecord, EncryptedDataChunk
from .reader import SecretReader, ConsoleSecretReader
from .vault import KeyVault

__all__ = [
    "__version__",
    "KeyVaultConfig",
    "CryptoProvider",
    "KeyVaultError",
    "DuplicateKeyError",
    "UnknownKeyError",
    "MalformedHeaderError",
    "MalformedChunkError",
    "PasswordVerificationExhaustedError",
    "SecretReaderError",
    "KeyManager",
    "KeyRecord",
    "EncryptedDataChunk",
    "SecretReader",
    "ConsoleSecretReader",
    "KeyVault",
]
