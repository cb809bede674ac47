"""
KeyVault Exceptions.

Every error raised by the vault derives from ``KeyVaultError``. Failures from
the underlying crypto library (``cryptography.exceptions.InvalidTag`` and
friends) are not wrapped and propagate unchanged.
"""


class KeyVaultError(Exception):
    """Base class for vault errors."""


class DuplicateKeyError(KeyVaultError):
    """A key with the same id is already loaded."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"Key {key_id} already loaded")


class UnknownKeyError(KeyVaultError, KeyError):
    """No key with the given id is loaded."""

    def __init__(self, key_id: str):
        self.key_id = key_id
        super().__init__(f"Key {key_id} is not loaded")

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return str(self.args[0])


class MalformedHeaderError(KeyVaultError, ValueError):
    """Vault file header failed structural or version validation."""


class MalformedChunkError(KeyVaultError, ValueError):
    """Body chunk cannot be decoded."""


class PasswordVerificationExhaustedError(KeyVaultError):
    """Too many incorrect passwords were supplied for a key."""

    def __init__(self, key_id: str, attempts: int):
        self.key_id = key_id
        self.attempts = attempts
        super().__init__(
            f"Max retries exceeded for key {key_id} "
            f"after {attempts} attempt(s)"
        )


class SecretReaderError(KeyVaultError):
    """The secret reader could not obtain a line of input."""
