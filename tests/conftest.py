"""Shared fixtures for the keyvault test-suite."""
import pytest

from keyvault.config import KeyVaultConfig
from keyvault.crypto import CryptoProvider
from keyvault.exceptions import SecretReaderError
from keyvault.manager import KeyManager
from keyvault.models import KeyRecord


class ScriptedReader:
    """Secret reader that replays canned answers and records prompts."""

    def __init__(self, *answers: str):
        self.answers = list(answers)
        self.prompts: list[tuple[str, bool]] = []

    def push(self, *answers: str) -> None:
        self.answers.extend(answers)

    async def read(self, prompt: str, echo: bool = False) -> str:
        self.prompts.append((prompt, echo))
        if not self.answers:
            raise SecretReaderError("No more scripted input")
        return self.answers.pop(0)


class CountingCrypto(CryptoProvider):
    """CryptoProvider that counts derivations and decryptions."""

    def __init__(self, config: KeyVaultConfig):
        super().__init__(config)
        self.derive_calls = 0
        self.decrypt_calls = 0

    def derive_bytes(self, password, salt, length):
        self.derive_calls += 1
        return super().derive_bytes(password, salt, length)

    def decrypt(self, key, iv, ciphertext):
        self.decrypt_calls += 1
        return super().decrypt(key, iv, ciphertext)


@pytest.fixture
def config():
    """Cheap KDF settings so tests stay fast."""
    return KeyVaultConfig(kdf_iterations=1000)


@pytest.fixture
def reader():
    return ScriptedReader()


@pytest.fixture
def crypto(config):
    return CountingCrypto(config)


@pytest.fixture
def manager(reader, crypto):
    return KeyManager(reader=reader, crypto=crypto)


@pytest.fixture
def example_record():
    """Locked record with placeholder field values."""
    return KeyRecord(
        id="key1",
        encrypted_key="7654321YEKTERCES",
        iv="iv1",
        salt="salt1",
        signature="sig1",
    )
