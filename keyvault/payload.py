"""
Payload chunks: values encrypted under the protected key.

Each chunk carries its own IV, so chunks are independently decryptable:
- ``encrypt_chunk`` → fresh IV, ciphertext base64-wrapped into data lines
- ``decrypt_chunk`` → join data lines, decode, decrypt

Values are serialized with orjson before encryption; ``bytes`` values are
wrapped so they survive the JSON round-trip.

Security Note:
    Never log plaintext or ciphertext values.
"""
import logging
import textwrap
from typing import Any

import orjson

from .crypto import CryptoProvider, from_text, to_text
from .exceptions import MalformedChunkError
from .models import EncryptedDataChunk

logger = logging.getLogger("keyvault")

LINE_WIDTH = 64

_BYTES_WRAPPER_KEY = "__vault_bytes_b64__"


# ---------------------------------------------------------------------------
# Value serialization
# ---------------------------------------------------------------------------

def serialize_value(value: Any) -> bytes:
    """Encode one vault value as the plaintext of a chunk.

    Anything orjson can dump is stored as JSON. Raw ``bytes``/``bytearray``
    values are stored as a one-key object holding their base64 text.
    """
    if isinstance(value, (bytes, bytearray)):
        value = {_BYTES_WRAPPER_KEY: to_text(value)}
    return orjson.dumps(value)


def deserialize_value(data: bytes) -> Any:
    """Decode chunk plaintext written by ``serialize_value``."""
    parsed = orjson.loads(data)
    if isinstance(parsed, dict) and parsed.keys() == {_BYTES_WRAPPER_KEY}:
        return bytes(from_text(parsed[_BYTES_WRAPPER_KEY]))
    return parsed


# ---------------------------------------------------------------------------
# Chunk encryption
# ---------------------------------------------------------------------------

def encrypt_chunk(
    crypto: CryptoProvider, key: bytes, plaintext: bytes
) -> EncryptedDataChunk:
    """Encrypt plaintext into a new body chunk.

    Args:
        crypto: Crypto capability (cipher and random source).
        key: Decrypted payload key.
        plaintext: Data to encrypt.

    Returns:
        Chunk with a base64 IV and ciphertext wrapped at ``LINE_WIDTH``.
    """
    iv = crypto.random_bytes(crypto.iv_length)
    ciphertext = crypto.encrypt(key, iv, plaintext)
    return EncryptedDataChunk(
        iv=to_text(iv),
        data=textwrap.wrap(to_text(ciphertext), LINE_WIDTH),
    )


def decrypt_chunk(
    crypto: CryptoProvider, key: bytes, chunk: EncryptedDataChunk
) -> bytearray:
    """Decrypt one body chunk.

    Raises:
        MalformedChunkError: If the IV or data lines are not valid base64.
        cryptography.exceptions.InvalidTag: If the key is wrong or the chunk
            was tampered with.
    """
    try:
        iv = from_text(chunk.iv)
        ciphertext = from_text("".join(chunk.data))
    except ValueError as err:
        raise MalformedChunkError(f"Invalid chunk encoding: {err}") from err
    if len(iv) != crypto.iv_length:
        raise MalformedChunkError(
            f"Invalid chunk IV length: {len(iv)} (expected {crypto.iv_length})"
        )
    return crypto.decrypt(key, iv, bytes(ciphertext))
