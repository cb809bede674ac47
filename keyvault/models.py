"""
Vault data models.

``KeyRecord`` is the unit managed by the ``KeyManager``: the wrapped key plus
everything needed to unwrap it again with the right password.
``EncryptedDataChunk`` is one independently decryptable block of payload
ciphertext stored in the body of a vault file.

Security Note:
    ``decrypted_key`` is in-memory only. It is excluded from ``to_dict()``,
    ``repr()`` and comparisons, and must be zero-filled before the reference
    is dropped (see ``KeyManager.lock_key``).
"""
from dataclasses import dataclass, field
from typing import Optional

from .exceptions import MalformedHeaderError

VERSION = "v1"


def check_key_id(key_id: str) -> None:
    """Reject ids that cannot be written as a single ``ID:`` header line.

    Raises:
        MalformedHeaderError: If the id is empty or spans several lines
            (any separator ``str.splitlines`` recognises counts).
    """
    if not isinstance(key_id, str) or not key_id:
        raise MalformedHeaderError("Key id must be a non-empty string")
    if key_id.splitlines() != [key_id]:
        raise MalformedHeaderError(
            f"Key id must fit on one line: {key_id!r}"
        )


@dataclass
class KeyRecord:
    """Encrypted key data for one key id.

    The object returned by ``KeyManager.get_key`` is the same object the
    manager mutates on lock/unlock/re-password; callers holding a reference
    observe those changes.
    """

    id: str
    encrypted_key: str
    iv: str
    salt: str
    signature: str
    version: str = VERSION
    decrypted_key: Optional[bytearray] = field(
        default=None, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        check_key_id(self.id)
        if self.version != VERSION:
            raise MalformedHeaderError(
                f"Unsupported key record version: {self.version!r}"
            )

    @property
    def unlocked(self) -> bool:
        return self.decrypted_key is not None

    def to_dict(self) -> dict[str, str]:
        """Return the persistable fields only."""
        return {
            "version": self.version,
            "id": self.id,
            "encrypted_key": self.encrypted_key,
            "iv": self.iv,
            "signature": self.signature,
            "salt": self.salt,
        }


@dataclass
class EncryptedDataChunk:
    """IV line plus ordered ciphertext lines."""

    iv: str
    data: list[str] = field(default_factory=list)
