"""
KeyVault Configuration: key derivation and cipher settings.

Reads settings from environment variables in the format:
    KEYVAULT_KDF_ITERATIONS = <integer>
    KEYVAULT_KDF_DIGEST = sha256 | sha512
    KEYVAULT_KEY_LENGTH = 16 | 24 | 32
    KEYVAULT_SALT_LENGTH = <integer>
    KEYVAULT_CIPHER_BACKEND = aesgcm | chacha20
    KEYVAULT_MAX_RETRIES = <integer>
    LOG_LEVEL = DEBUG | INFO | WARNING | ERROR

Security Note:
    A v1 vault file does not record these parameters. Opening a file
    requires the same derivation and cipher settings it was written with.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator, model_validator

logger = logging.getLogger("keyvault")

_ENV_PREFIX = "KEYVAULT_"

# AES-GCM and ChaCha20-Poly1305 both take a 96-bit nonce
NONCE_LENGTH = 12

DEFAULT_KDF_ITERATIONS = 210_000  # OWASP 2023 for PBKDF2-HMAC-SHA512
DEFAULT_MAX_RETRIES = 5


def _env(name: str, default: str | None = None) -> str | None:
    return os.environ.get(f"{_ENV_PREFIX}{name}", default)


class KeyVaultConfig(BaseModel):
    """Validated vault configuration."""

    kdf_iterations: int = Field(default=DEFAULT_KDF_ITERATIONS, ge=1000)
    kdf_digest: str = Field(default="sha512")
    key_length: int = Field(default=32)
    salt_length: int = Field(default=16, ge=16, le=64)
    cipher_backend: str = Field(default="aesgcm")
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0, le=100)
    log_level: str = Field(default="INFO")

    @field_validator("kdf_digest")
    @classmethod
    def validate_digest(cls, v: str) -> str:
        """Validate the PBKDF2 digest is supported."""
        v = v.lower()
        if v not in ("sha256", "sha512"):
            raise ValueError(f"Unsupported KDF digest: {v}")
        return v

    @field_validator("key_length")
    @classmethod
    def validate_key_length(cls, v: int) -> int:
        """Validate the key length is a valid AES key size."""
        if v not in (16, 24, 32):
            raise ValueError(f"Unsupported key length: {v}")
        return v

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unsupported log level: {v}")
        return v

    @model_validator(mode="after")
    def validate_chacha_key(self) -> "KeyVaultConfig":
        """ChaCha20-Poly1305 only accepts 256-bit keys."""
        if self.cipher_backend == "chacha20" and self.key_length != 32:
            raise ValueError(
                f"cipher_backend chacha20 requires key_length 32, "
                f"got {self.key_length}"
            )
        return self

    @property
    def iv_length(self) -> int:
        return NONCE_LENGTH

    @classmethod
    def from_env(cls) -> "KeyVaultConfig":
        """Create KeyVaultConfig by loading values from environment.

        Unset variables fall back to the field defaults.

        Returns:
            Populated KeyVaultConfig instance.
        """
        values: dict[str, str] = {}
        for field_name in (
            "kdf_iterations",
            "kdf_digest",
            "key_length",
            "salt_length",
            "cipher_backend",
            "max_retries",
        ):
            raw = _env(field_name.upper())
            if raw is not None:
                values[field_name] = raw
        log_level = os.environ.get("LOG_LEVEL")
        if log_level:
            values["log_level"] = log_level
        config = cls(**values)
        logger.debug(
            "Loaded vault config: cipher=%s digest=%s iterations=%d",
            config.cipher_backend, config.kdf_digest, config.kdf_iterations,
        )
        return config
