"""Encryption helpers for storing database connection credentials."""

import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken

from app.core.config import settings


class CredentialDecryptionError(ValueError):
    """Stored credential cannot be decrypted with the current key."""


@lru_cache(maxsize=1)
def _get_fernet() -> Fernet:
    """Get Fernet instance from the encryption key setting.

    Derives a valid 32-byte Fernet key from the config encryption_key
    using SHA-256, then base64-encodes it.

    Note: Changing encryption_key will make previously encrypted
    connection strings undecryptable.
    """
    key_bytes = hashlib.sha256(settings.encryption_key.encode()).digest()
    return Fernet(base64.urlsafe_b64encode(key_bytes))


def encrypt_secret(value: str) -> str:
    """Encrypt a secret string."""
    f = _get_fernet()
    return f.encrypt(value.encode()).decode()


def decrypt_secret(encrypted: str) -> str:
    """Decrypt an encrypted secret string."""
    f = _get_fernet()
    try:
        return f.decrypt(encrypted.encode()).decode()
    except InvalidToken as exc:
        raise CredentialDecryptionError("Stored credential could not be decrypted") from exc
