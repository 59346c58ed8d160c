"""Fernet encryption for values held in the key-value store.

Wellness records carry personal health data (meals, sleep, exercise), so
when an encryption key is configured every stored value is wrapped in a
Fernet token before it reaches SQLite. Keys stay in plaintext so that
per-user enumeration keeps working.
"""

from __future__ import annotations

import logging

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a value cannot be encrypted or decrypted."""


class ValueCipher:
    """Encrypts and decrypts stored text values with a Fernet key.

    Usage::

        cipher = ValueCipher(key=ValueCipher.generate_key())
        token = cipher.encrypt('{"steps": 9000}')
        cipher.decrypt(token)  # '{"steps": 9000}'
    """

    def __init__(self, key: str) -> None:
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode("utf-8"))
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, value: str) -> str:
        """Encrypt a text value to a Fernet token string."""
        return self._fernet.encrypt(value.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str) -> str:
        """Decrypt a Fernet token string back to the original text.

        Raises:
            EncryptionError: If the token is invalid or was made with another key.
        """
        try:
            return self._fernet.decrypt(token.encode("utf-8")).decode("utf-8")
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc

    @staticmethod
    def generate_key() -> str:
        """Generate a new URL-safe base64-encoded Fernet key."""
        return Fernet.generate_key().decode("utf-8")
