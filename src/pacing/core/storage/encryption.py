"""Fernet encryption for observation payloads and calibration state at rest.

Ratings and calibration samples are encrypted before they are written to
SQLite. Effective dates and physiological sample values stay in clear text
so range queries can use indexes.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when encryption/decryption fails."""


class PayloadEncryptor:
    """Round-trips JSON-serializable payloads through Fernet tokens.

    Usage::

        encryptor = PayloadEncryptor(key=PayloadEncryptor.generate_key())
        token = encryptor.encrypt({"severity": 4, "polarity": "negative"})
        encryptor.decrypt(token)  # {"severity": 4, "polarity": "negative"}
    """

    def __init__(self, key: str) -> None:
        """
        Args:
            key: A Fernet key, e.g. from :meth:`generate_key`.

        Raises:
            EncryptionError: If the key is empty or not a valid Fernet key.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.encode())
        except ValueError as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, payload: Any) -> str:
        """Serialize *payload* to compact JSON and encrypt it.

        ``None`` encrypts to the empty string.

        Raises:
            EncryptionError: If the payload is not JSON-serializable.
        """
        if payload is None:
            return ""
        try:
            plaintext = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Payload is not JSON-serializable: {exc}") from exc
        return self._fernet.encrypt(plaintext).decode("utf-8")

    def decrypt(self, token: str) -> Any:
        """Decrypt a token produced by :meth:`encrypt`.

        The empty string decrypts to ``None``.

        Raises:
            EncryptionError: On a wrong key, a tampered token or bad JSON.
        """
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        try:
            return json.loads(plaintext)
        except json.JSONDecodeError as exc:
            raise EncryptionError(f"Decrypted payload is not JSON: {exc}") from exc

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")
