"""Fernet field encryption for sensitive blobs in the data bank.

The profile, symptom check-ins and sync payloads are stored as encrypted
JSON. Metric samples stay in plain columns so time-range queries can use
the database index.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class EncryptionError(Exception):
    """Raised when a key is unusable or a token cannot be decrypted."""


class FieldEncryptor:
    """Round-trips JSON-serializable values through Fernet tokens.

    Usage::

        encryptor = FieldEncryptor(FieldEncryptor.generate_key())
        token = encryptor.encrypt({"heartFailureType": "HFrEF"})
        encryptor.decrypt(token)  # {"heartFailureType": "HFrEF"}
    """

    def __init__(self, key: str) -> None:
        """
        Args:
            key: URL-safe base64 Fernet key (see :meth:`generate_key`).

        Raises:
            EncryptionError: If the key is blank or malformed.
        """
        if not key or not key.strip():
            raise EncryptionError("Encryption key must not be empty")
        try:
            self._fernet = Fernet(key.strip().encode("utf-8"))
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Invalid encryption key: {exc}") from exc

    def encrypt(self, data: Any) -> str:
        """Serialize ``data`` to compact JSON and encrypt it.

        ``None`` encrypts to the empty string so optional columns stay empty.
        """
        if data is None:
            return ""
        try:
            plaintext = json.dumps(data, separators=(",", ":"), sort_keys=True)
        except (TypeError, ValueError) as exc:
            raise EncryptionError(f"Value is not JSON-serializable: {exc}") from exc
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, token: str | None) -> Any:
        """Decrypt a token produced by :meth:`encrypt`; empty tokens give None."""
        if not token:
            return None
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise EncryptionError("Decryption failed: invalid token or wrong key") from exc
        return json.loads(plaintext)

    @staticmethod
    def generate_key() -> str:
        return Fernet.generate_key().decode("utf-8")
