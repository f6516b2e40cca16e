"""Tests for the FieldEncryptor (Fernet-based field encryption)."""

from __future__ import annotations

import pytest
from cryptography.fernet import Fernet

from cardioguard.core.storage.encryption import EncryptionError, FieldEncryptor


@pytest.fixture
def key() -> str:
    return Fernet.generate_key().decode()


@pytest.fixture
def encryptor(key: str) -> FieldEncryptor:
    return FieldEncryptor(key)


class TestRoundTrip:
    def test_profile_round_trip(self, encryptor: FieldEncryptor):
        data = {"heartFailureType": "HFrEF", "medicationIds": ["digoxin"], "age": 64}
        token = encryptor.encrypt(data)
        assert isinstance(token, str)
        assert "HFrEF" not in token
        assert encryptor.decrypt(token) == data

    def test_list_round_trip(self, encryptor: FieldEncryptor):
        data = [{"date": "2026-03-10", "fatigueLevel": 3}]
        assert encryptor.decrypt(encryptor.encrypt(data)) == data

    def test_none_is_empty(self, encryptor: FieldEncryptor):
        assert encryptor.encrypt(None) == ""
        assert encryptor.decrypt("") is None
        assert encryptor.decrypt(None) is None

    def test_key_is_stripped(self, key: str):
        token = FieldEncryptor(f"  {key}\n").encrypt({"a": 1})
        assert FieldEncryptor(key).decrypt(token) == {"a": 1}

    def test_generate_key_is_usable(self):
        enc = FieldEncryptor(FieldEncryptor.generate_key())
        assert enc.decrypt(enc.encrypt(72)) == 72


class TestKeyValidation:
    def test_empty_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("")

    def test_whitespace_key_raises(self):
        with pytest.raises(EncryptionError, match="must not be empty"):
            FieldEncryptor("   ")

    def test_invalid_key_raises(self):
        with pytest.raises(EncryptionError, match="Invalid encryption key"):
            FieldEncryptor("not-a-valid-fernet-key")


class TestCorruptData:
    def test_wrong_key_cannot_decrypt(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt({"secret": "data"})
        other = FieldEncryptor(Fernet.generate_key().decode())
        with pytest.raises(EncryptionError, match="invalid token"):
            other.decrypt(token)

    def test_tampered_token_raises(self, encryptor: FieldEncryptor):
        token = encryptor.encrypt({"data": 1})
        with pytest.raises(EncryptionError):
            encryptor.decrypt(token[:-5] + "XXXXX")

    def test_unserializable_value_raises(self, encryptor: FieldEncryptor):
        with pytest.raises(EncryptionError, match="JSON-serializable"):
            encryptor.encrypt({"when": object()})
