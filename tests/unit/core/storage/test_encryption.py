"""Tests for PayloadEncryptor."""

from __future__ import annotations

import pytest

from pacing.core.storage.encryption import EncryptionError, PayloadEncryptor


class TestKeyHandling:
    def test_generate_key_is_usable(self):
        key = PayloadEncryptor.generate_key()
        assert isinstance(key, str)
        PayloadEncryptor(key)

    @pytest.mark.parametrize("key", ["", "   "])
    def test_empty_key_rejected(self, key):
        with pytest.raises(EncryptionError, match="empty"):
            PayloadEncryptor(key)

    def test_malformed_key_rejected(self):
        with pytest.raises(EncryptionError, match="Invalid"):
            PayloadEncryptor("not-a-fernet-key")


class TestPayloads:
    def test_round_trip(self, payload_encryptor):
        payload = {"severity": 4, "polarity": "negative", "name": "headache"}
        token = payload_encryptor.encrypt(payload)
        assert "headache" not in token
        assert payload_encryptor.decrypt(token) == payload

    def test_none_is_empty_string(self, payload_encryptor):
        assert payload_encryptor.encrypt(None) == ""
        assert payload_encryptor.decrypt("") is None

    def test_tokens_are_not_deterministic(self, payload_encryptor):
        payload = {"quality": 3}
        assert payload_encryptor.encrypt(payload) != payload_encryptor.encrypt(payload)

    def test_non_serializable_rejected(self, payload_encryptor):
        with pytest.raises(EncryptionError, match="JSON"):
            payload_encryptor.encrypt({"when": object()})

    def test_wrong_key_rejected(self, payload_encryptor):
        token = payload_encryptor.encrypt({"severity": 1})
        other = PayloadEncryptor(PayloadEncryptor.generate_key())
        with pytest.raises(EncryptionError, match="wrong key"):
            other.decrypt(token)

    def test_tampered_token_rejected(self, payload_encryptor):
        token = payload_encryptor.encrypt({"severity": 1})
        with pytest.raises(EncryptionError):
            payload_encryptor.decrypt(token[:-4] + "AAAA")
