"""
Unit tests for encryptors.

Tests cover:
- Encrypt/decrypt round trip through stored text
- Key provider tags in headers
- Error mapping: non-messages, missing keys and tampering
- Null, read-only and protecting encryptors
"""
import base64
import json

import pytest

from fieldcrypt.errors import DecryptionError, EncryptionError, ForbiddenClassError, ProtectedError
from fieldcrypt.services.encryptor import (
    Encryptor,
    NullEncryptor,
    ProtectingEncryptor,
    ReadOnlyNullEncryptor,
)
from fieldcrypt.services.key_providers import (
    DerivedSecretKeyProvider,
    EnvelopeEncryptionKeyProvider,
)


@pytest.fixture
def encryptor():
    return Encryptor()


@pytest.fixture
def provider(settings):
    return DerivedSecretKeyProvider("password", settings)


def _tamper_payload(stored: str) -> str:
    data = json.loads(stored)
    payload = base64.b64decode(data["p"])
    data["p"] = base64.b64encode(bytes([payload[0] ^ 0x01]) + payload[1:]).decode()
    return json.dumps(data)


# =============================================================================
# Encryptor
# =============================================================================


class TestEncryptor:
    """Tests for Encryptor."""

    def test_round_trip(self, encryptor, provider):
        stored = encryptor.encrypt("hello@example.com", provider)

        assert stored != "hello@example.com"
        assert encryptor.decrypt(stored, provider) == "hello@example.com"

    def test_stored_text_is_message_json(self, encryptor, provider):
        """Stored text is a serialized message."""
        data = json.loads(encryptor.encrypt("value", provider))

        assert set(data) == {"p", "h"}
        assert {"iv", "at"} <= set(data["h"])

    def test_non_deterministic_by_default(self, encryptor, provider):
        assert encryptor.encrypt("value", provider) != encryptor.encrypt("value", provider)

    def test_deterministic(self, encryptor, provider):
        first = encryptor.encrypt("value", provider, deterministic=True)

        assert first == encryptor.encrypt("value", provider, deterministic=True)

    def test_key_tags_are_stored(self, encryptor, make_settings):
        """Public tags of the encryption key become message headers."""
        provider = DerivedSecretKeyProvider(
            "password", make_settings(ENCRYPTION_STORE_KEY_REFERENCES=True)
        )

        data = json.loads(encryptor.encrypt("value", provider))

        assert data["h"]["i"] == provider.encryption_key().id

    def test_envelope_round_trip(self, encryptor, settings):
        provider = EnvelopeEncryptionKeyProvider(settings)

        stored = encryptor.encrypt("value", provider)

        assert "k" in json.loads(stored)["h"]
        assert encryptor.decrypt(stored, provider) == "value"

    def test_rejects_non_string(self, encryptor, provider):
        with pytest.raises(ForbiddenClassError):
            encryptor.encrypt(12345, provider)

    def test_provider_without_key(self, encryptor):
        class EmptyProvider:
            def encryption_key(self):
                return None

            def decryption_keys(self, message):
                return []

        with pytest.raises(EncryptionError, match="no encryption key"):
            encryptor.encrypt("value", EmptyProvider())

    def test_decrypt_plain_text(self, encryptor, provider):
        """Text that isn't a message is a decryption error."""
        with pytest.raises(DecryptionError):
            encryptor.decrypt("hello@example.com", provider)

    def test_decrypt_with_wrong_key(self, encryptor, provider, settings):
        stored = encryptor.encrypt("value", provider)

        with pytest.raises(DecryptionError):
            encryptor.decrypt(stored, DerivedSecretKeyProvider("other", settings))

    def test_decrypt_tampered(self, encryptor, provider):
        stored = encryptor.encrypt("value", provider)

        with pytest.raises(DecryptionError):
            encryptor.decrypt(_tamper_payload(stored), provider)

    def test_decrypt_without_candidate_keys(self, encryptor, settings):
        """Envelope providers have no keys for messages lacking a data key."""
        stored = encryptor.encrypt("value", DerivedSecretKeyProvider("password", settings))

        with pytest.raises(DecryptionError, match="No decryption keys"):
            encryptor.decrypt(stored, EnvelopeEncryptionKeyProvider(settings))

    def test_is_encrypted(self, encryptor, provider):
        assert encryptor.is_encrypted(encryptor.encrypt("value", provider))
        assert not encryptor.is_encrypted("value")
        assert not encryptor.binary()


# =============================================================================
# Substitute encryptors
# =============================================================================


class TestSubstituteEncryptors:
    """Tests for NullEncryptor, ReadOnlyNullEncryptor and ProtectingEncryptor."""

    def test_null_encryptor_passes_through(self, provider):
        encryptor = NullEncryptor()

        assert encryptor.encrypt("value", provider) == "value"
        assert encryptor.decrypt("value", provider) == "value"
        assert not encryptor.is_encrypted("value")

    def test_read_only_null_encryptor(self, provider):
        encryptor = ReadOnlyNullEncryptor()

        assert encryptor.decrypt("value", provider) == "value"
        with pytest.raises(EncryptionError):
            encryptor.encrypt("value", provider)

    def test_protecting_encryptor_reads(self, encryptor, provider):
        """Reads decrypt through the wrapped encryptor."""
        stored = encryptor.encrypt("value", provider)

        assert ProtectingEncryptor(encryptor).decrypt(stored, provider) == "value"
        assert ProtectingEncryptor(encryptor).is_encrypted(stored)

    def test_protecting_encryptor_refuses_writes(self, encryptor, provider):
        with pytest.raises(ProtectedError):
            ProtectingEncryptor(encryptor).encrypt("value", provider)
