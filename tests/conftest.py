"""
Pytest configuration and fixtures for fieldcrypt tests.
"""
from typing import Callable

import pytest

from fieldcrypt.config import Settings
from fieldcrypt.services.encrypted_attribute_type import EncryptedAttributeType
from fieldcrypt.services.scheme import EncryptionScheme


TEST_SETTINGS = {
    "ENCRYPTION_PRIMARY_KEY": "test-primary-key-12345678",
    "ENCRYPTION_DETERMINISTIC_KEY": "test-deterministic-key-12345678",
    "ENCRYPTION_KEY_DERIVATION_SALT": "test-key-derivation-salt",
    "ENCRYPTION_KEY_DERIVATION_ITERATIONS": 1000,  # Keep derivation fast in tests
}


@pytest.fixture
def make_settings() -> Callable[..., Settings]:
    """Build Settings from the test defaults plus overrides."""

    def _make(**overrides) -> Settings:
        return Settings(_env_file=None, **{**TEST_SETTINGS, **overrides})

    return _make


@pytest.fixture
def settings(make_settings) -> Settings:
    """Default test settings."""
    return make_settings()


@pytest.fixture
def encrypted_string(settings) -> EncryptedAttributeType:
    """Non-deterministic encrypted string field."""
    return EncryptedAttributeType(EncryptionScheme.build(settings))


@pytest.fixture
def deterministic_string(settings) -> EncryptedAttributeType:
    """Deterministic encrypted string field."""
    return EncryptedAttributeType(EncryptionScheme.build(settings, deterministic=True))
