"""
Key providers package.

Provides the keys used to encrypt new values and the candidate keys for
decrypting stored ones. Each provider implements the KeyProvider ABC.

Available providers:
- StaticKeyProvider: Rotation list of explicit keys
- DerivedSecretKeyProvider: Keys derived from passwords with PBKDF2
- DeterministicKeyProvider: Single derived key for deterministic encryption
- EnvelopeEncryptionKeyProvider: Random data key per value, wrapped by a primary key
"""

from typing import Optional

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.services.key_providers.base import KeyProvider, SupportsKeyProvider
from fieldcrypt.services.key_providers.derived_secret import (
    DerivedSecretKeyProvider,
    DeterministicKeyProvider,
)
from fieldcrypt.services.key_providers.envelope import EnvelopeEncryptionKeyProvider
from fieldcrypt.services.key_providers.key_provider import StaticKeyProvider


def build_key_provider(
    settings: Optional[Settings] = None,
    kind: str = "derived",
) -> KeyProvider:
    """
    Factory function to create a key provider over the primary keys.

    Args:
        settings: Settings holding ENCRYPTION_PRIMARY_KEY and the derivation salt
        kind: Provider type ("derived" or "envelope")

    Returns:
        Configured KeyProvider

    Raises:
        ValueError: If kind is not supported
        ConfigurationError: If primary keys are missing

    Example:
        >>> provider = build_key_provider(settings, kind="envelope")
    """
    settings = settings or get_settings()

    if kind == "derived":
        settings.require("ENCRYPTION_PRIMARY_KEY")
        return DerivedSecretKeyProvider(settings.primary_keys, settings)

    if kind == "envelope":
        return EnvelopeEncryptionKeyProvider(settings)

    raise ValueError(f"Unsupported key provider: {kind}")


__all__ = [
    "KeyProvider",
    "SupportsKeyProvider",
    "StaticKeyProvider",
    "DerivedSecretKeyProvider",
    "DeterministicKeyProvider",
    "EnvelopeEncryptionKeyProvider",
    "build_key_provider",
]
