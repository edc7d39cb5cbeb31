"""
Key providers deriving their keys from passwords.

Key derivation:
    key = PBKDF2(password, salt=ENCRYPTION_KEY_DERIVATION_SALT,
                 iterations=ENCRYPTION_KEY_DERIVATION_ITERATIONS)

Derived keys are cached by the key generator, so building many providers over
the same passwords only pays for derivation once.
"""

from typing import Optional, Sequence, Union

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import ConfigurationError
from fieldcrypt.services.key import Key
from fieldcrypt.services.key_generator import KeyGenerator
from fieldcrypt.services.key_providers.key_provider import StaticKeyProvider
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.derived_secret")


class DerivedSecretKeyProvider(StaticKeyProvider):
    """
    Rotation list of keys derived from passwords.

    The last password is active for encryption.

    Example:
        >>> provider = DerivedSecretKeyProvider(["retired", "current"], settings)
        >>> provider.encryption_key().id == Key.derive_from("current", settings).id
        True
    """

    def __init__(
        self,
        passwords: Union[str, Sequence[str]],
        settings: Optional[Settings] = None,
        key_generator: Optional[KeyGenerator] = None,
    ):
        settings = settings or get_settings()
        key_generator = key_generator or KeyGenerator(settings)

        if isinstance(passwords, str):
            passwords = [passwords]
        if not passwords:
            raise ConfigurationError("At least one password is required to derive keys")

        keys = [Key.derive_from(password, settings, key_generator) for password in passwords]
        super().__init__(keys, settings)

        logger.debug("DerivedSecretKeyProvider initialized", keys=len(keys))


class DeterministicKeyProvider(DerivedSecretKeyProvider):
    """
    Derived-secret provider for deterministic encryption.

    Deterministic ciphertext is used for lookups, so its key can't be rotated:
    exactly one password is accepted.
    """

    def __init__(
        self,
        password: Union[str, Sequence[str]],
        settings: Optional[Settings] = None,
        key_generator: Optional[KeyGenerator] = None,
    ):
        passwords = [password] if isinstance(password, str) else list(password)
        if len(passwords) > 1:
            raise ConfigurationError("Deterministic encryption keys can't be rotated")
        super().__init__(passwords, settings, key_generator)
