"""
Envelope encryption key provider.

Implements the envelope encryption pattern:
1. Every encryption gets its own random data key
2. The data key encrypts the actual value
3. The primary key encrypts the data key
4. The encrypted data key travels with the message in the "k" header

Benefits:
- Per-value encryption isolation
- Primary keys only ever encrypt 32-byte data keys
- Primary key rotation: all primary keys are tried when unwrapping
"""

from typing import List, Optional

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.services.cipher import Cipher
from fieldcrypt.services.key import Key
from fieldcrypt.services.key_generator import KeyGenerator
from fieldcrypt.services.key_providers.base import KeyProvider
from fieldcrypt.services.key_providers.derived_secret import DerivedSecretKeyProvider
from fieldcrypt.services.message import Message
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.envelope")


class EnvelopeEncryptionKeyProvider(KeyProvider):
    """
    Key provider generating a random data key per encryption.

    Primary keys are resolved through a nested provider, by default a
    DerivedSecretKeyProvider over ENCRYPTION_PRIMARY_KEY.

    Thread Safety:
        This class is thread-safe. Data keys are generated per call and the
        primary provider is immutable.

    Example:
        >>> provider = EnvelopeEncryptionKeyProvider(settings)
        >>> key = provider.encryption_key()      # fresh random data key
        >>> key.public_tags.encrypted_data_key   # data key wrapped by the primary key
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        primary_key_provider: Optional[KeyProvider] = None,
        key_generator: Optional[KeyGenerator] = None,
        cipher: Optional[Cipher] = None,
    ):
        self.settings = settings or get_settings()
        self.key_generator = key_generator or KeyGenerator(self.settings)
        self.cipher = cipher or Cipher()
        if primary_key_provider is None:
            self.settings.require("ENCRYPTION_PRIMARY_KEY")
            primary_key_provider = DerivedSecretKeyProvider(
                self.settings.primary_keys, self.settings, self.key_generator
            )
        self.primary_key_provider = primary_key_provider
        self._store_key_references = self.settings.ENCRYPTION_STORE_KEY_REFERENCES

        logger.info(
            "EnvelopeEncryptionKeyProvider initialized",
            store_key_references=self._store_key_references,
        )

    def encryption_key(self) -> Key:
        primary_key = self.primary_key_provider.encryption_key()
        data_key = self.key_generator.generate_random_key(self.cipher.key_length)

        tags = {"encrypted_data_key": self.cipher.encrypt(data_key, primary_key.secret)}
        if self._store_key_references:
            tags["encrypted_data_key_id"] = primary_key.id

        return Key(data_key, tags, digest=self.settings.ENCRYPTION_HASH_DIGEST_CLASS)

    def decryption_keys(self, message: Message) -> List[Key]:
        encrypted_data_key = message.headers.encrypted_data_key
        if not isinstance(encrypted_data_key, Message):
            return []

        primary_keys = self.primary_key_provider.decryption_keys(message)
        if not primary_keys:
            return []

        data_key = self.cipher.decrypt(
            encrypted_data_key, [key.secret for key in primary_keys]
        )
        return [Key(data_key, digest=self.settings.ENCRYPTION_HASH_DIGEST_CLASS)]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} primary={self.primary_key_provider!r}>"
