"""
Encryptors turn clear text into stored text and back.

Encryptor is the real thing: it asks a key provider for keys, runs the cipher
and serializes the resulting message. The other encryptors are substituted
through encryption contexts:
- NullEncryptor: encryption disabled, values pass through both ways
- ReadOnlyNullEncryptor: reads pass through, writes fail
- ProtectingEncryptor: reads decrypt normally, writes fail with ProtectedError
"""

from typing import Optional

from fieldcrypt.errors import (
    DecryptionError,
    EncodingError,
    EncryptionBaseError,
    EncryptionError,
    ForbiddenClassError,
    ProtectedError,
)
from fieldcrypt.services.cipher import Cipher
from fieldcrypt.services.key_providers.base import SupportsKeyProvider
from fieldcrypt.services.message_serializer import MessageSerializer
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.encryptor")


class Encryptor:
    """
    Encrypts and decrypts text with keys from a key provider.

    Thread Safety:
        Stateless apart from the cipher and serializer, both stateless too.
        No lock is held during an encrypt or decrypt call.
    """

    def __init__(
        self,
        cipher: Optional[Cipher] = None,
        serializer: Optional[MessageSerializer] = None,
    ):
        self.cipher = cipher or Cipher()
        self.serializer = serializer or MessageSerializer()

    def encrypt(
        self,
        clear_text: str,
        key_provider: SupportsKeyProvider,
        deterministic: bool = False,
    ) -> str:
        """
        Encrypt clear text into stored text.

        Args:
            clear_text: Text to encrypt
            key_provider: Provider of the encryption key
            deterministic: Derive the IV from the clear text instead of randomly

        Returns:
            Serialized message (JSON text)

        Raises:
            ForbiddenClassError: If clear_text is not a string
            EncryptionError: If the provider has no key or encryption fails
        """
        if not isinstance(clear_text, str):
            raise ForbiddenClassError(
                f"Only strings can be encrypted, got {type(clear_text).__name__}"
            )

        key = key_provider.encryption_key()
        if key is None:
            raise EncryptionError("Key provider returned no encryption key")

        message = self.cipher.encrypt(clear_text, key.secret, deterministic=deterministic)
        if key.public_tags:
            message = message.with_headers(key.public_tags)

        return self.serializer.dump(message)

    def decrypt(self, encrypted_text: str, key_provider: SupportsKeyProvider) -> str:
        """
        Decrypt stored text.

        Raises:
            DecryptionError: If the text isn't a message, no key is available,
                or no candidate key authenticates it
        """
        try:
            message = self.serializer.load(encrypted_text)
            keys = key_provider.decryption_keys(message)
            if not keys:
                raise DecryptionError("No decryption keys available for message")

            clear_text = self.cipher.decrypt(message, [key.secret for key in keys])
            return clear_text.decode("utf-8")
        except DecryptionError as e:
            logger.debug("Decryption failed", error=str(e))
            raise
        except (EncodingError, UnicodeDecodeError) as e:
            logger.debug("Stored content is not decryptable", error=e.__class__.__name__)
            raise DecryptionError(f"Can't decrypt content: {e.__class__.__name__}") from e

    def is_encrypted(self, text: str) -> bool:
        """Return True if text parses as a serialized message."""
        try:
            self.serializer.load(text)
            return True
        except EncryptionBaseError:
            return False

    def binary(self) -> bool:
        return False


class NullEncryptor:
    """Encryptor that stores and returns values unchanged."""

    def encrypt(self, clear_text: str, key_provider=None, deterministic: bool = False) -> str:
        return clear_text

    def decrypt(self, encrypted_text: str, key_provider=None) -> str:
        return encrypted_text

    def is_encrypted(self, text: str) -> bool:
        return False

    def binary(self) -> bool:
        return False


class ReadOnlyNullEncryptor(NullEncryptor):
    """Encryptor that returns stored values unchanged and refuses to encrypt."""

    def encrypt(self, clear_text: str, key_provider=None, deterministic: bool = False) -> str:
        raise EncryptionError("Can't encrypt with ReadOnlyNullEncryptor")


class ProtectingEncryptor:
    """Decrypts through the wrapped encryptor and refuses every write."""

    def __init__(self, encryptor=None):
        self.encryptor = encryptor or Encryptor()

    def encrypt(self, clear_text: str, key_provider=None, deterministic: bool = False) -> str:
        raise ProtectedError("Can't modify encrypted data while it is protected")

    def decrypt(self, encrypted_text: str, key_provider: SupportsKeyProvider) -> str:
        return self.encryptor.decrypt(encrypted_text, key_provider)

    def is_encrypted(self, text: str) -> bool:
        return self.encryptor.is_encrypted(text)

    def binary(self) -> bool:
        return self.encryptor.binary()
