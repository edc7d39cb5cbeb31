"""
Authenticated encryption of clear text into messages.

Uses AES-256-GCM for authenticated encryption (confidentiality + integrity):
- 96-bit IV per encryption
- 128-bit authentication tag, stored in the "at" header
- Random IVs by default; deterministic IVs derived as
  HMAC-SHA256(key, clear_text) truncated to 96 bits, so the same key and clear
  text always produce the same message (needed for equality queries)
"""

import hashlib
import hmac
import os
from typing import Iterable, Optional, Sequence, Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from fieldcrypt.errors import DecryptionError, EncryptionError
from fieldcrypt.services.message import Message, Properties
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.cipher")

# Constants
KEY_LENGTH = 32  # AES-256
IV_LENGTH = 12  # 96 bits for GCM
AUTH_TAG_LENGTH = 16  # 128 bits


class Aes256Gcm:
    """
    AES-256-GCM with random or deterministic initialization vectors.

    Thread Safety:
        Instances hold only the secret and are safe to share.
    """

    def __init__(self, secret: bytes, deterministic: bool = False):
        if not isinstance(secret, bytes) or len(secret) != KEY_LENGTH:
            raise EncryptionError(f"AES-256-GCM requires a {KEY_LENGTH}-byte key")
        self._secret = secret
        self._deterministic = deterministic

    def encrypt(self, clear_text: bytes) -> Message:
        """
        Encrypt clear text.

        Output: Message(payload=ciphertext, headers={iv, at})
        """
        iv = self._generate_deterministic_iv(clear_text) if self._deterministic else os.urandom(IV_LENGTH)

        # AESGCM appends the tag to the ciphertext
        encrypted = AESGCM(self._secret).encrypt(iv, clear_text, None)
        payload, auth_tag = encrypted[:-AUTH_TAG_LENGTH], encrypted[-AUTH_TAG_LENGTH:]

        return Message(payload, Properties(iv=iv, at=auth_tag))

    def decrypt(self, message: Message) -> bytes:
        """
        Decrypt and authenticate a message.

        Raises:
            DecryptionError: If headers are missing/invalid or authentication fails
        """
        iv = message.headers.iv
        auth_tag = message.headers.auth_tag

        if iv is None or auth_tag is None:
            raise DecryptionError("Message is missing its iv or auth tag")
        if len(iv) != IV_LENGTH or len(auth_tag) != AUTH_TAG_LENGTH:
            raise DecryptionError("Message iv or auth tag has an invalid length")

        try:
            return AESGCM(self._secret).decrypt(iv, message.payload + auth_tag, None)
        except InvalidTag as e:
            raise DecryptionError("Authentication failed - wrong key or tampered content") from e

    def _generate_deterministic_iv(self, clear_text: bytes) -> bytes:
        return hmac.new(self._secret, clear_text, hashlib.sha256).digest()[:IV_LENGTH]


class Cipher:
    """
    Encrypts with one key and decrypts by trying candidate keys in order.

    Decryption never stops at the first failing key: with key rotation, the
    right key can be anywhere in the list.
    """

    key_length = KEY_LENGTH
    iv_length = IV_LENGTH

    def encrypt(self, clear_text: Union[str, bytes], key: bytes, deterministic: bool = False) -> Message:
        """Encrypt clear text with key."""
        if isinstance(clear_text, str):
            clear_text = clear_text.encode("utf-8")
        return Aes256Gcm(key, deterministic=deterministic).encrypt(clear_text)

    def decrypt(self, message: Message, key: Union[bytes, Sequence[bytes]]) -> bytes:
        """
        Decrypt message with the first candidate key that authenticates.

        Args:
            message: Message to decrypt
            key: One secret or an ordered sequence of candidate secrets

        Raises:
            DecryptionError: If no candidate key decrypts the message
        """
        keys: Iterable[bytes] = [key] if isinstance(key, bytes) else key
        last_error: Optional[DecryptionError] = None
        attempts = 0

        for secret in keys:
            attempts += 1
            try:
                return Aes256Gcm(secret).decrypt(message)
            except (DecryptionError, EncryptionError) as e:
                last_error = e if isinstance(e, DecryptionError) else DecryptionError(str(e))

        if last_error is None:
            raise DecryptionError("No decryption keys available")

        logger.debug("No candidate key decrypted the message", attempts=attempts)
        raise last_error
