"""
Key generation and password-based key derivation.

Derivation uses PBKDF2-HMAC with a fixed salt and iteration count, so the
result for a given password is stable and can be cached. The cache is shared
by every provider in the process and is safe under concurrent first use: two
threads may both derive the same key, but only complete keys are ever stored
or returned.
"""

import os
import threading
from typing import Dict, Optional, Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import ConfigurationError
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.key_generator")

KEY_LENGTH = 32  # AES-256

HASH_ALGORITHMS = {
    "SHA256": hashes.SHA256,
    "SHA1": hashes.SHA1,
}

_CacheKey = Tuple[str, str, int, str, int]

_derived_keys: Dict[_CacheKey, bytes] = {}
_derived_keys_lock = threading.Lock()


class KeyGenerator:
    """
    Generates random keys and derives keys from passwords.

    Thread Safety:
        Safe for concurrent use. Derivation runs outside the cache lock; the
        lock only guards insertion.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def generate_random_key(self, length: int = KEY_LENGTH) -> bytes:
        """Return length cryptographically random bytes."""
        return os.urandom(length)

    def generate_random_hex_key(self, length: int = KEY_LENGTH) -> str:
        """Return a random key of length bytes as a hex string."""
        return self.generate_random_key(length).hex()

    def derive_key_from(self, password: str, length: int = KEY_LENGTH) -> bytes:
        """
        Derive a key from a password with PBKDF2.

        Args:
            password: Secret password (e.g. one entry of ENCRYPTION_PRIMARY_KEY)
            length: Key length in bytes

        Returns:
            Derived key bytes

        Raises:
            ConfigurationError: If password or salt is missing
        """
        if not password:
            raise ConfigurationError("Can't derive a key from an empty password")

        salt = self.settings.require("ENCRYPTION_KEY_DERIVATION_SALT")
        digest = self.settings.ENCRYPTION_HASH_DIGEST_CLASS
        iterations = self.settings.ENCRYPTION_KEY_DERIVATION_ITERATIONS
        cache_key = (password, salt, length, digest, iterations)

        key = _derived_keys.get(cache_key)
        if key is not None:
            return key

        kdf = PBKDF2HMAC(
            algorithm=HASH_ALGORITHMS[digest](),
            length=length,
            salt=salt.encode("utf-8"),
            iterations=iterations,
        )
        key = kdf.derive(password.encode("utf-8"))

        with _derived_keys_lock:
            key = _derived_keys.setdefault(cache_key, key)

        logger.debug("Derived key", digest=digest, iterations=iterations, length=length)
        return key


def clear_derived_key_cache() -> None:
    """Forget every cached derived key."""
    with _derived_keys_lock:
        _derived_keys.clear()
