"""
Encryption keys.

A key is a secret plus public tags. Public tags are stored unencrypted in the
headers of every message the key encrypts (e.g. a key id, or the encrypted
data key in envelope encryption).
"""

import hashlib
from typing import Any, Mapping, Optional

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import ConfigurationError
from fieldcrypt.services.key_generator import KeyGenerator
from fieldcrypt.services.message import Properties

KEY_ID_LENGTH = 4


class Key:
    """Immutable secret with unencrypted public tags."""

    __slots__ = ("_secret", "_public_tags", "_id")

    def __init__(
        self,
        secret: bytes,
        public_tags: Optional[Mapping[str, Any]] = None,
        digest: str = "SHA256",
    ):
        if not isinstance(secret, bytes) or not secret:
            raise ConfigurationError("Key secret must be non-empty bytes")

        self._secret = secret
        self._public_tags = (
            public_tags if isinstance(public_tags, Properties) else Properties(public_tags)
        )
        self._id = hashlib.new(digest.lower(), secret).hexdigest()[:KEY_ID_LENGTH]

    @classmethod
    def derive_from(
        cls,
        password: str,
        settings: Optional[Settings] = None,
        key_generator: Optional[KeyGenerator] = None,
    ) -> "Key":
        """Build a key by deriving its secret from a password."""
        settings = settings or get_settings()
        key_generator = key_generator or KeyGenerator(settings)
        return cls(
            key_generator.derive_key_from(password),
            digest=settings.ENCRYPTION_HASH_DIGEST_CLASS,
        )

    @property
    def secret(self) -> bytes:
        return self._secret

    @property
    def public_tags(self) -> Properties:
        return self._public_tags

    @property
    def id(self) -> str:
        """Short digest of the secret, used as a key reference in headers."""
        return self._id

    def with_public_tags(self, **tags: Any) -> "Key":
        """Return a copy of this key carrying extra public tags."""
        key = Key.__new__(Key)
        key._secret = self._secret
        key._public_tags = self._public_tags.with_values(**tags)
        key._id = self._id
        return key

    def __repr__(self) -> str:
        # Never include the secret
        return f"<Key id={self._id} tags={sorted(self._public_tags)}>"
