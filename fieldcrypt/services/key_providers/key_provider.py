"""
Key provider over a fixed rotation list of keys.
"""

from typing import List, Optional, Sequence

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import ConfigurationError
from fieldcrypt.services.key import Key
from fieldcrypt.services.key_providers.base import KeyProvider
from fieldcrypt.services.message import Message


class StaticKeyProvider(KeyProvider):
    """
    Serves keys from a rotation list.

    The last key in the list is the active one and encrypts new data; keys are
    tried most-recent-first when decrypting. When key references are stored,
    the active key's id is added to message headers and decryption goes
    straight to the matching key.
    """

    def __init__(self, keys: Sequence[Key], settings: Optional[Settings] = None):
        if isinstance(keys, Key):
            keys = [keys]
        if not keys:
            raise ConfigurationError("A key provider needs at least one key")

        self.settings = settings or get_settings()
        self._keys = tuple(keys)
        self._store_key_references = self.settings.ENCRYPTION_STORE_KEY_REFERENCES

        active = self._keys[-1]
        if self._store_key_references:
            active = active.with_public_tags(encrypted_data_key_id=active.id)
        self._encryption_key = active

    @property
    def keys(self) -> tuple:
        return self._keys

    def encryption_key(self) -> Key:
        return self._encryption_key

    def decryption_keys(self, message: Message) -> List[Key]:
        key_id = message.headers.encrypted_data_key_id
        if key_id:
            return self.keys_for_id(key_id)
        return list(reversed(self._keys))

    def keys_for_id(self, key_id: str) -> List[Key]:
        return [key for key in reversed(self._keys) if key.id == key_id]

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} keys={len(self._keys)}>"
