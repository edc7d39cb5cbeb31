"""
Abstract base class for key providers.

A key provider supplies:
1. The key used for new encryptions (for rotation lists, the newest key)
2. The ordered candidate keys to try when decrypting a given message

Any object exposing these two methods can be used as a key provider; the ABC
documents the contract and provides shared helpers, the SupportsKeyProvider
protocol describes the structural requirement for custom implementations.
"""

from abc import ABC, abstractmethod
from typing import List, Protocol, runtime_checkable

from fieldcrypt.services.key import Key
from fieldcrypt.services.message import Message


@runtime_checkable
class SupportsKeyProvider(Protocol):
    """Structural contract accepted wherever a key provider is expected."""

    def encryption_key(self) -> Key:
        ...

    def decryption_keys(self, message: Message) -> List[Key]:
        ...


class KeyProvider(ABC):
    """
    Abstract base class for key providers.

    Thread Safety:
        Implementations are shared by every operation on a field and must be
        safe for concurrent use. Providers in this package are immutable after
        construction.

    Example:
        >>> provider = DerivedSecretKeyProvider(["old-password", "new-password"], settings)
        >>> key = provider.encryption_key()  # derived from "new-password"
        >>> candidates = provider.decryption_keys(message)
    """

    @abstractmethod
    def encryption_key(self) -> Key:
        """
        Return the key to encrypt new data with.

        Raises:
            ConfigurationError: If the provider has no usable key
        """
        pass

    @abstractmethod
    def decryption_keys(self, message: Message) -> List[Key]:
        """
        Return candidate keys for decrypting message, in the order to try them.

        An empty list means the message can't be decrypted by this provider.
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}>"
