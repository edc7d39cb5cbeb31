"""
Transparent per-field encryption.

Values are encrypted with AES-256-GCM before persistence and decrypted on
read. Supports key rotation, envelope encryption, deterministic encryption for
equality queries, previous-scheme fallback and scoped encryption contexts.
"""
from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import (
    ConfigurationError,
    DecryptionError,
    EncodingError,
    EncryptedContentIntegrityError,
    EncryptionBaseError,
    EncryptionError,
    ForbiddenClassError,
    ProtectedError,
)
from fieldcrypt.services.attribute_types import (
    AttributeType,
    BooleanType,
    DecimalType,
    FloatType,
    IntegerType,
    JSONType,
    StringType,
)
from fieldcrypt.services.cipher import Cipher
from fieldcrypt.services.context import (
    protecting_encrypted_data,
    with_encryption_context,
    without_encryption,
)
from fieldcrypt.services.encrypted_attribute_type import EncryptedAttributeType
from fieldcrypt.services.encryptor import (
    Encryptor,
    NullEncryptor,
    ProtectingEncryptor,
    ReadOnlyNullEncryptor,
)
from fieldcrypt.services.key import Key
from fieldcrypt.services.key_providers import (
    DerivedSecretKeyProvider,
    DeterministicKeyProvider,
    EnvelopeEncryptionKeyProvider,
    KeyProvider,
    StaticKeyProvider,
    build_key_provider,
)
from fieldcrypt.services.message import Message
from fieldcrypt.services.scheme import EncryptionScheme

__all__ = [
    "Settings",
    "get_settings",
    "ConfigurationError",
    "DecryptionError",
    "EncodingError",
    "EncryptedContentIntegrityError",
    "EncryptionBaseError",
    "EncryptionError",
    "ForbiddenClassError",
    "ProtectedError",
    "AttributeType",
    "BooleanType",
    "DecimalType",
    "FloatType",
    "IntegerType",
    "JSONType",
    "StringType",
    "Cipher",
    "protecting_encrypted_data",
    "with_encryption_context",
    "without_encryption",
    "EncryptedAttributeType",
    "Encryptor",
    "NullEncryptor",
    "ProtectingEncryptor",
    "ReadOnlyNullEncryptor",
    "Key",
    "DerivedSecretKeyProvider",
    "DeterministicKeyProvider",
    "EnvelopeEncryptionKeyProvider",
    "KeyProvider",
    "StaticKeyProvider",
    "build_key_provider",
    "Message",
    "EncryptionScheme",
]
