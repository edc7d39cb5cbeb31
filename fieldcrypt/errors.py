"""
Exception hierarchy for field encryption.

Kinds:
- ConfigurationError: invalid or missing key/provider/scheme setup. Fatal.
- EncryptionError: the encrypt path failed. Fatal for that write.
- DecryptionError: authentication failure, malformed envelope or no usable key.
  Recoverable only through previous schemes or legacy plaintext tolerance.
- ProtectedError: a write attempted while encrypted data is protected.
"""


class EncryptionBaseError(Exception):
    """Base exception for all field encryption errors."""

    pass


class ConfigurationError(EncryptionBaseError):
    """Raised when keys, providers or schemes are misconfigured."""

    pass


class EncryptionError(EncryptionBaseError):
    """Raised when a value cannot be encrypted."""

    pass


class DecryptionError(EncryptionBaseError):
    """Raised when a stored value cannot be decrypted or authenticated."""

    pass


class EncodingError(EncryptionBaseError):
    """Raised when stored text is not a valid serialized message."""

    pass


class EncryptedContentIntegrityError(EncryptionBaseError):
    """Raised when message headers would be overwritten or hold invalid values."""

    pass


class ForbiddenClassError(EncryptionBaseError):
    """Raised when a value of an unsupported type reaches the cipher."""

    pass


class ProtectedError(EncryptionBaseError):
    """Raised when writing encrypted data while it is protected."""

    pass
