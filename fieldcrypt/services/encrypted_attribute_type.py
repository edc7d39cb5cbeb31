"""
Encrypted attribute type.

Connects a logical field to the encryption engine: values are coerced through
the field's logical type, encrypted with the field's scheme on serialize, and
decrypted on deserialize, falling back to previous schemes for data written
before the scheme changed.

Usage:
    scheme = EncryptionScheme.build(settings, deterministic=True, downcase=True)
    email = EncryptedAttributeType(scheme)

    stored = email.serialize("Hello@Example.com")   # persisted text
    email.deserialize(stored)                        # "hello@example.com"
"""

from contextlib import nullcontext
from typing import Any, List, NamedTuple, Optional, Tuple

from fieldcrypt.errors import ConfigurationError, DecryptionError, EncryptionBaseError
from fieldcrypt.services.attribute_types import AttributeType, StringType
from fieldcrypt.services.context import current_context, with_encryption_context
from fieldcrypt.services.scheme import EncryptionScheme
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.attribute_type")


class DecryptionAttempt(NamedTuple):
    """Outcome of decrypting with one scheme: either ok with a value, or an error."""

    ok: bool
    value: Optional[str] = None
    error: Optional[EncryptionBaseError] = None


class EncryptedAttributeType:
    """
    Serializes a logical value into encrypted stored text and back.

    Thread Safety:
        Instances are immutable and can be shared by every record and thread.
    """

    def __init__(
        self,
        scheme: EncryptionScheme,
        subtype: Optional[AttributeType] = None,
    ):
        self.scheme = scheme
        self.subtype = subtype or StringType()
        self._previous_types = tuple(
            EncryptedAttributeType(previous_scheme, self.subtype)
            for previous_scheme in scheme.previous_schemes
        )

    @property
    def previous_types(self) -> Tuple["EncryptedAttributeType", ...]:
        return self._previous_types

    @property
    def deterministic(self) -> bool:
        return self.scheme.deterministic

    @property
    def downcase(self) -> bool:
        return self.scheme.downcase

    @property
    def support_unencrypted_data(self) -> bool:
        return self.scheme.support_unencrypted_data

    # =========================================================================
    # Serialization
    # =========================================================================

    def serialize(self, value: Any) -> Optional[str]:
        """
        Encrypt a logical value for storage.

        Returns:
            Stored text, or None when the value is absent

        Raises:
            EncryptionError: If encryption fails
            ProtectedError: If encrypted data is protected in the current context
        """
        clear_text = self._clear_text(value)
        if clear_text is None:
            return None
        return self._encrypt(clear_text)

    def deserialize(self, stored: Optional[str]) -> Any:
        """
        Decrypt stored text into a logical value.

        Tries the current scheme, then each previous scheme in order: those from
        ENCRYPTION_PREVIOUS first, then the ones declared on the field.
        Only the last failure is raised. When unencrypted data is supported,
        stored text that fails to decrypt is returned as legacy clear text.

        Raises:
            DecryptionError: If no scheme decrypts the value
            ConfigurationError: If a scheme is misconfigured (never tolerated)
        """
        if stored is None:
            return None

        attempt = self._decrypt_with_fallback(stored)

        if attempt.ok:
            clear_text = attempt.value
        elif isinstance(attempt.error, DecryptionError) and self.support_unencrypted_data:
            logger.debug("Returning undecryptable value as clear text")
            clear_text = stored
        else:
            raise attempt.error

        return self.subtype.deserialize(clear_text)

    def changed_in_place(self, old_stored: Optional[str], new_value: Any) -> bool:
        """
        Return True if new_value differs from the value held in old_stored.

        Comparison happens on decrypted values: non-deterministic stored text
        differs on every write even when the value does not.
        """
        old_value = None if old_stored is None else self.deserialize(old_stored)
        return not self.subtype.equals(old_value, new_value)

    def query_values(self, value: Any) -> List[Optional[str]]:
        """
        Return every stored text that can represent value in this field.

        Covers the current scheme and each previous deterministic scheme, plus
        the clean value when unencrypted data is supported and queries are
        extended. Used to build equality searches across key/scheme changes.

        Raises:
            ConfigurationError: If the field is not deterministic
        """
        if not self.deterministic:
            raise ConfigurationError("Only deterministic encrypted fields can be queried")

        values = [self.serialize(value)]
        values.extend(
            previous_type.serialize(value)
            for previous_type in self._previous_types
            if previous_type.deterministic
        )

        settings = self.scheme.settings
        if self.support_unencrypted_data and settings is not None and settings.ENCRYPTION_EXTEND_QUERIES:
            values.append(self._clear_text(value))

        return list(dict.fromkeys(values))

    # =========================================================================
    # Internals
    # =========================================================================

    def _clear_text(self, value: Any) -> Optional[str]:
        clear_text = self.subtype.serialize(value)
        if clear_text is not None and self.downcase:
            clear_text = clear_text.lower()
        return clear_text

    def _decrypt_with_fallback(self, stored: str) -> DecryptionAttempt:
        attempt = self._try_decrypt(stored)

        for index, previous_type in enumerate(self._previous_types):
            if attempt.ok or not isinstance(attempt.error, DecryptionError):
                break
            logger.debug("Trying previous encryption scheme", index=index)
            attempt = previous_type._try_decrypt(stored)

        return attempt

    def _try_decrypt(self, stored: str) -> DecryptionAttempt:
        try:
            with self._scheme_context():
                context = current_context()
                options = self._in_context(self.scheme.decryption_options, context)
                value = context.encryptor.decrypt(stored, **options._asdict())
        except EncryptionBaseError as e:
            return DecryptionAttempt(ok=False, error=e)
        return DecryptionAttempt(ok=True, value=value)

    def _encrypt(self, clear_text: str) -> str:
        with self._scheme_context():
            context = current_context()
            options = self._in_context(self.scheme.encryption_options, context)
            return context.encryptor.encrypt(clear_text, **options._asdict())

    def _in_context(self, options, context):
        # A context key provider only replaces the primary keys
        if context.key_provider is not None and self.scheme.uses_primary_keys:
            return options._replace(key_provider=context.key_provider)
        return options

    def _scheme_context(self):
        if self.scheme.context:
            return with_encryption_context(**self.scheme.context)
        return nullcontext()

    def __repr__(self) -> str:
        return (
            f"<EncryptedAttributeType subtype={self.subtype.name} "
            f"deterministic={self.deterministic} previous={len(self._previous_types)}>"
        )
