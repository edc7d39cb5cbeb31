"""
Encryption schemes.

A scheme is the immutable description of how one logical field is encrypted:
which key provider, deterministic or not, whether to downcase, and which
previous schemes to fall back on when decrypting data written before the
scheme changed. Everything is validated and resolved once, at build time.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Mapping, NamedTuple, Optional, Sequence, Tuple, Union

from fieldcrypt.config import Settings, get_settings
from fieldcrypt.errors import ConfigurationError
from fieldcrypt.services.context import validate_context_properties
from fieldcrypt.services.key_providers.base import SupportsKeyProvider
from fieldcrypt.services.key_providers.derived_secret import (
    DerivedSecretKeyProvider,
    DeterministicKeyProvider,
)
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.scheme")

SCHEME_OPTIONS = frozenset(
    {"key_provider", "key", "deterministic", "downcase", "support_unencrypted_data", "previous", "context"}
)


class EncryptionOptions(NamedTuple):
    key_provider: SupportsKeyProvider
    deterministic: bool


class DecryptionOptions(NamedTuple):
    key_provider: SupportsKeyProvider


@dataclass(frozen=True, eq=False)
class EncryptionScheme:
    """
    Immutable encryption settings for one logical field.

    Build schemes with EncryptionScheme.build(); the constructor takes the
    already-resolved values.

    Attributes:
        key_provider: Provider resolved at build time
        deterministic: Same clear text always produces the same stored text
        downcase: Lowercase values before encrypting
        support_unencrypted_data: Return unreadable stored values as legacy clear text
        previous_schemes: Schemes tried, in order, when this one fails to decrypt
        context: Encryption context overrides applied around every operation
        uses_primary_keys: Resolved from ENCRYPTION_PRIMARY_KEY, replaceable by a context key_provider
    """

    key_provider: SupportsKeyProvider
    deterministic: bool = False
    downcase: bool = False
    support_unencrypted_data: bool = False
    previous_schemes: Tuple["EncryptionScheme", ...] = ()
    context: Optional[Mapping[str, Any]] = None
    uses_primary_keys: bool = False
    options: Mapping[str, Any] = field(default_factory=dict, repr=False)
    settings: Optional[Settings] = field(default=None, repr=False)

    @classmethod
    def build(
        cls,
        settings: Optional[Settings] = None,
        *,
        key_provider: Optional[SupportsKeyProvider] = None,
        key: Optional[Union[str, Sequence[str]]] = None,
        deterministic: bool = False,
        downcase: bool = False,
        support_unencrypted_data: Optional[bool] = None,
        previous: Sequence[Union["EncryptionScheme", Mapping[str, Any]]] = (),
        context: Optional[Mapping[str, Any]] = None,
        include_global_previous: bool = True,
    ) -> "EncryptionScheme":
        """
        Validate options and build a scheme.

        Key provider resolution:
            explicit key_provider
            -> key password(s) through DerivedSecretKeyProvider
            -> ENCRYPTION_DETERMINISTIC_KEY for deterministic schemes
            -> ENCRYPTION_PRIMARY_KEY otherwise

        Args:
            settings: Settings to resolve default keys from
            previous: Previous schemes, or option mappings to build them from
            include_global_previous: Try schemes declared in ENCRYPTION_PREVIOUS before the field's own

        Raises:
            ConfigurationError: On conflicting or invalid options, or missing keys
        """
        settings = settings or get_settings()

        if key_provider is not None and key is not None:
            raise ConfigurationError("key_provider and key can't be used simultaneously")
        if key_provider is not None and not isinstance(key_provider, SupportsKeyProvider):
            raise ConfigurationError(
                f"{type(key_provider).__name__} does not implement encryption_key/decryption_keys"
            )
        if context:
            validate_context_properties(dict(context))

        options: Dict[str, Any] = {
            "key_provider": key_provider,
            "key": key,
            "deterministic": bool(deterministic),
            "downcase": bool(downcase),
            "support_unencrypted_data": support_unencrypted_data,
            "context": dict(context) if context else None,
        }
        options = {name: value for name, value in options.items() if value is not None}

        previous_schemes = []
        if include_global_previous:
            previous_schemes.extend(cls._global_previous_schemes(options, settings))
        previous_schemes.extend(cls._previous_scheme(item, settings) for item in previous)

        if support_unencrypted_data is None:
            support_unencrypted_data = settings.ENCRYPTION_SUPPORT_UNENCRYPTED_DATA

        scheme = cls(
            key_provider=cls._resolve_key_provider(key_provider, key, bool(deterministic), settings),
            deterministic=bool(deterministic),
            downcase=bool(downcase),
            support_unencrypted_data=bool(support_unencrypted_data),
            previous_schemes=tuple(previous_schemes),
            context=MappingProxyType(dict(context)) if context else None,
            uses_primary_keys=key_provider is None and key is None and not deterministic,
            options=MappingProxyType(options),
            settings=settings,
        )

        logger.debug(
            "Built encryption scheme",
            deterministic=scheme.deterministic,
            downcase=scheme.downcase,
            previous=len(scheme.previous_schemes),
        )
        return scheme

    @property
    def fixed(self) -> bool:
        """True when stored text is a pure function of the clear text."""
        return self.deterministic

    @property
    def encryption_options(self) -> EncryptionOptions:
        return EncryptionOptions(self.key_provider, self.deterministic)

    @property
    def decryption_options(self) -> DecryptionOptions:
        return DecryptionOptions(self.key_provider)

    def compatible_with(self, other: "EncryptionScheme") -> bool:
        return self.deterministic == other.deterministic

    def merged(self, overrides: Mapping[str, Any], settings: Optional[Settings] = None) -> "EncryptionScheme":
        """
        Build a scheme from this scheme's options updated with overrides.

        A key or key_provider in overrides replaces both of this scheme's key options.
        """
        options = _merge_options(self.options, overrides)
        return EncryptionScheme.build(
            settings or self.settings, include_global_previous=False, **options
        )

    @staticmethod
    def _resolve_key_provider(
        key_provider: Optional[SupportsKeyProvider],
        key: Optional[Union[str, Sequence[str]]],
        deterministic: bool,
        settings: Settings,
    ) -> SupportsKeyProvider:
        if key_provider is not None:
            return key_provider
        if key is not None:
            return DerivedSecretKeyProvider(key, settings)
        if deterministic:
            return DeterministicKeyProvider(
                settings.require("ENCRYPTION_DETERMINISTIC_KEY"), settings
            )
        settings.require("ENCRYPTION_PRIMARY_KEY")
        return DerivedSecretKeyProvider(settings.primary_keys, settings)

    @classmethod
    def _previous_scheme(
        cls,
        item: Union["EncryptionScheme", Mapping[str, Any]],
        settings: Settings,
    ) -> "EncryptionScheme":
        if isinstance(item, EncryptionScheme):
            return item
        if isinstance(item, Mapping):
            return cls.build(settings, include_global_previous=False, **_checked(item))
        raise ConfigurationError(
            f"Previous schemes must be schemes or option mappings, got {type(item).__name__}"
        )

    @classmethod
    def _global_previous_schemes(
        cls,
        options: Mapping[str, Any],
        settings: Settings,
    ) -> list:
        schemes = []
        deterministic = options.get("deterministic", False)
        for global_options in settings.previous_schemes_options:
            # Only schemes of the same kind can have written this field's data
            if bool(global_options.get("deterministic", False)) != deterministic:
                continue
            merged = _merge_options(options, global_options)
            schemes.append(cls.build(settings, include_global_previous=False, **merged))
        return schemes


def _checked(options: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(options) - SCHEME_OPTIONS
    if unknown:
        raise ConfigurationError(f"Unknown scheme options: {', '.join(sorted(unknown))}")
    return dict(options)


def _merge_options(options: Mapping[str, Any], overrides: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(options)
    # A key given in overrides replaces both key options
    if "key" in overrides or "key_provider" in overrides:
        merged.pop("key", None)
        merged.pop("key_provider", None)
    merged.update(overrides)
    return _checked(merged)
