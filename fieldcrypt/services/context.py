"""
Scoped encryption contexts.

A context overrides the encryptor and/or key provider for the dynamic extent
of a `with` block. Contexts live in a ContextVar, so they are local to the
thread or asyncio task that set them: another thread never observes them, and
they are removed on exit even when the block raises. Nested contexts are
allowed; the innermost one wins.

Usage:
    with without_encryption():
        record.email = "stored as plaintext"

    with protecting_encrypted_data():
        value = attribute_type.deserialize(stored)   # reads still decrypt
        attribute_type.serialize("new")              # raises ProtectedError
"""

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass, fields, replace
from typing import Any, Iterator, Optional

from fieldcrypt.errors import ConfigurationError
from fieldcrypt.services.encryptor import Encryptor, NullEncryptor, ProtectingEncryptor
from fieldcrypt.services.key_providers.base import SupportsKeyProvider
from fieldcrypt.utils.logger import get_logger

logger = get_logger("encryption.context")


@dataclass(frozen=True)
class Context:
    """
    Encryption collaborators in effect for the current unit of work.

    Attributes:
        encryptor: Encryptor used by every encrypt/decrypt in scope
        key_provider: When set, replaces the primary keys of schemes in scope.
            Schemes with their own key, key_provider or deterministic key keep them.
    """

    encryptor: Any
    key_provider: Optional[SupportsKeyProvider] = None


CONTEXT_PROPERTIES = frozenset(f.name for f in fields(Context))

_default_context = Context(encryptor=Encryptor())
_current: ContextVar[Optional[Context]] = ContextVar("fieldcrypt_context", default=None)


def default_context() -> Context:
    """Return the context used when no override is active."""
    return _default_context


def current_context() -> Context:
    """Return the innermost active context, or the default one."""
    return _current.get() or _default_context


def current_encryptor() -> Any:
    return current_context().encryptor


def validate_context_properties(properties: dict) -> None:
    """
    Check override names.

    Raises:
        ConfigurationError: If a name is not a context property
    """
    unknown = set(properties) - CONTEXT_PROPERTIES
    if unknown:
        raise ConfigurationError(
            f"Unknown encryption context properties: {', '.join(sorted(unknown))}"
        )


@contextmanager
def with_encryption_context(**properties: Any) -> Iterator[Context]:
    """
    Run the block with the given context properties overridden.

    Properties not given are inherited from the enclosing context.

    Raises:
        ConfigurationError: If an unknown property is given
    """
    validate_context_properties(properties)

    context = replace(current_context(), **properties)
    token = _current.set(context)
    logger.debug("Entered encryption context", overrides=",".join(sorted(properties)))
    try:
        yield context
    finally:
        _current.reset(token)


@contextmanager
def without_encryption() -> Iterator[Context]:
    """Store clear text on write and return stored values unchanged on read."""
    with with_encryption_context(encryptor=NullEncryptor()) as context:
        yield context


@contextmanager
def protecting_encrypted_data() -> Iterator[Context]:
    """Keep reads decrypting while refusing every encrypted write."""
    encryptor = ProtectingEncryptor(current_encryptor())
    with with_encryption_context(encryptor=encryptor) as context:
        yield context
