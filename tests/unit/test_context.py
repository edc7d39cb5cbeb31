"""
Unit tests for encryption contexts.

Tests cover:
- Overriding and restoring the encryptor and key provider
- Nesting and restoration on exceptions
- without_encryption and protecting_encrypted_data
- Isolation between threads and asyncio tasks
"""
import asyncio
import threading

import pytest

from fieldcrypt.errors import ConfigurationError, ProtectedError
from fieldcrypt.services.context import (
    current_context,
    current_encryptor,
    default_context,
    protecting_encrypted_data,
    with_encryption_context,
    without_encryption,
)
from fieldcrypt.services.encryptor import Encryptor, NullEncryptor, ProtectingEncryptor
from fieldcrypt.services.key_providers import DerivedSecretKeyProvider


# =============================================================================
# Scoping
# =============================================================================


class TestEncryptionContext:
    """Tests for with_encryption_context."""

    def test_default_context(self):
        """Outside any block the default encryptor is active."""
        assert current_context() is default_context()
        assert isinstance(current_encryptor(), Encryptor)

    def test_override_and_restore(self):
        encryptor = NullEncryptor()

        with with_encryption_context(encryptor=encryptor) as context:
            assert current_encryptor() is encryptor
            assert context.encryptor is encryptor

        assert current_context() is default_context()

    def test_key_provider_override(self, settings):
        provider = DerivedSecretKeyProvider("password", settings)

        with with_encryption_context(key_provider=provider):
            assert current_context().key_provider is provider
            assert isinstance(current_encryptor(), Encryptor)

        assert current_context().key_provider is None

    def test_nested_contexts(self, settings):
        """Inner blocks inherit properties they don't override."""
        provider = DerivedSecretKeyProvider("password", settings)
        null = NullEncryptor()

        with with_encryption_context(key_provider=provider):
            with with_encryption_context(encryptor=null):
                assert current_encryptor() is null
                assert current_context().key_provider is provider
            assert isinstance(current_encryptor(), Encryptor)
            assert current_context().key_provider is provider

    def test_restored_on_exception(self):
        """The previous context comes back even when the block raises."""
        with pytest.raises(RuntimeError):
            with with_encryption_context(encryptor=NullEncryptor()):
                raise RuntimeError("boom")

        assert current_context() is default_context()

    def test_unknown_property(self):
        with pytest.raises(ConfigurationError, match="Unknown encryption context properties"):
            with with_encryption_context(cipher=object()):
                pass


class TestContextHelpers:
    """Tests for without_encryption and protecting_encrypted_data."""

    def test_without_encryption(self):
        with without_encryption():
            assert isinstance(current_encryptor(), NullEncryptor)

        assert isinstance(current_encryptor(), Encryptor)

    def test_protecting_encrypted_data(self, settings):
        """Reads decrypt, writes raise."""
        provider = DerivedSecretKeyProvider("password", settings)
        stored = current_encryptor().encrypt("value", provider)

        with protecting_encrypted_data():
            encryptor = current_encryptor()
            assert isinstance(encryptor, ProtectingEncryptor)
            assert encryptor.decrypt(stored, provider) == "value"
            with pytest.raises(ProtectedError):
                encryptor.encrypt("new", provider)


# =============================================================================
# Isolation
# =============================================================================


class TestContextIsolation:
    """Contexts are local to a thread or asyncio task."""

    def test_other_thread_does_not_see_context(self):
        seen = []
        entered = threading.Event()
        checked = threading.Event()

        def other_thread():
            entered.wait(timeout=5)
            seen.append(current_encryptor())
            checked.set()

        thread = threading.Thread(target=other_thread)
        thread.start()

        with without_encryption():
            entered.set()
            checked.wait(timeout=5)

        thread.join(timeout=5)

        assert len(seen) == 1
        assert isinstance(seen[0], Encryptor)

    def test_threads_hold_independent_contexts(self, settings):
        """Each thread sees only the provider it set."""
        providers = [DerivedSecretKeyProvider(f"password-{i}", settings) for i in range(4)]
        barrier = threading.Barrier(len(providers))
        results = {}

        def worker(index):
            with with_encryption_context(key_provider=providers[index]):
                barrier.wait(timeout=5)
                results[index] = current_context().key_provider

        threads = [threading.Thread(target=worker, args=(i,)) for i in range(len(providers))]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=5)

        assert all(results[i] is providers[i] for i in range(len(providers)))

    @pytest.mark.asyncio
    async def test_tasks_hold_independent_contexts(self):
        """Overrides in one task are invisible to a concurrent task."""
        started = asyncio.Event()

        async def overriding_task():
            with without_encryption():
                started.set()
                await asyncio.sleep(0.01)
                return current_encryptor()

        async def observing_task():
            await started.wait()
            return current_encryptor()

        overridden, observed = await asyncio.gather(overriding_task(), observing_task())

        assert isinstance(overridden, NullEncryptor)
        assert isinstance(observed, Encryptor)
        assert isinstance(current_encryptor(), Encryptor)
