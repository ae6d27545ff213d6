"""Tests for per-user key rotation."""

import uuid
from collections.abc import Sequence

import pytest

from src.credentials.envelope import CredentialCipher
from src.credentials.exceptions import CredentialIntegrityError
from src.credentials.rotation import NOTHING_TO_ROTATE, rotate_user_key
from src.credentials.store import InMemorySecretStore


class FailingPutStore(InMemorySecretStore):
    """Store whose writes fail, as if the database went away mid-rotation."""

    async def put(self, user_id: uuid.UUID, wrapped_user_key: str, wrapped_secrets: Sequence[str]) -> None:
        msg = "write failed"
        raise ConnectionError(msg)


async def _seed(store: InMemorySecretStore, cipher: CredentialCipher, user_id: uuid.UUID, *secrets: str) -> None:
    user_key = cipher.generate_user_key()
    await InMemorySecretStore.put(
        store,
        user_id,
        cipher.wrap_user_key(user_key),
        [cipher.wrap_secret(secret, user_key) for secret in secrets],
    )


async def _decrypt_all(store: InMemorySecretStore, cipher: CredentialCipher, user_id: uuid.UUID) -> list[str]:
    stored = await store.get(user_id)
    assert stored is not None
    user_key = cipher.unwrap_user_key(stored.wrapped_user_key)
    return [cipher.unwrap_secret(wrapped, user_key) for wrapped in stored.wrapped_secrets]


class TestRotateUserKey:
    """Rotation re-wraps every secret under a new key."""

    @pytest.mark.asyncio
    async def test_rotation_replaces_key_and_keeps_secrets(self, cipher: CredentialCipher) -> None:
        store = InMemorySecretStore()
        user_id = uuid.uuid4()
        await _seed(store, cipher, user_id, "sk-test123", "sk-ant-other")
        before = await store.get(user_id)

        result = await rotate_user_key(user_id, store, cipher)

        after = await store.get(user_id)
        assert result.rotated
        assert result.secrets_rotated == 2
        assert after.wrapped_user_key != before.wrapped_user_key
        assert cipher.unwrap_user_key(after.wrapped_user_key) != cipher.unwrap_user_key(before.wrapped_user_key)
        assert await _decrypt_all(store, cipher, user_id) == ["sk-test123", "sk-ant-other"]

    @pytest.mark.asyncio
    async def test_rotating_twice_is_safe(self, cipher: CredentialCipher) -> None:
        """Secrets stay readable with the key from the second rotation."""
        store = InMemorySecretStore()
        user_id = uuid.uuid4()
        await _seed(store, cipher, user_id, "sk-test123")

        await rotate_user_key(user_id, store, cipher)
        first = await store.get(user_id)
        await rotate_user_key(user_id, store, cipher)
        second = await store.get(user_id)

        assert first.wrapped_user_key != second.wrapped_user_key
        assert await _decrypt_all(store, cipher, user_id) == ["sk-test123"]

        # The previous key no longer opens the current secret
        old_key = cipher.unwrap_user_key(first.wrapped_user_key)
        with pytest.raises(CredentialIntegrityError):
            cipher.unwrap_secret(second.wrapped_secrets[0], old_key)

    @pytest.mark.asyncio
    async def test_unknown_user_has_nothing_to_rotate(self, cipher: CredentialCipher) -> None:
        store = InMemorySecretStore()
        user_id = uuid.uuid4()

        result = await rotate_user_key(user_id, store, cipher)

        assert not result.rotated
        assert result.reason == NOTHING_TO_ROTATE
        assert await store.get(user_id) is None

    @pytest.mark.asyncio
    async def test_key_without_secrets_is_left_alone(self, cipher: CredentialCipher) -> None:
        store = InMemorySecretStore()
        user_id = uuid.uuid4()
        await _seed(store, cipher, user_id)
        before = await store.get(user_id)

        result = await rotate_user_key(user_id, store, cipher)

        assert result.reason == NOTHING_TO_ROTATE
        assert await store.get(user_id) == before

    @pytest.mark.asyncio
    async def test_failed_write_keeps_previous_forms(self, cipher: CredentialCipher) -> None:
        store = FailingPutStore()
        user_id = uuid.uuid4()
        await _seed(store, cipher, user_id, "sk-test123")
        before = await store.get(user_id)

        with pytest.raises(ConnectionError):
            await rotate_user_key(user_id, store, cipher)

        assert await store.get(user_id) == before
        assert await _decrypt_all(store, cipher, user_id) == ["sk-test123"]

    @pytest.mark.asyncio
    async def test_corrupted_secret_aborts_before_writing(self, cipher: CredentialCipher) -> None:
        store = InMemorySecretStore()
        user_id = uuid.uuid4()
        await _seed(store, cipher, user_id, "sk-test123")
        stored = await store.get(user_id)
        await store.put(user_id, stored.wrapped_user_key, ["00" * 16 + ":" + "00" * 16 + ":00"])
        corrupted = await store.get(user_id)

        with pytest.raises(CredentialIntegrityError):
            await rotate_user_key(user_id, store, cipher)

        assert await store.get(user_id) == corrupted
