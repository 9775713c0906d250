"""Tests for the device key lifecycle, including lookups storage could not confirm."""
import asyncio
import base64

import pytest

from legacy_vault.exceptions import PersistenceFailure, StorageUnavailable
from legacy_vault.vault.config import DEVICE_KEY_NAME
from legacy_vault.vault.keys import DeviceKeyManager, generate_device_key
from legacy_vault.vault.storage import FallbackStore, HostSecureStore, MemoryStore

from conftest import FakeSecureStorage


class SlowStore(MemoryStore):
    """Yields to the loop on every call to expose interleavings."""

    def __init__(self):
        super().__init__()
        self.writes = 0

    async def get(self, key):
        await asyncio.sleep(0)
        return await super().get(key)

    async def set(self, key, value):
        await asyncio.sleep(0)
        self.writes += 1
        return await super().set(key, value)


def test_generated_key_length():
    key = generate_device_key()
    assert len(base64.b64decode(key)) == 32
    assert generate_device_key() != key


class TestDeviceKeyManager:

    async def test_get_never_generates(self, store):
        keys = DeviceKeyManager(store)
        assert await keys.get_device_key() is None
        assert await store.get(DEVICE_KEY_NAME) is None

    async def test_ensure_is_idempotent(self, store):
        keys = DeviceKeyManager(store)
        first = await keys.ensure_device_key()
        second = await keys.ensure_device_key()
        assert first == second
        assert await keys.get_device_key() == first

    async def test_existing_key_is_never_replaced(self, store):
        await store.set(DEVICE_KEY_NAME, "existing-key")
        keys = DeviceKeyManager(store)
        assert await keys.ensure_device_key() == "existing-key"
        assert await store.get(DEVICE_KEY_NAME) == "existing-key"

    async def test_concurrent_callers_share_one_key(self):
        store = SlowStore()
        keys = DeviceKeyManager(store)
        results = await asyncio.gather(
            *(keys.ensure_device_key() for _ in range(5))
        )
        assert len(set(results)) == 1
        assert store.writes == 1

    async def test_failed_write_raises(self, store):
        store.fail_writes = True
        with pytest.raises(PersistenceFailure):
            await DeviceKeyManager(store).ensure_device_key()

    async def test_custom_length(self, store):
        key = await DeviceKeyManager(store, key_bytes=48).ensure_device_key()
        assert len(base64.b64decode(key)) == 48

    async def test_destroy(self, store):
        keys = DeviceKeyManager(store)
        await keys.ensure_device_key()
        assert await keys.destroy_device_key() is True
        assert await keys.get_device_key() is None

    async def test_unconfirmed_lookup_never_generates(self):
        primitive = FakeSecureStorage()
        primitive.items[DEVICE_KEY_NAME] = "existing-key"
        keys = DeviceKeyManager(FallbackStore(HostSecureStore(primitive), MemoryStore()))
        primitive.error = "busy"
        with pytest.raises(StorageUnavailable):
            await keys.ensure_device_key()
        primitive.error = None
        assert primitive.items[DEVICE_KEY_NAME] == "existing-key"
        assert await keys.ensure_device_key() == "existing-key"
