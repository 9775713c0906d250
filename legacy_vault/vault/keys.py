"""
Device Key Lifecycle: generate once, persist, reuse.

The device key protects the encrypted asset blob. Replacing it without
re-encrypting the blob makes the stored assets unrecoverable, so a key is
only ever written when none exists, and only ``destroy_device_key()`` (an
explicit user action) removes it.

Security Note:
    Never log the key itself.
"""
import asyncio
import base64
import logging
import secrets
from typing import Optional

from ..exceptions import PersistenceFailure, StorageUnavailable
from .config import DEVICE_KEY_BYTES, DEVICE_KEY_NAME
from .storage import KeyValueStore

logger = logging.getLogger("legacy_vault.vault")


def generate_device_key(length: int = DEVICE_KEY_BYTES) -> str:
    """Generate a random device key and return it as a base64 string."""
    return base64.b64encode(secrets.token_bytes(length)).decode("ascii")


class DeviceKeyManager:
    """Owns the device key stored under :data:`DEVICE_KEY_NAME`."""

    def __init__(
        self,
        store: KeyValueStore,
        key_bytes: int = DEVICE_KEY_BYTES,
        key_name: str = DEVICE_KEY_NAME,
    ):
        self._store = store
        self._key_bytes = key_bytes
        self._key_name = key_name
        # single-flight generation within this process
        self._lock = asyncio.Lock()

    async def get_device_key(self) -> Optional[str]:
        """Return the stored device key, or None. Never generates."""
        return await self._store.get(self._key_name) or None

    async def ensure_device_key(self) -> str:
        """Return the device key, generating and persisting it on first use.

        Concurrent callers in this process share one generation. After a
        write the key is read back, so if another writer raced us through
        the same store the value that actually landed is returned.

        Returns:
            The device key.

        Raises:
            PersistenceFailure: If a new key could not be written.
            StorageUnavailable: If the store cannot be read, or could not
                confirm that no key exists yet.
        """
        existing = await self.get_device_key()
        if existing:
            return existing
        async with self._lock:
            existing = await self.get_device_key()
            if existing:
                return existing
            if not self._store.is_authoritative(self._key_name):
                raise StorageUnavailable(
                    "device key lookup did not reach secure storage"
                )
            candidate = generate_device_key(self._key_bytes)
            if not await self._store.set(self._key_name, candidate):
                raise PersistenceFailure("device key could not be stored")
            stored = await self.get_device_key()
            if not stored:
                raise PersistenceFailure("device key did not persist")
            logger.info(
                "Generated new device key in %s storage", self._store.backend,
            )
            return stored

    async def destroy_device_key(self) -> bool:
        """Remove the device key. Anything encrypted under it is lost."""
        removed = await self._store.remove(self._key_name)
        if removed:
            logger.warning("Device key destroyed")
        return removed
