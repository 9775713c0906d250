"""
Vault Storage: string key/value stores with secure-store-with-fallback policy.

Backends:
- ``HostSecureStore``: the host's callback-based secure storage primitive.
- ``LocalStore``: JSON file on disk, persistent but not encrypted at rest.
- ``MemoryStore``: process-local dict.
- ``FallbackStore``: primary store that degrades to a fallback store.

``select_store()`` checks host capabilities once and returns the store the
vault should use for the rest of the process.

Security Note:
    Stores hold key material and ciphertext. Never log stored values,
    only key names and backend names.
"""
import os
import asyncio
import logging
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Optional, Union

import orjson

from ..exceptions import StorageUnavailable

logger = logging.getLogger("legacy_vault.storage")


class KeyValueStore(ABC):
    """Asynchronous string key/value store."""

    backend: str = "abstract"

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None when absent.

        Raises:
            StorageUnavailable: If the store cannot be read.
        """

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """Store ``value`` under ``key``. Returns True when the write landed."""

    @abstractmethod
    async def remove(self, key: str) -> bool:
        """Remove ``key``. Returns True when the store confirmed it."""

    def is_authoritative(self, key: str) -> bool:
        """Whether a None from ``get(key)`` really means the key is absent."""
        return True

    def __repr__(self) -> str:
        return f"<{type(self).__name__} backend={self.backend}>"


# ---------------------------------------------------------------------------
# Memory
# ---------------------------------------------------------------------------

class MemoryStore(KeyValueStore):
    """Dict-backed store, lost when the process exits."""

    backend = "memory"

    def __init__(self, data: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(data or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        return True

    async def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True


# ---------------------------------------------------------------------------
# Local file
# ---------------------------------------------------------------------------

class LocalStore(KeyValueStore):
    """Persistent JSON file store.

    Provides persistence only; confidentiality comes from the vault
    encrypting everything it writes here. Writes replace the file
    atomically, so readers see either the old or the new mapping.
    """

    backend = "local"

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def _read(self) -> dict[str, str]:
        try:
            data = self._path.read_bytes()
        except FileNotFoundError:
            return {}
        if not data:
            return {}
        parsed = orjson.loads(data)
        if not isinstance(parsed, dict):
            raise ValueError(f"{self._path} does not hold a JSON object")
        return parsed

    def _write(self, mapping: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(
            dir=self._path.parent, prefix=".vault-", suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as fp:
                fp.write(orjson.dumps(mapping))
            os.chmod(tmp, 0o600)
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def _update(self, key: str, value: Optional[str]) -> None:
        mapping = self._read()
        if value is None:
            mapping.pop(key, None)
        else:
            mapping[key] = value
        self._write(mapping)

    async def get(self, key: str) -> Optional[str]:
        try:
            mapping = await asyncio.to_thread(self._read)
        except (OSError, ValueError) as err:
            raise StorageUnavailable(
                f"local store {self._path} is unreadable: {err}"
            ) from err
        value = mapping.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> bool:
        try:
            await asyncio.to_thread(self._update, key, value)
        except (OSError, ValueError) as err:
            logger.error("Local store write failed for key=%s: %s", key, err)
            return False
        return True

    async def remove(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self._update, key, None)
        except (OSError, ValueError) as err:
            logger.error("Local store remove failed for key=%s: %s", key, err)
            return False
        return True


# ---------------------------------------------------------------------------
# Host secure storage
# ---------------------------------------------------------------------------

class HostSecureStore(KeyValueStore):
    """Awaitable adapter over the host's callback-based secure storage.

    The primitive exposes ``get_item(key, callback)`` and
    ``set_item(key, value, callback)``, and optionally
    ``remove_item(key, callback)``; every callback is invoked as
    ``callback(err, value)``, possibly synchronously and possibly from
    another thread.
    """

    backend = "secure"

    def __init__(self, primitive: Any):
        self._primitive = primitive

    async def _call(self, method: str, *args) -> Any:
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        def _resolve(err: Any, value: Any) -> None:
            if future.done():
                return
            if err:
                future.set_exception(
                    StorageUnavailable(f"secure storage {method} failed: {err}")
                )
            else:
                future.set_result(value)

        def _callback(err: Any = None, value: Any = None) -> None:
            loop.call_soon_threadsafe(_resolve, err, value)

        try:
            operation: Callable = getattr(self._primitive, method)
            operation(*args, _callback)
        except StorageUnavailable:
            raise
        except Exception as err:
            raise StorageUnavailable(
                f"secure storage {method} raised: {err}"
            ) from err
        return await future

    async def get(self, key: str) -> Optional[str]:
        value = await self._call("get_item", key)
        # hosts report a missing key as an empty string
        return value or None

    async def set(self, key: str, value: str) -> bool:
        return bool(await self._call("set_item", key, value))

    async def remove(self, key: str) -> bool:
        if callable(getattr(self._primitive, "remove_item", None)):
            return bool(await self._call("remove_item", key))
        # an empty value reads back as absent
        return bool(await self._call("set_item", key, ""))


# ---------------------------------------------------------------------------
# Fallback policy
# ---------------------------------------------------------------------------

class FallbackStore(KeyValueStore):
    """Use ``primary`` first and ``fallback`` whenever the primary fails.

    A failed read is served from the fallback for that call only. A failed
    write switches writes to the fallback for the rest of the process
    ("degraded"); reads then look in the fallback first and in the primary
    for anything the fallback does not hold, so values written before the
    switch stay visible. Failures of the primary never reach the caller;
    failures of the fallback do.
    """

    def __init__(self, primary: KeyValueStore, fallback: KeyValueStore):
        self._primary = primary
        self._fallback = fallback
        self._degraded = False
        # keys whose last lookup could not reach the primary
        self._unconfirmed: set[str] = set()

    @property
    def degraded(self) -> bool:
        return self._degraded

    @property
    def backend(self) -> str:  # type: ignore[override]
        return self._fallback.backend if self._degraded else self._primary.backend

    def is_authoritative(self, key: str) -> bool:
        return key not in self._unconfirmed

    def _degrade(self, operation: str, reason: Any) -> None:
        if not self._degraded:
            logger.warning(
                "Secure storage %s failed (%s); writing to %s storage from now on",
                operation, reason, self._fallback.backend,
            )
        self._degraded = True

    async def get(self, key: str) -> Optional[str]:
        if self._degraded:
            value = await self._fallback.get(key)
            if value is not None:
                self._unconfirmed.discard(key)
                return value
        try:
            value = await self._primary.get(key)
        except Exception as err:
            logger.warning(
                "Secure storage get failed for key=%s (%s); reading %s storage",
                key, err, self._fallback.backend,
            )
            value = None if self._degraded else await self._fallback.get(key)
            if value is None:
                self._unconfirmed.add(key)
            else:
                self._unconfirmed.discard(key)
            return value
        self._unconfirmed.discard(key)
        return value

    async def set(self, key: str, value: str) -> bool:
        if not self._degraded:
            try:
                if await self._primary.set(key, value):
                    self._unconfirmed.discard(key)
                    return True
                self._degrade("set", "write refused")
            except Exception as err:
                self._degrade("set", err)
        return await self._fallback.set(key, value)

    async def remove(self, key: str) -> bool:
        """Remove ``key`` from both stores.

        Returns False when either store could not confirm, since a copy
        left behind would still be readable.
        """
        try:
            primary_removed = await self._primary.remove(key)
        except Exception as err:
            logger.warning(
                "Secure storage remove failed for key=%s (%s)", key, err,
            )
            primary_removed = False
        fallback_removed = await self._fallback.remove(key)
        return primary_removed and fallback_removed


def select_store(host: Any, fallback_path: Union[str, Path]) -> KeyValueStore:
    """Pick the vault store once, from the host's capabilities.

    Args:
        host: Host bridge (or None when running outside the host).
        fallback_path: File used by the local fallback store.

    Returns:
        ``FallbackStore(HostSecureStore, LocalStore)`` when the host offers
        secure storage with ``get_item``/``set_item``, a bare ``LocalStore``
        otherwise.
    """
    local = LocalStore(fallback_path)
    primitive = getattr(host, "secure_storage", None) if host is not None else None
    if primitive is None or not all(
        callable(getattr(primitive, name, None))
        for name in ("get_item", "set_item")
    ):
        logger.info("Secure storage unavailable; using local storage")
        return local
    logger.info("Using host secure storage with local fallback")
    return FallbackStore(HostSecureStore(primitive), local)
