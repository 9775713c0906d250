"""Shared fixtures for the Legacy Vault test suite."""
import pytest

from legacy_vault.exceptions import StorageUnavailable
from legacy_vault.host import HeadlessHost
from legacy_vault.vault import AssetVault, MemoryStore, VaultConfig
from legacy_vault.vault.models import AssetRecord, AssetType

BOT_TOKEN = "123456:TEST-bot-token"


class FlakyStore(MemoryStore):
    """Memory store with failures that tests can switch on."""

    backend = "flaky"

    def __init__(self, data=None):
        super().__init__(data)
        self.fail_writes = False
        self.fail_reads = False
        self.fail_keys: set[str] = set()
        self.fail_removes: set[str] = set()

    async def get(self, key):
        if self.fail_reads:
            raise StorageUnavailable("read failure")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes or key in self.fail_keys:
            return False
        return await super().set(key, value)

    async def remove(self, key):
        if key in self.fail_removes:
            return False
        return await super().remove(key)


class FakeSecureStorage:
    """Callback-style secure storage, like the one the host injects."""

    def __init__(self, error=None, raises=None):
        self.items: dict[str, str] = {}
        self.error = error
        self.raises = raises
        self.calls: list[str] = []

    def _check(self, name):
        self.calls.append(name)
        if self.raises is not None:
            raise self.raises

    def get_item(self, key, callback):
        self._check("get_item")
        if self.error:
            callback(self.error, None)
        else:
            callback(None, self.items.get(key, ""))

    def set_item(self, key, value, callback):
        self._check("set_item")
        if self.error:
            callback(self.error, False)
        else:
            self.items[key] = value
            callback(None, True)

    def remove_item(self, key, callback):
        self._check("remove_item")
        if self.error:
            callback(self.error, False)
        else:
            self.items.pop(key, None)
            callback(None, True)


def make_record(n: int = 0, type_: AssetType = AssetType.CRYPTO) -> AssetRecord:
    return AssetRecord(type=type_, details=f"0x{n:04X}", notes=f"note {n}")


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def host():
    return HeadlessHost(token="biometric-token")


@pytest.fixture
def vault(store, host):
    return AssetVault(store, config=VaultConfig(), host=host)


@pytest.fixture
def bot_token(monkeypatch):
    monkeypatch.setenv("BOT_TOKEN", BOT_TOKEN)
    monkeypatch.delenv("INIT_DATA_MAX_AGE", raising=False)
    return BOT_TOKEN
