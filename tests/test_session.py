"""
Tests for the start-up flow: validation round trip, biometric gate, unlock.
"""
import pytest
from aiohttp import web

from legacy_vault.client import SessionValidatorClient
from legacy_vault.exceptions import ConfigurationError, ValidationUnavailable
from legacy_vault.host import HeadlessHost
from legacy_vault.session import VaultSession
from legacy_vault.validator import create_app, sign_init_data
from legacy_vault.vault import (
    AssetVault,
    FallbackStore,
    LocalStore,
    MemoryStore,
    VaultConfig,
)
from legacy_vault.vault.config import DEVICE_KEY_NAME

from conftest import FakeSecureStorage, make_record


@pytest.fixture
def init_data(bot_token):
    return sign_init_data({"auth_date": "1700000000", "query_id": "Q1"}, bot_token)


@pytest.fixture
async def validator(aiohttp_client):
    client = await aiohttp_client(create_app())
    return SessionValidatorClient(
        str(client.make_url("/api/validate")), session=client.session,
    )


@pytest.fixture
async def broken_validator(aiohttp_client):
    async def explode(request):
        return web.Response(status=502, text="bad gateway")

    app = web.Application()
    app.router.add_post("/api/validate", explode)
    client = await aiohttp_client(app)
    return SessionValidatorClient(
        str(client.make_url("/api/validate")), session=client.session,
    )


class TestSessionValidatorClient:

    async def test_valid(self, validator, init_data):
        assert await validator.validate(init_data) is True

    async def test_invalid(self, validator, init_data):
        assert await validator.validate(init_data + "00") is False

    async def test_empty_init_data(self, validator, bot_token):
        assert await validator.validate("") is False

    async def test_server_error(self, broken_validator, init_data):
        with pytest.raises(ValidationUnavailable):
            await broken_validator.validate(init_data)

    async def test_unreachable(self, init_data):
        client = SessionValidatorClient("http://127.0.0.1:9/api/validate", timeout=2)
        with pytest.raises(ValidationUnavailable):
            await client.validate(init_data)


class TestVaultSession:

    async def test_valid_session_unlocks(self, validator, init_data):
        store = MemoryStore()
        host = HeadlessHost(token="bio")
        session = VaultSession(host, validator, AssetVault(store, host=host))
        assert await session.start(init_data) is True
        assert session.vault.state.unlocked is True
        assert await store.get(DEVICE_KEY_NAME)
        assert host.closed is False

    async def test_invalid_session_closes_host(self, validator, init_data):
        store = MemoryStore()
        host = HeadlessHost(token="bio")
        session = VaultSession(host, validator, AssetVault(store, host=host))
        assert await session.start(init_data.replace("Q1", "Q2")) is False
        assert host.closed is True
        assert host.alerts == ["Invalid session! Please restart."]
        assert await store.get(DEVICE_KEY_NAME) is None

    async def test_validation_error_alerts(self, broken_validator, init_data):
        host = HeadlessHost(token="bio")
        session = VaultSession(
            host, broken_validator, AssetVault(MemoryStore(), host=host),
        )
        assert await session.start(init_data) is False
        assert host.alerts == ["Error validating session."]
        assert host.closed is False

    async def test_biometric_gate_refused(self, validator, init_data):
        store = MemoryStore()
        host = HeadlessHost()
        session = VaultSession(host, validator, AssetVault(store, host=host))
        assert await session.start(init_data) is False
        assert session.vault.state.unlocked is False
        assert await store.get(DEVICE_KEY_NAME) is None


class TestFromConfig:
    """Tests for wiring a session from VaultConfig."""

    async def test_headless_uses_local_store(self, aiohttp_client, init_data, tmp_path):
        client = await aiohttp_client(create_app())
        config = VaultConfig(
            storage_path=tmp_path / "vault.json",
            validate_url=str(client.make_url("/api/validate")),
        )
        host = HeadlessHost(token="bio")
        session = VaultSession.from_config(host, config, http=client.session)
        assert isinstance(session.vault.store, LocalStore)
        assert await session.start(init_data) is True
        assert (await session.vault.add(make_record(7))).ok
        assert (tmp_path / "vault.json").exists()

    def test_host_secure_storage_is_preferred(self, tmp_path):
        config = VaultConfig(
            storage_path=tmp_path / "vault.json",
            validate_url="http://localhost/api/validate",
        )
        host = HeadlessHost(secure_storage=FakeSecureStorage())
        session = VaultSession.from_config(host, config)
        assert isinstance(session.vault.store, FallbackStore)

    def test_missing_url(self, tmp_path):
        config = VaultConfig(storage_path=tmp_path / "vault.json")
        with pytest.raises(ConfigurationError):
            VaultSession.from_config(HeadlessHost(), config)


class TestVaultConfig:

    def test_from_env(self, monkeypatch, tmp_path):
        monkeypatch.setenv("VAULT_STORAGE_PATH", str(tmp_path / "s.json"))
        monkeypatch.setenv("VAULT_CIPHER_BACKEND", "ChaCha20")
        monkeypatch.setenv("VAULT_MAX_ASSETS", "5")
        monkeypatch.delenv("VAULT_DEVICE_KEY_BYTES", raising=False)
        monkeypatch.delenv("VAULT_VALIDATE_URL", raising=False)
        config = VaultConfig.from_env()
        assert config.storage_path == tmp_path / "s.json"
        assert config.cipher_backend == "chacha20"
        assert config.max_assets == 5
        assert config.validate_url is None

    def test_rejects_unknown_cipher(self):
        with pytest.raises(ValueError):
            VaultConfig(cipher_backend="des")

    def test_capacity_cannot_exceed_ten(self):
        with pytest.raises(ValueError):
            VaultConfig(max_assets=11)
