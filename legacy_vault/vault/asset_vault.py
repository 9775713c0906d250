"""
AssetVault: the encrypted asset list of one device.

Provides the public API of the vault core:
- ``unlock(auth)``: biometric gate, device key, initial load
- ``load_assets()``: decrypt the stored list (empty on any failure)
- ``add(record)`` / ``edit(index, record)`` / ``delete(index)``:
  optimistic mutations with rollback
- ``destroy()``: wipe the blob and the device key

Security Note:
    Never log asset contents, blobs or key material.
"""
import logging
from typing import Optional

from ..exceptions import (
    AssetNotFound,
    CapacityExceeded,
    DecryptError,
    PersistenceFailure,
    StorageUnavailable,
)
from ..host import BiometricResult, HeadlessHost, HostBridge
from .config import ASSETS_KEY_NAME, VaultConfig
from .crypto import decrypt_assets, encrypt_assets
from .keys import DeviceKeyManager
from .models import AssetRecord
from .mutations import (
    MutationResult,
    MutationState,
    VaultState,
    apply_optimistic,
)
from .storage import KeyValueStore, select_store

logger = logging.getLogger("legacy_vault.vault")


class AssetVault:
    """Encrypted, capped asset list backed by a key/value store.

    The biometric token only decides whether the vault may be opened in
    this session; the persisted device key is what encrypts the data.
    The caller must not start a mutation while ``state.pending`` is set.
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[VaultConfig] = None,
        host: Optional[HostBridge] = None,
    ):
        self._store = store
        self._config = config or VaultConfig()
        self._host = host or HeadlessHost()
        self.keys = DeviceKeyManager(store, key_bytes=self._config.device_key_bytes)
        self.state = VaultState()

    @classmethod
    def for_host(
        cls,
        host: Optional[HostBridge] = None,
        config: Optional[VaultConfig] = None,
    ) -> "AssetVault":
        """Build a vault on the best store the host offers.

        Args:
            host: Host bridge; None when running outside the host.
            config: Vault settings, read from the environment when omitted.

        Returns:
            AssetVault backed by ``select_store(host, config.storage_path)``.
        """
        config = config or VaultConfig.from_env()
        store = select_store(host, config.storage_path)
        return cls(store, config=config, host=host)

    @property
    def assets(self) -> list[AssetRecord]:
        return list(self.state.assets)

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def _notify(self, message: str, haptic: Optional[str] = None) -> None:
        self._host.show_alert(message)
        if haptic:
            self._host.haptic(haptic)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    async def unlock(self, auth: BiometricResult) -> bool:
        """Open the vault for this session after the biometric gate.

        Args:
            auth: Result of the host biometric gate.

        Returns:
            True if the vault is unlocked and loaded.
        """
        if not auth.authenticated:
            logger.info("Biometric gate not passed; vault stays locked")
            self.state.unlocked = False
            return False
        try:
            await self.keys.ensure_device_key()
        except (PersistenceFailure, StorageUnavailable) as err:
            logger.error("Device key unavailable: %s", err)
            self._notify("Vault storage is unavailable", haptic="error")
            return False
        self.state.has_device_key = True
        self.state.unlocked = True
        await self.load_assets()
        return True

    async def load_assets(self) -> list[AssetRecord]:
        """Replace the in-memory list with the decrypted stored list.

        Returns:
            The loaded list; empty when there is no blob, no device key,
            the store is unreadable or the blob does not decrypt.
        """
        assets: list[AssetRecord] = []
        try:
            blob = await self._store.get(ASSETS_KEY_NAME)
            device_key = await self.keys.get_device_key()
        except StorageUnavailable as err:
            logger.error("Vault storage unreadable: %s", err)
            blob = device_key = None
        self.state.has_device_key = bool(device_key)
        if blob:
            if not device_key:
                logger.warning("Vault blob present but device key is missing")
                self._notify("Error loading assets")
            else:
                try:
                    assets = decrypt_assets(
                        blob, device_key, self._config.cipher_backend,
                    )
                except DecryptError as err:
                    logger.warning("Vault blob could not be opened: %s", err)
                    self._notify("Error loading assets")
        self.state.assets = assets
        return list(assets)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def _persist(self, assets: list[AssetRecord]) -> None:
        device_key = await self.keys.get_device_key()
        if not device_key:
            raise PersistenceFailure("master key missing")
        blob = encrypt_assets(assets, device_key, self._config.cipher_backend)
        if not await self._store.set(ASSETS_KEY_NAME, blob):
            raise PersistenceFailure("vault write was not confirmed")

    def _reject(self, error: Exception, message: str) -> MutationResult:
        self._notify(message, haptic="warning")
        return MutationResult(
            state=MutationState.REJECTED, assets=self.state.assets, error=error,
        )

    def _check_index(self, index: int) -> Optional[AssetNotFound]:
        if not 0 <= index < len(self.state.assets):
            return AssetNotFound(f"no asset at position {index}")
        return None

    async def add(self, record: AssetRecord) -> MutationResult:
        """Append ``record``, unless the vault is full."""
        if len(self.state.assets) >= self._config.max_assets:
            return self._reject(
                CapacityExceeded(
                    f"vault already holds {self._config.max_assets} assets"
                ),
                f"Maximum {self._config.max_assets} assets allowed",
            )
        result = await apply_optimistic(
            self.state, lambda assets: assets + [record], self._persist,
        )
        if result.ok:
            self._notify("Asset saved!", haptic="success")
        else:
            logger.error("Adding asset failed: %s", result.error)
            self._notify("Failed to save asset", haptic="error")
        return result

    def start_edit(self, index: int) -> bool:
        """Enter edit mode for the asset at ``index``."""
        if self._check_index(index) is not None:
            return False
        self.state.editing = index
        return True

    def cancel_edit(self) -> None:
        self.state.editing = None

    async def edit(self, index: int, record: AssetRecord) -> MutationResult:
        """Replace the asset at ``index`` with ``record``.

        Edit mode is left as soon as the edit is applied; a rollback
        restores the list but does not re-enter edit mode.
        """
        missing = self._check_index(index)
        if missing is not None:
            return self._reject(missing, "Asset not found")

        def _replace(assets: list[AssetRecord]) -> list[AssetRecord]:
            assets[index] = record
            return assets

        self.state.editing = None
        result = await apply_optimistic(self.state, _replace, self._persist)
        if result.ok:
            self._notify("Asset updated!", haptic="success")
        else:
            logger.error("Editing asset failed: %s", result.error)
            self._notify("Failed to update asset", haptic="error")
        return result

    async def delete(self, index: int) -> MutationResult:
        """Remove the asset at ``index``."""
        missing = self._check_index(index)
        if missing is not None:
            return self._reject(missing, "Asset not found")
        result = await apply_optimistic(
            self.state,
            lambda assets: assets[:index] + assets[index + 1:],
            self._persist,
        )
        if result.ok:
            self.state.editing = None
            self._notify("Asset deleted!")
        else:
            logger.error("Deleting asset failed: %s", result.error)
            self._notify("Failed to delete asset", haptic="error")
        return result

    # ------------------------------------------------------------------
    # Wipe
    # ------------------------------------------------------------------

    async def destroy(self) -> bool:
        """Erase the stored blob and the device key (explicit user action).

        Returns:
            True if both entries were removed.
        """
        blob_removed = await self._store.remove(ASSETS_KEY_NAME)
        key_removed = await self.keys.destroy_device_key()
        if key_removed:
            # without the key nothing left in storage can be opened
            self.state = VaultState()
        elif blob_removed:
            self.state.assets = []
            self.state.editing = None
        if blob_removed and key_removed:
            logger.info("Vault destroyed")
            return True
        logger.error(
            "Vault wipe incomplete: blob removed=%s, key removed=%s",
            blob_removed, key_removed,
        )
        return False
