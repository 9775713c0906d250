"""Asset Vault: device-key encrypted asset list with optimistic writes.

Security Note (Threat Model):
    Decrypted assets live in process memory while the vault is open, and
    the local fallback store is only as private as the device filesystem.
    Confidentiality at rest relies on the device key, which is stored next
    to the blob; protecting the device itself is out of scope.
"""

from .asset_vault import AssetVault
from .config import VaultConfig, ASSETS_KEY_NAME, DEVICE_KEY_NAME, MAX_ASSETS
from .keys import DeviceKeyManager, generate_device_key
from .models import AssetRecord, AssetType
from .mutations import MutationResult, MutationState, VaultState, apply_optimistic
from .storage import (
    KeyValueStore,
    MemoryStore,
    LocalStore,
    HostSecureStore,
    FallbackStore,
    select_store,
)

__all__ = [
    "AssetVault",
    "VaultConfig",
    "ASSETS_KEY_NAME",
    "DEVICE_KEY_NAME",
    "MAX_ASSETS",
    "DeviceKeyManager",
    "generate_device_key",
    "AssetRecord",
    "AssetType",
    "MutationResult",
    "MutationState",
    "VaultState",
    "apply_optimistic",
    "KeyValueStore",
    "MemoryStore",
    "LocalStore",
    "HostSecureStore",
    "FallbackStore",
    "select_store",
]
