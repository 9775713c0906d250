"""Legacy Vault.

Device-bound encrypted asset vault for chat-platform mini-apps.
"""
from .version import __version__
from .exceptions import (
    VaultError,
    BadRequest,
    ConfigurationError,
    StorageUnavailable,
    DecryptError,
    PersistenceFailure,
    CapacityExceeded,
    AssetNotFound,
    ValidationUnavailable,
)
from .validator import validate_init_data, sign_init_data, create_app
from .client import SessionValidatorClient
from .host import BiometricResult, HostBridge, HeadlessHost
from .session import VaultSession
from .vault import AssetVault, AssetRecord, AssetType, VaultConfig

__all__ = [
    "__version__",
    "VaultError",
    "BadRequest",
    "ConfigurationError",
    "StorageUnavailable",
    "DecryptError",
    "PersistenceFailure",
    "CapacityExceeded",
    "AssetNotFound",
    "ValidationUnavailable",
    "validate_init_data",
    "sign_init_data",
    "create_app",
    "SessionValidatorClient",
    "BiometricResult",
    "HostBridge",
    "HeadlessHost",
    "VaultSession",
    "AssetVault",
    "AssetRecord",
    "AssetType",
    "VaultConfig",
]
