"""
Vault Configuration: storage key names, limits and validated settings.

Reads settings from environment variables:
    VAULT_STORAGE_PATH = <path of the local fallback store>
    VAULT_CIPHER_BACKEND = aesgcm | chacha20
    VAULT_MAX_ASSETS = <1..10>
    VAULT_DEVICE_KEY_BYTES = <random bytes in a new device key>
    VAULT_VALIDATE_URL = <session validation endpoint>

Security Note:
    Never log key material. Only log key names and backend names.
"""
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, field_validator

# Well-known names of the two persisted entries.
DEVICE_KEY_NAME = "dlv_master_key"
ASSETS_KEY_NAME = "dlv_assets"

MAX_ASSETS = 10
DEVICE_KEY_BYTES = 32

_DEFAULT_STORAGE_PATH = Path.home() / ".legacy_vault" / "storage.json"


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    storage_path: Path = Field(default=_DEFAULT_STORAGE_PATH)
    cipher_backend: str = Field(default="aesgcm")
    max_assets: int = Field(default=MAX_ASSETS, ge=1, le=MAX_ASSETS)
    device_key_bytes: int = Field(default=DEVICE_KEY_BYTES, ge=16, le=64)
    validate_url: Optional[str] = None

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in ("aesgcm", "chacha20"):
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        values = {}
        env_map = {
            "VAULT_STORAGE_PATH": "storage_path",
            "VAULT_CIPHER_BACKEND": "cipher_backend",
            "VAULT_MAX_ASSETS": "max_assets",
            "VAULT_DEVICE_KEY_BYTES": "device_key_bytes",
            "VAULT_VALIDATE_URL": "validate_url",
        }
        for env_name, field in env_map.items():
            raw = os.environ.get(env_name)
            if raw:
                values[field] = raw
        return cls(**values)
