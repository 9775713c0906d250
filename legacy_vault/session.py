"""
Vault start-up flow.

host session string -> server validation -> biometric gate -> vault unlock.
"""
import logging
from typing import Optional

import aiohttp

from .client import SessionValidatorClient
from .exceptions import ConfigurationError, ValidationUnavailable
from .host import HostBridge
from .vault.asset_vault import AssetVault
from .vault.config import VaultConfig

logger = logging.getLogger("legacy_vault.session")

UNLOCK_REASON = "Unlock your vault"


class VaultSession:
    """Runs the start-up sequence of one mini-app session."""

    def __init__(
        self,
        host: HostBridge,
        validator: SessionValidatorClient,
        vault: AssetVault,
    ):
        self.host = host
        self.validator = validator
        self.vault = vault

    @classmethod
    def from_config(
        cls,
        host: HostBridge,
        config: Optional[VaultConfig] = None,
        http: Optional[aiohttp.ClientSession] = None,
    ) -> "VaultSession":
        """Wire a session from vault settings.

        Raises:
            ConfigurationError: If no validation URL is configured.
        """
        config = config or VaultConfig.from_env()
        if not config.validate_url:
            raise ConfigurationError("VAULT_VALIDATE_URL is not configured")
        validator = SessionValidatorClient(config.validate_url, session=http)
        return cls(host, validator, AssetVault.for_host(host, config))

    async def start(self, init_data: str) -> bool:
        """Validate the session and unlock the vault.

        Returns:
            True when the vault ends up unlocked.
        """
        try:
            valid = await self.validator.validate(init_data)
        except ValidationUnavailable as err:
            logger.error("Validation failed: %s", err)
            self.host.show_alert("Error validating session.")
            return False
        if not valid:
            logger.warning("Session string rejected by validator")
            self.host.show_alert("Invalid session! Please restart.")
            self.host.close()
            return False
        auth = await self.host.authenticate(UNLOCK_REASON)
        return await self.vault.unlock(auth)
