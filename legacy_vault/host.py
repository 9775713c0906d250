"""
Host SDK surface used by the vault.

The mini-app host provides alerts, haptic feedback, a close action, a
biometric gate and (optionally) a secure key/value storage primitive.
``HostBridge`` is the interface the vault talks to; ``HeadlessHost`` is the
fallback used outside the host, with the same observable behaviour minus
the secure storage.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from pydantic import BaseModel

logger = logging.getLogger("legacy_vault.host")


class BiometricResult(BaseModel):
    """Outcome of the host biometric gate.

    The token only proves that the user passed the gate for this session;
    it is never used as encryption key material.
    """

    authenticated: bool = False
    token: Optional[str] = None


class HostBridge(ABC):
    """What the vault consumes from the mini-app host."""

    #: callback-based secure storage primitive, or None when unsupported
    secure_storage: Any = None

    @abstractmethod
    def show_alert(self, message: str) -> None:
        """Show a message to the user."""

    def haptic(self, kind: str) -> None:
        """Emit haptic feedback (``success``, ``error``, ``warning``)."""

    def close(self) -> None:
        """Close the mini-app."""

    @abstractmethod
    async def authenticate(self, reason: str) -> BiometricResult:
        """Run the biometric gate."""


class HeadlessHost(HostBridge):
    """Host stand-in used when no mini-app host is present.

    Alerts and haptics are logged and kept in ``alerts``/``haptics``.
    The biometric gate passes only when a ``token`` was given.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        secure_storage: Any = None,
    ):
        self._token = token
        self.secure_storage = secure_storage
        self.alerts: list[str] = []
        self.haptics: list[str] = []
        self.closed = False

    def show_alert(self, message: str) -> None:
        logger.info("Alert: %s", message)
        self.alerts.append(message)

    def haptic(self, kind: str) -> None:
        logger.debug("Haptic feedback: %s", kind)
        self.haptics.append(kind)

    def close(self) -> None:
        logger.info("Host close requested")
        self.closed = True

    async def authenticate(self, reason: str) -> BiometricResult:
        logger.debug("Biometric gate requested: %s", reason)
        if not self._token:
            return BiometricResult(authenticated=False)
        return BiometricResult(authenticated=True, token=self._token)
