"""Client side of the session validation round trip."""
import asyncio
import logging
from typing import Optional

import aiohttp

from .exceptions import ValidationUnavailable

logger = logging.getLogger("legacy_vault.client")


class SessionValidatorClient:
    """Posts the host session string to the validation endpoint.

    Args:
        url: Absolute URL of the validation endpoint.
        session: Optional shared ``aiohttp.ClientSession``; one is created
            per call when omitted.
        timeout: Total request timeout in seconds.
    """

    def __init__(
        self,
        url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout: float = 10,
    ):
        self._url = url
        self._session = session
        self._timeout = aiohttp.ClientTimeout(total=timeout)

    async def _post(self, session: aiohttp.ClientSession, init_data: str) -> dict:
        async with session.post(
            self._url, json={"initData": init_data}, timeout=self._timeout,
        ) as response:
            if response.status >= 500:
                raise ValidationUnavailable(
                    f"validator answered HTTP {response.status}"
                )
            payload = await response.json(content_type=None)
        if not isinstance(payload, dict):
            raise ValidationUnavailable("validator returned an unexpected body")
        return payload

    async def validate(self, init_data: str) -> bool:
        """Return the server verdict for ``init_data``.

        Raises:
            ValidationUnavailable: If no verdict could be obtained.
        """
        try:
            if self._session is not None:
                payload = await self._post(self._session, init_data)
            else:
                async with aiohttp.ClientSession() as session:
                    payload = await self._post(session, init_data)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as err:
            raise ValidationUnavailable(f"session validation failed: {err}") from err
        if "error" in payload:
            logger.warning("Validator refused the session: %s", payload["error"])
        return payload.get("valid") is True
