"""
Validator Configuration: settings for the session validation server.

Reads settings from environment variables:
    BOT_TOKEN = <platform bot token>          (read on every request)
    VALIDATE_ROUTE = /api/validate
    VALIDATOR_HOST = 0.0.0.0
    VALIDATOR_PORT = 8080
    INIT_DATA_MAX_AGE = <seconds>             (optional freshness window)

Security Note:
    The bot token is never logged and never returned to clients.
"""
import os
from typing import Optional

from .exceptions import ConfigurationError

BOT_TOKEN_ENV = "BOT_TOKEN"

# Constant key used to derive the HMAC secret from the bot token.
WEBAPP_DATA_KEY = b"WebAppData"

# Name of the signature field inside the session string.
HASH_FIELD = "hash"
AUTH_DATE_FIELD = "auth_date"

# Tolerated clock difference for auth_date values set in the future.
AUTH_DATE_SKEW = 30

VALIDATE_ROUTE = os.environ.get("VALIDATE_ROUTE", "/api/validate")
VALIDATOR_HOST = os.environ.get("VALIDATOR_HOST", "0.0.0.0")
VALIDATOR_PORT = int(os.environ.get("VALIDATOR_PORT", "8080"))


def get_bot_token() -> Optional[str]:
    """Return the bot token from the environment, or None when unset."""
    return os.environ.get(BOT_TOKEN_ENV) or None


def get_init_data_max_age() -> Optional[int]:
    """Return the optional freshness window for ``auth_date`` in seconds.

    Raises:
        ConfigurationError: If INIT_DATA_MAX_AGE is not a positive integer.
    """
    raw = os.environ.get("INIT_DATA_MAX_AGE")
    if not raw:
        return None
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        raise ConfigurationError("INIT_DATA_MAX_AGE must be a positive integer")
    return value
