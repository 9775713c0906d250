"""
Session Validator: verifies that a mini-app session string was signed by the
platform, and exposes the verdict over HTTP.

The algorithm must match the platform bit for bit:
    secret_key = HMAC_SHA256(key="WebAppData", msg=bot_token)
    check_string = "\\n".join(sorted "key=value" pairs without "hash")
    valid = hex(HMAC_SHA256(key=secret_key, msg=check_string)) == hash

Security Note:
    Never log the bot token, the provided hash or the computed hash.
"""
import hmac as _hmac
import time
import logging
from typing import Optional
from collections.abc import Iterable, Mapping
from urllib.parse import parse_qsl, urlencode

from aiohttp import web
from cryptography.hazmat.primitives import hashes, hmac

from .conf import (
    AUTH_DATE_FIELD,
    AUTH_DATE_SKEW,
    HASH_FIELD,
    VALIDATE_ROUTE,
    WEBAPP_DATA_KEY,
    get_bot_token,
    get_init_data_max_age,
)
from .exceptions import BadRequest, ConfigurationError

logger = logging.getLogger("legacy_vault.validator")


def _hmac_sha256(key: bytes, message: bytes) -> bytes:
    signer = hmac.HMAC(key, hashes.SHA256())
    signer.update(message)
    return signer.finalize()


def derive_secret_key(bot_token: str) -> bytes:
    """Derive the raw HMAC secret from the bot token."""
    return _hmac_sha256(WEBAPP_DATA_KEY, bot_token.encode("utf-8"))


def build_check_string(pairs: Iterable[tuple[str, str]]) -> str:
    """Join ``key=value`` pairs sorted by key codepoint, newline separated.

    Pairs sharing a key keep their original relative order.
    """
    ordered = sorted(pairs, key=lambda pair: pair[0])
    return "\n".join(f"{key}={value}" for key, value in ordered)


def compute_signature(pairs: Iterable[tuple[str, str]], bot_token: str) -> str:
    """Return the lowercase hex signature the platform would attach to pairs."""
    check_string = build_check_string(pairs)
    digest = _hmac_sha256(
        derive_secret_key(bot_token), check_string.encode("utf-8"),
    )
    return digest.hex()


def sign_init_data(params: Mapping[str, str], bot_token: str) -> str:
    """Build a signed session string, as the platform would issue it.

    Args:
        params: Session fields (``hash`` must not be among them).
        bot_token: Bot token used to sign.

    Returns:
        URL-encoded query string with a trailing ``hash`` field.
    """
    pairs = [(str(k), str(v)) for k, v in params.items() if k != HASH_FIELD]
    signature = compute_signature(pairs, bot_token)
    return urlencode(pairs + [(HASH_FIELD, signature)])


def _is_fresh(auth_date: Optional[str], max_age: int) -> bool:
    if auth_date is None:
        return True
    try:
        issued = int(auth_date)
    except ValueError:
        return False
    now = time.time()
    if issued > now + AUTH_DATE_SKEW:
        return False
    return now - issued <= max_age


def validate_init_data(
    init_data: Optional[str],
    bot_token: Optional[str],
    max_age: Optional[int] = None,
) -> bool:
    """Check that ``init_data`` was signed with ``bot_token``.

    Args:
        init_data: Raw session string supplied by the host.
        bot_token: Server-held secret.
        max_age: Optional maximum age in seconds of ``auth_date``.

    Returns:
        True if the signature matches (and the payload is fresh when
        ``max_age`` is given), False otherwise.

    Raises:
        BadRequest: If ``init_data`` is missing.
        ConfigurationError: If ``bot_token`` is missing.
    """
    if not init_data:
        raise BadRequest("initData missing")
    if not bot_token:
        raise ConfigurationError("BOT_TOKEN not set in environment")

    pairs = parse_qsl(init_data, keep_blank_values=True)
    provided = None
    remaining = []
    for key, value in pairs:
        if key == HASH_FIELD:
            if provided is None:
                provided = value
        else:
            remaining.append((key, value))
    if provided is None:
        return False

    expected = compute_signature(remaining, bot_token)
    valid = _hmac.compare_digest(
        expected.encode("utf-8"), provided.encode("utf-8"),
    )
    if valid and max_age is not None:
        auth_date = dict(remaining).get(AUTH_DATE_FIELD)
        valid = _is_fresh(auth_date, max_age)
    return valid


# ---------------------------------------------------------------------------
# HTTP endpoint
# ---------------------------------------------------------------------------

async def validate_handler(request: web.Request) -> web.StreamResponse:
    """Validate ``{"initData": ...}`` posted by the mini-app."""
    if request.method != "POST":
        return web.Response(status=405, text="Method Not Allowed")

    try:
        body = await request.json()
    except ValueError:
        body = None
    init_data = body.get("initData") if isinstance(body, dict) else None
    if not isinstance(init_data, str) or not init_data:
        return web.json_response(
            {"valid": False, "error": "initData missing"}, status=400,
        )

    try:
        valid = validate_init_data(
            init_data, get_bot_token(), max_age=get_init_data_max_age(),
        )
    except ConfigurationError as err:
        logger.error("Validator misconfigured: %s", err)
        return web.json_response(
            {"valid": False, "error": "server misconfigured"}, status=500,
        )
    if not valid:
        logger.info("Rejected session payload from %s", request.remote)
    return web.json_response({"valid": valid})


def setup_routes(app: web.Application, path: str = VALIDATE_ROUTE) -> None:
    """Attach the validation endpoint to ``app`` for every HTTP method."""
    app.router.add_route("*", path, validate_handler)


def create_app(path: str = VALIDATE_ROUTE) -> web.Application:
    """Create the validation web application."""
    app = web.Application()
    setup_routes(app, path)
    return app
