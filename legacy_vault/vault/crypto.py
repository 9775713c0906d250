"""
Vault Crypto Core: key derivation, asset list encryption and serialization.

Blob layout (base64 text, so it fits string-only key/value stores):
    [format 1B][nonce 12B][encrypted_payload + tag 16B]

The AEAD key is HKDF(device_key, "legacy-vault-assets"). The device key is
an opaque random string, never the biometric session token.

Security Note:
    Never log plaintext, ciphertext or key material.
    Nonces are random 96-bit; collision probability negligible under normal usage.
"""
import os
import base64
import binascii
import logging
from collections.abc import Iterable

import orjson
from pydantic import ValidationError
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from ..exceptions import DecryptError
from .models import AssetRecord, asset_list_adapter

logger = logging.getLogger("legacy_vault.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
KEY_LENGTH = 32  # AES-256
FORMAT_VERSION = 1

ASSETS_CONTEXT = "legacy-vault-assets"

DEFAULT_BACKEND = "aesgcm"

_CIPHERS = {
    "aesgcm": AESGCM,
    "chacha20": ChaCha20Poly1305,
}


def get_cipher(key: bytes, backend: str = DEFAULT_BACKEND):
    """Return an AEAD cipher for ``key`` using the named backend.

    Raises:
        ValueError: If the backend is not supported.
    """
    try:
        cipher_cls = _CIPHERS[backend]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {backend}") from None
    return cipher_cls(key)


# ---------------------------------------------------------------------------
# Key derivation
# ---------------------------------------------------------------------------

def derive_key(device_key: str, context: str = ASSETS_CONTEXT) -> bytes:
    """Derive a 32-byte encryption key from the device key using HKDF-SHA256.

    Args:
        device_key: Opaque device key string.
        context: Context string for domain separation.

    Returns:
        32-byte derived key.
    """
    if not device_key:
        raise ValueError("device key must not be empty")
    hkdf = HKDF(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=None,  # deterministic: the same device key must reopen the blob
        info=context.encode("utf-8"),
    )
    return hkdf.derive(device_key.encode("utf-8"))


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def serialize_assets(assets: Iterable[AssetRecord]) -> bytes:
    """Serialize an asset list to canonical JSON bytes."""
    return orjson.dumps([asset.model_dump(mode="json") for asset in assets])


def deserialize_assets(data: bytes) -> list[AssetRecord]:
    """Parse JSON bytes into a validated asset list.

    Raises:
        DecryptError: If the payload is not a list of asset records.
    """
    try:
        return asset_list_adapter.validate_python(orjson.loads(data))
    except (orjson.JSONDecodeError, ValidationError) as err:
        raise DecryptError("vault payload has an unexpected shape") from err


# ---------------------------------------------------------------------------
# Encryption
# ---------------------------------------------------------------------------

def encrypt_assets(
    assets: Iterable[AssetRecord],
    device_key: str,
    backend: str = DEFAULT_BACKEND,
) -> str:
    """Encrypt an asset list under the device key.

    Args:
        assets: Records to encrypt, in display order.
        device_key: Opaque device key string.
        backend: AEAD backend name (``aesgcm`` or ``chacha20``).

    Returns:
        Base64 blob ready to be written to a key/value store.
    """
    cipher = get_cipher(derive_key(device_key), backend)
    nonce = os.urandom(NONCE_SIZE)
    ct = cipher.encrypt(nonce, serialize_assets(assets), None)
    raw = bytes([FORMAT_VERSION]) + nonce + ct
    return base64.b64encode(raw).decode("ascii")


def decrypt_assets(
    blob: str,
    device_key: str,
    backend: str = DEFAULT_BACKEND,
) -> list[AssetRecord]:
    """Decrypt a blob produced by :func:`encrypt_assets`.

    Args:
        blob: Base64 blob read from storage.
        device_key: Opaque device key string.
        backend: AEAD backend the blob was written with.

    Returns:
        The complete asset list.

    Raises:
        DecryptError: If the blob is malformed, the key is wrong or the
            plaintext does not describe an asset list.
    """
    try:
        raw = base64.b64decode(blob, validate=True)
    except (binascii.Error, ValueError, TypeError) as err:
        raise DecryptError("vault blob is not valid base64") from err
    _min = 1 + NONCE_SIZE + TAG_SIZE
    if len(raw) < _min:
        raise DecryptError(
            f"vault blob too short: {len(raw)} bytes (minimum {_min})"
        )
    if raw[0] != FORMAT_VERSION:
        raise DecryptError(f"unknown vault blob format {raw[0]}")
    nonce = raw[1:1 + NONCE_SIZE]
    ct = raw[1 + NONCE_SIZE:]
    try:
        cipher = get_cipher(derive_key(device_key), backend)
        plaintext = cipher.decrypt(nonce, ct, None)
    except (InvalidTag, ValueError) as err:
        raise DecryptError("vault blob could not be decrypted") from err
    return deserialize_assets(plaintext)
