"""Legacy Vault exceptions.

Every failure of the vault core is one of these. Public vault operations
report them to the caller (inside a ``MutationResult`` or as an empty asset
list) instead of letting them escape.
"""


class VaultError(Exception):
    """Base class for all Legacy Vault errors."""


class BadRequest(VaultError):
    """The validator received no session string (user-correctable)."""


class ConfigurationError(VaultError):
    """The server secret is not configured (operator-correctable)."""


class StorageUnavailable(VaultError):
    """A storage primitive is missing or failed."""


class DecryptError(VaultError):
    """Ciphertext is corrupt, the key is wrong, or the payload has a bad shape."""


class PersistenceFailure(VaultError):
    """A write to storage did not confirm."""


class CapacityExceeded(VaultError):
    """The asset list is already at its maximum size."""


class AssetNotFound(VaultError):
    """No asset exists at the requested position."""


class ValidationUnavailable(VaultError):
    """The session validation round trip did not produce a verdict."""
