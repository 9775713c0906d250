"""
Optimistic mutation protocol for the in-memory asset list.

Every add/edit/delete goes through :func:`apply_optimistic`:

    PENDING -> COMMITTED     persistence confirmed
    PENDING -> ROLLED_BACK   persistence failed, previous list restored

``REJECTED`` marks mutations refused before anything changed (capacity
reached, unknown position).
"""
import logging
from enum import Enum
from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..exceptions import PersistenceFailure, VaultError
from .models import AssetRecord

logger = logging.getLogger("legacy_vault.vault")


class MutationState(str, Enum):
    PENDING = "pending"
    COMMITTED = "committed"
    ROLLED_BACK = "rolled_back"
    REJECTED = "rejected"


class MutationResult(BaseModel):
    """Outcome of one mutation, reported to the caller instead of raising."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: MutationState
    assets: list[AssetRecord] = Field(default_factory=list)
    error: Optional[VaultError] = None

    @property
    def ok(self) -> bool:
        return self.state is MutationState.COMMITTED


class VaultState(BaseModel):
    """In-memory view of the vault owned by one ``AssetVault``."""

    unlocked: bool = False
    has_device_key: bool = False
    assets: list[AssetRecord] = Field(default_factory=list)
    pending: bool = False
    editing: Optional[int] = None


Mutator = Callable[[list[AssetRecord]], list[AssetRecord]]
Persister = Callable[[list[AssetRecord]], Awaitable[None]]


async def apply_optimistic(
    state: VaultState,
    mutate: Mutator,
    persist: Persister,
) -> MutationResult:
    """Apply ``mutate`` to the view now, persist it, and undo it on failure.

    Args:
        state: Vault state whose ``assets`` are replaced (never edited in place).
        mutate: Builds the new list from a copy of the current one.
        persist: Writes the new list; raises on failure.

    Returns:
        ``COMMITTED`` with the new list, or ``ROLLED_BACK`` with the
        restored list and a :class:`PersistenceFailure`.
    """
    snapshot = state.assets
    updated = mutate(list(snapshot))
    state.assets = updated
    state.pending = True
    try:
        await persist(updated)
    except Exception as err:
        state.assets = snapshot
        if isinstance(err, PersistenceFailure):
            failure = err
        else:
            logger.error("Vault write failed: %s", err)
            failure = PersistenceFailure(str(err) or type(err).__name__)
            failure.__cause__ = err
        return MutationResult(
            state=MutationState.ROLLED_BACK, assets=snapshot, error=failure,
        )
    finally:
        state.pending = False
    return MutationResult(state=MutationState.COMMITTED, assets=updated)
