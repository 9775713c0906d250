"""Vault data models: asset records and the capped asset list."""
from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from .config import MAX_ASSETS


class AssetType(str, Enum):
    """Kind of asset a record describes."""

    CRYPTO = "crypto"
    DOMAIN = "domain"
    OTHER = "other"
    UNSET = ""


class AssetRecord(BaseModel):
    """A single asset stored in the vault."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    type: AssetType = AssetType.UNSET
    details: str = ""
    notes: str = ""


AssetList = Annotated[list[AssetRecord], Field(max_length=MAX_ASSETS)]

asset_list_adapter = TypeAdapter(AssetList)
