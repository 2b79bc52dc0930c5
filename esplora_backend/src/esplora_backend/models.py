"""
Result models for the five backend methods.

Each model renders its lightningd response object via to_response().
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from esplora_backend.chain import ChainId


class ChainInfo(BaseModel):
    model_config = ConfigDict(frozen=True)

    chain: ChainId
    headercount: int = Field(..., ge=0)
    blockcount: int = Field(..., ge=0)
    # Explorers are assumed fully synced
    ibd: bool = False

    @classmethod
    def at_height(cls, chain: ChainId, height: int) -> ChainInfo:
        # The explorer API does not distinguish header sync from block sync
        return cls(chain=chain, headercount=height, blockcount=height, ibd=False)

    def to_response(self) -> dict[str, Any]:
        return {
            "chain": self.chain.value,
            "headercount": self.headercount,
            "blockcount": self.blockcount,
            "ibd": self.ibd,
        }


class Block(BaseModel):
    """A raw block, or the not-found result when both fields are None."""

    model_config = ConfigDict(frozen=True)

    blockhash: str | None = None
    block: str | None = None

    @model_validator(mode="after")
    def validate_together(self) -> Block:
        if (self.blockhash is None) != (self.block is None):
            raise ValueError("blockhash and block must both be set or both be None")
        return self

    @classmethod
    def not_found(cls) -> Block:
        return cls()

    @property
    def found(self) -> bool:
        return self.blockhash is not None

    def to_response(self) -> dict[str, Any]:
        return {"blockhash": self.blockhash, "block": self.block}


class FeeEstimate(BaseModel):
    model_config = ConfigDict(frozen=True)

    # satoshis per 1000 bytes
    feerate: int = Field(..., ge=0)

    def to_response(self) -> dict[str, Any]:
        return {"feerate": self.feerate}


class UtxoStatus(BaseModel):
    """An unspent output, or the spent result when both fields are None."""

    model_config = ConfigDict(frozen=True)

    amount: int | None = Field(default=None, ge=0)
    script: bytes | None = None

    @model_validator(mode="after")
    def validate_together(self) -> UtxoStatus:
        if (self.amount is None) != (self.script is None):
            raise ValueError("amount and script must both be set or both be None")
        return self

    @classmethod
    def spent(cls) -> UtxoStatus:
        return cls()

    @property
    def is_unspent(self) -> bool:
        return self.amount is not None

    def to_response(self) -> dict[str, Any]:
        return {
            "amount": self.amount,
            "script": self.script.hex() if self.script is not None else None,
        }


class BroadcastResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    errmsg: str = ""

    @classmethod
    def failed(cls, errmsg: str) -> BroadcastResult:
        return cls(success=False, errmsg=errmsg)

    def to_response(self) -> dict[str, Any]:
        return {"success": self.success, "errmsg": self.errmsg}
