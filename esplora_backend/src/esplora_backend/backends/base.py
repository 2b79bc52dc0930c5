"""
Base chain backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from esplora_backend.models import Block, BroadcastResult, ChainInfo, FeeEstimate, UtxoStatus


class ChainBackend(ABC):
    """
    The five operations lightningd requires from a Bitcoin backend plugin.

    Hard errors are raised as BackendError subclasses. Expected absence (a
    block past the tip, a spent output) is returned as the model's empty value.
    """

    @abstractmethod
    async def get_chain_info(self) -> ChainInfo:
        """Get the chain id, header count, block count and IBD flag"""

    @abstractmethod
    async def get_raw_block_by_height(self, height: int) -> Block:
        """Get the raw block at a height, or Block.not_found()"""

    @abstractmethod
    async def get_fee_rate(self, blocks: int, mode: str) -> FeeEstimate:
        """Estimate the feerate in sat/kB for a confirmation target"""

    @abstractmethod
    async def get_utxo(self, txid: str, vout: str) -> UtxoStatus:
        """Get amount and script of an output, or UtxoStatus.spent()"""

    @abstractmethod
    async def send_raw_transaction(self, tx_hex: str) -> BroadcastResult:
        """Broadcast a raw transaction"""

    async def close(self) -> None:
        """Close backend connection"""
        pass
