"""
Tests for result models and their lightningd response shapes.
"""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from esplora_backend.chain import ChainId
from esplora_backend.models import Block, BroadcastResult, ChainInfo, FeeEstimate, UtxoStatus


def test_chain_info_counts_match() -> None:
    info = ChainInfo.at_height(ChainId.MAIN, 850_000)
    assert info.to_response() == {
        "chain": "main",
        "headercount": 850_000,
        "blockcount": 850_000,
        "ibd": False,
    }


def test_block_not_found_response() -> None:
    block = Block.not_found()
    assert block.found is False
    assert block.to_response() == {"blockhash": None, "block": None}


def test_block_fields_are_set_together() -> None:
    with pytest.raises(ValidationError, match="both"):
        Block(blockhash="00" * 32)
    with pytest.raises(ValidationError, match="both"):
        Block(block="0100")


def test_fee_estimate_response() -> None:
    assert FeeEstimate(feerate=253).to_response() == {"feerate": 253}


def test_utxo_response_renders_script_hex() -> None:
    status = UtxoStatus(amount=5000, script=bytes.fromhex("0014ab"))
    assert status.is_unspent is True
    assert status.to_response() == {"amount": 5000, "script": "0014ab"}


def test_utxo_spent_response() -> None:
    status = UtxoStatus.spent()
    assert status.is_unspent is False
    assert status.to_response() == {"amount": None, "script": None}


def test_utxo_fields_are_set_together() -> None:
    with pytest.raises(ValidationError):
        UtxoStatus(amount=5000)


def test_broadcast_result_responses() -> None:
    assert BroadcastResult(success=True).to_response() == {"success": True, "errmsg": ""}
    failed = BroadcastResult.failed("sendrawtransaction: boom")
    assert failed.to_response() == {"success": False, "errmsg": "sendrawtransaction: boom"}
