"""
esplora_backend - Bitcoin backend plugin for lightningd

Serves lightningd's chain-backend methods from an Esplora block explorer,
with Blockchair as the source of raw blocks.
"""

__version__ = "0.1.0"

from esplora_backend.backends import ChainBackend, EsploraBackend
from esplora_backend.chain import GENESIS_HASHES, ChainId, identify
from esplora_backend.config import Settings, get_settings
from esplora_backend.errors import (
    BackendError,
    ConversionError,
    FieldAbsentError,
    ParseError,
    TransportError,
    UnrecognizedChainError,
)
from esplora_backend.explorer import ExplorerClient
from esplora_backend.models import Block, BroadcastResult, ChainInfo, FeeEstimate, UtxoStatus

__all__ = [
    "BackendError",
    "Block",
    "BroadcastResult",
    "ChainBackend",
    "ChainId",
    "ChainInfo",
    "ConversionError",
    "EsploraBackend",
    "ExplorerClient",
    "FeeEstimate",
    "FieldAbsentError",
    "GENESIS_HASHES",
    "ParseError",
    "Settings",
    "TransportError",
    "UnrecognizedChainError",
    "UtxoStatus",
    "get_settings",
    "identify",
]
