"""
Network identification from the genesis block hash.
"""

from __future__ import annotations

from enum import Enum

from esplora_backend.errors import UnrecognizedChainError


class ChainId(str, Enum):
    """Chain names as lightningd expects them in getchaininfo."""

    MAIN = "main"
    TEST = "test"
    REGTEST = "regtest"


GENESIS_HASHES: dict[str, ChainId] = {
    "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f": ChainId.MAIN,
    "000000000933ea01ad0ee984209779baaec3ced90fa3f408719526f8d77f4943": ChainId.TEST,
    "0f9188f13cb7b2c71f2a335e3a4fc328bf5beb436012afca590b1a11466e2206": ChainId.REGTEST,
}


def identify(genesis_hash: str) -> ChainId:
    """
    Map a genesis block hash to its network.

    Esplora returns the hash as plain text, possibly with a trailing newline,
    so surrounding whitespace is ignored. Matching is otherwise exact on the
    full 64 lower-case hex digits; prefixes and case variants do not match.

    Raises:
        UnrecognizedChainError: If the hash is not one of GENESIS_HASHES
    """
    normalized = genesis_hash.strip()
    try:
        return GENESIS_HASHES[normalized]
    except KeyError:
        raise UnrecognizedChainError(normalized) from None
