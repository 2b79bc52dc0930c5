"""
Chain backend implementations.

Available backends:
- EsploraBackend: Esplora REST API, with Blockchair as the raw-block source
"""

from esplora_backend.backends.base import ChainBackend
from esplora_backend.backends.esplora import EsploraBackend

__all__ = [
    "ChainBackend",
    "EsploraBackend",
]
