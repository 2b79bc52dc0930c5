"""
Error kinds raised by the explorer client, the extractor and the handlers.

Every hard error is a BackendError. The plugin boundary turns any of them into
a single BCLI_ERROR response; "not found" results are never raised.
"""

from __future__ import annotations


class BackendError(Exception):
    """Base class for hard errors surfaced to lightningd."""


class TransportError(BackendError):
    """Request could not be completed, or returned a non-200 status."""

    def __init__(self, url: str, status_code: int | None = None, body: str | None = None):
        self.url = url
        self.status_code = status_code
        self.body = body
        if status_code is None:
            message = f"request error on {url}"
        else:
            message = f"request error on {url} (HTTP {status_code})"
        super().__init__(message)


class ParseError(BackendError):
    """Response body is not well-formed JSON."""


class FieldAbsentError(BackendError):
    """Expected JSON path is missing from a response."""

    def __init__(self, path: str, context: str | None = None):
        self.path = path
        message = f"had no {path}"
        if context:
            message = f"{message} from {context}"
        super().__init__(message)


class ConversionError(BackendError):
    """A value cannot be converted to the expected numeric or binary type."""


class UnrecognizedChainError(BackendError):
    """Genesis block hash does not match any known network."""

    def __init__(self, genesis_hash: str):
        self.genesis_hash = genesis_hash
        super().__init__(f"no chain found for genesis block {genesis_hash}")
