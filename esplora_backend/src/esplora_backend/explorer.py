"""
HTTP client for the Esplora API and the raw-block fallback explorer.
"""

from __future__ import annotations

import ssl

import httpx
from loguru import logger

from esplora_backend.config import Settings
from esplora_backend.errors import TransportError

# Only this status counts as success; redirects are followed before the check
SUCCESS_STATUS = 200

# Response bodies echoed in verbose mode are cut to this many characters
VERBOSE_BODY_LIMIT = 512


async def _log_request(request: httpx.Request) -> None:
    logger.debug(f"> {request.method} {request.url}")


async def _log_response(response: httpx.Response) -> None:
    await response.aread()
    logger.debug(
        f"< {response.status_code} {response.request.url} "
        f"{response.text[:VERBOSE_BODY_LIMIT]!r}"
    )


class ExplorerClient:
    """
    Issues requests against the configured explorers.

    Every call returns the response body as text, or raises TransportError when
    the request cannot be completed or the status is not 200. Nothing is
    retried here.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.base_url = settings.esplora_api_endpoint
        self.fallback_url = settings.blockchair_api_endpoint

        event_hooks: dict[str, list] = {}
        if settings.verbose:
            event_hooks = {"request": [_log_request], "response": [_log_response]}

        verify: ssl.SSLContext | bool = True
        if settings.esplora_cainfo is not None:
            verify = ssl.create_default_context(cafile=str(settings.esplora_cainfo))

        self.client = httpx.AsyncClient(
            timeout=settings.request_timeout,
            follow_redirects=True,
            headers={"Accept-Encoding": "gzip"},
            verify=verify,
            event_hooks=event_hooks,
            transport=transport,
        )

    async def _request(self, method: str, url: str, content: str | None = None) -> str:
        try:
            response = await self.client.request(method, url, content=content)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {url} failed: {e}")
            raise TransportError(url) from e

        if response.status_code != SUCCESS_STATUS:
            logger.debug(f"{method} {url} returned HTTP {response.status_code}")
            raise TransportError(url, status_code=response.status_code, body=response.text)

        return response.text

    def url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def fallback(self, path: str) -> str:
        return f"{self.fallback_url}{path}"

    async def get(self, path: str) -> str:
        """GET a path on the primary explorer."""
        return await self._request("GET", self.url(path))

    async def post(self, path: str, payload: str) -> str:
        """POST payload as the raw request body to a path on the primary explorer."""
        return await self._request("POST", self.url(path), content=payload)

    async def get_fallback(self, path: str) -> str:
        """GET a path on the raw-block fallback explorer."""
        return await self._request("GET", self.fallback(path))

    async def close(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> ExplorerClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
