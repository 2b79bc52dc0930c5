"""
Pytest configuration and fixtures for esplora_backend tests.
"""

from __future__ import annotations

from collections.abc import Callable

import httpx
import pytest

from esplora_backend.backends.esplora import EsploraBackend
from esplora_backend.config import Settings
from esplora_backend.explorer import ExplorerClient

ESPLORA_URL = "https://esplora.test/api"
BLOCKCHAIR_URL = "https://blockchair.test/bitcoin"

MAINNET_GENESIS = "000000000019d6689c085ae165831e934ff763ae46a2a6c172b3f1b60a8ce26f"
TESTNET_GENESIS = "000000000933ea01ad0ee984209779baaec3ced90fa3f408719526f8d77f4943"
REGTEST_GENESIS = "0f9188f13cb7b2c71f2a335e3a4fc328bf5beb436012afca590b1a11466e2206"

Route = httpx.Response | Callable[[httpx.Request], httpx.Response]


class FakeExplorer:
    """
    Serves canned responses keyed by (method, url) through httpx.MockTransport.

    Unknown routes answer 404 like Esplora does for unknown heights and txids.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Route] = {}
        self.requests: list[httpx.Request] = []

    def get(self, url: str, status: int = 200, text: str = "") -> None:
        self.routes[("GET", url)] = httpx.Response(status, text=text)

    def post(self, url: str, status: int = 200, text: str = "") -> None:
        self.routes[("POST", url)] = httpx.Response(status, text=text)

    def fail(self, method: str, url: str) -> None:
        def _raise(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        self.routes[(method, url)] = _raise

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get((request.method, str(request.url)))
        if route is None:
            return httpx.Response(404, text="Not found")
        if callable(route):
            return route(request)
        return route

    @property
    def urls(self) -> list[str]:
        return [str(r.url) for r in self.requests]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        esplora_api_endpoint=ESPLORA_URL,
        blockchair_api_endpoint=BLOCKCHAIR_URL,
        esplora_verbose=0,
    )


@pytest.fixture
def explorer() -> FakeExplorer:
    return FakeExplorer()


@pytest.fixture
def client(settings: Settings, explorer: FakeExplorer) -> ExplorerClient:
    return ExplorerClient(settings, transport=httpx.MockTransport(explorer.handler))


@pytest.fixture
def backend(settings: Settings, client: ExplorerClient) -> EsploraBackend:
    return EsploraBackend(settings, client=client)
