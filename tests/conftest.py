from typing import Awaitable, Callable, Dict, List, Tuple

import httpx
import pytest

from services.fake_toxiproxy.app.main import create_app
from toxiclient.api.client import ToxiproxyClient

BASE_URL = "http://toxiproxy.test:8474"

Call = Tuple[str, str]


class RecordingTransport(httpx.AsyncBaseTransport):
    """
    Forwards requests to the in-process fake server and records (method, path)
    of every request. ``overrides`` replaces the server for a given call.
    """

    def __init__(self, inner: httpx.AsyncBaseTransport):
        self._inner = inner
        self.calls: List[Call] = []
        self.overrides: Dict[Call, Callable[[httpx.Request], Awaitable[httpx.Response]]] = {}

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        call = (request.method, request.url.path)
        self.calls.append(call)
        if call in self.overrides:
            return await self.overrides[call](request)
        return await self._inner.handle_async_request(request)

    async def aclose(self) -> None:
        await self._inner.aclose()


@pytest.fixture
def anyio_backend():
    return "asyncio"

@pytest.fixture
def server_version():
    return "2.12.0"

@pytest.fixture
def fake_server(server_version):
    return create_app(version=server_version)

@pytest.fixture
def store(fake_server):
    """Direct access to server state, for changes made 'by someone else'."""
    return fake_server.state.store

@pytest.fixture
def transport(fake_server):
    return RecordingTransport(httpx.ASGITransport(app=fake_server))

@pytest.fixture
async def client(transport):
    c = await ToxiproxyClient.connect(BASE_URL, transport=transport)
    try:
        yield c
    finally:
        await c.aclose()

@pytest.fixture
async def proxy(client):
    return await client.create_proxy("p1", "127.0.0.1:11111", "example.org:80")
