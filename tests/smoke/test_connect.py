import httpx
import pytest

from services.fake_toxiproxy.app.main import create_app
from toxiclient.api.client import ToxiproxyClient
from toxiclient.model.errors import (
    DeserializationError,
    ServerUnreachableError,
    UnexpectedStatusError,
    UnsupportedServerVersionError,
)
from toxiclient.utils.retry import RetryPolicy

pytestmark = [pytest.mark.anyio, pytest.mark.smoke]

BASE_URL = "http://toxiproxy.test:8474"


async def test_connect_records_server_version(client, transport):
    assert client.server_version == "2.12.0"
    assert client.base_url == BASE_URL
    assert transport.calls == [("GET", "/version")]


async def test_connect_strips_trailing_slash(transport):
    async with await ToxiproxyClient.connect(BASE_URL + "/", transport=transport) as c:
        assert c.base_url == BASE_URL


@pytest.mark.parametrize("server_version", ["1.2.1"])
async def test_connect_rejects_old_servers(transport):
    with pytest.raises(UnsupportedServerVersionError, match="Minimum supported version is 2.0.0"):
        await ToxiproxyClient.connect(BASE_URL, transport=transport)


async def test_connect_accepts_plain_text_version():
    app = create_app(version="2.1.4", json_version=False)
    transport = httpx.ASGITransport(app=app)
    async with await ToxiproxyClient.connect(BASE_URL, transport=transport) as c:
        assert c.server_version == "2.1.4"


async def test_connect_uses_settings_default(monkeypatch, transport):
    monkeypatch.setenv("TOXIPROXY_URL", "http://from-env:8474")
    async with await ToxiproxyClient.connect(transport=transport) as c:
        assert c.base_url == "http://from-env:8474"


async def test_unreachable_server():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServerUnreachableError) as exc:
        await ToxiproxyClient.connect(BASE_URL, transport=httpx.MockTransport(refuse))
    assert exc.value.operation == "read version of"
    assert isinstance(exc.value.__cause__, httpx.ConnectError)


async def test_timeout_is_a_connection_failure():
    def stall(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(ServerUnreachableError, match="timed out"):
        await ToxiproxyClient.connect(BASE_URL, transport=httpx.MockTransport(stall))


async def test_connect_retries_when_asked():
    attempts = []

    def flaky(request):
        attempts.append(request)
        if len(attempts) < 3:
            raise httpx.ConnectError("connection refused", request=request)
        return httpx.Response(200, json={"version": "2.12.0"})

    policy = RetryPolicy(attempts=3, base_delay_s=0.0, max_delay_s=0.0)
    async with await ToxiproxyClient.connect(BASE_URL, transport=httpx.MockTransport(flaky), retry=policy) as c:
        assert c.server_version == "2.12.0"
    assert len(attempts) == 3


async def test_no_retry_by_default():
    attempts = []

    def refuse(request):
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(ServerUnreachableError):
        await ToxiproxyClient.connect(BASE_URL, transport=httpx.MockTransport(refuse))
    assert len(attempts) == 1


@pytest.mark.parametrize("response", [
    httpx.Response(200, json={"release": "2.12.0"}),
    httpx.Response(200, text="not-a-version"),
    httpx.Response(200, text="{broken"),
])
async def test_malformed_version(response):
    with pytest.raises(DeserializationError):
        await ToxiproxyClient.connect(BASE_URL, transport=httpx.MockTransport(lambda request: response))


async def test_version_endpoint_error():
    transport = httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "starting up"}))
    with pytest.raises(UnexpectedStatusError) as exc:
        await ToxiproxyClient.connect(BASE_URL, transport=transport)
    assert exc.value.status_code == 503
    assert exc.value.detail == "starting up"
