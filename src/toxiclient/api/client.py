from __future__ import annotations
import logging
from typing import List, Optional

import httpx

from toxiclient.api.adapter import ServerSession, ToxiproxyAdapter, fetch_version
from toxiclient.api.versions import MINIMUM_SUPPORTED_VERSION, is_supported
from toxiclient.config.settings import get_settings
from toxiclient.model.errors import UnsupportedServerVersionError
from toxiclient.model.proxy import Proxy
from toxiclient.model.wire import ProxyRecord
from toxiclient.utils.retry import RetryPolicy, with_retries

logger = logging.getLogger(__name__)

class ToxiproxyClient:
    """
    Connection to one Toxiproxy server.

    Use ``await ToxiproxyClient.connect(...)``; it negotiates the server
    version once and every proxy it hands out shares the resulting session.
    """

    def __init__(self, http: httpx.AsyncClient, session: ServerSession):
        self._http = http
        self._adapter = ToxiproxyAdapter(http, session)

    @classmethod
    async def connect(
        cls,
        base_url: str | None = None,
        *,
        timeout_s: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        retry: RetryPolicy | None = None,
    ) -> "ToxiproxyClient":
        settings = get_settings()
        base_url = (base_url or settings.toxiproxy_url).rstrip("/")
        timeout_s = settings.timeout_s if timeout_s is None else timeout_s

        http = httpx.AsyncClient(base_url=base_url, timeout=timeout_s, transport=transport)
        try:
            if retry is None:
                version = await fetch_version(http)
            else:
                version = await with_retries(lambda: fetch_version(http), retry)
            if not is_supported(version):
                raise UnsupportedServerVersionError(version, MINIMUM_SUPPORTED_VERSION)
        except BaseException:
            await http.aclose()
            raise

        logger.info(f"connected to toxiproxy {version} at {base_url}")
        return cls(http, ServerSession(base_url=base_url, version=version))

    @property
    def session(self) -> ServerSession:
        return self._adapter.session

    @property
    def base_url(self) -> str:
        return self.session.base_url

    @property
    def server_version(self) -> str:
        return self.session.version

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ToxiproxyClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    def proxy(self, name: str, listen: str, upstream: str, enabled: bool = True) -> Proxy:
        """A proxy bound to this client that does not exist on the server until ``create``."""
        record = ProxyRecord(name=name, listen=listen, upstream=upstream, enabled=enabled)
        return Proxy(self._adapter, record)

    async def create_proxy(
        self, name: str, listen: str, upstream: str, enabled: bool = True
    ) -> Proxy:
        return await self.proxy(name, listen, upstream, enabled).create()

    async def get_proxies(self) -> List[Proxy]:
        return [Proxy(self._adapter, r, saved=True) for r in await self._adapter.list_proxies()]

    async def get_proxy(self, name: str) -> Optional[Proxy]:
        record = await self._adapter.get_proxy(name)
        if record is None:
            return None
        return Proxy(self._adapter, record, saved=True)

    async def delete_proxy(self, name: str) -> None:
        await self._adapter.delete_proxy(name)
        logger.info(f"deleted proxy {name}")

    async def reset(self) -> None:
        """Re-enables every proxy and removes all toxics."""
        await self._adapter.reset()
        logger.info(f"reset toxiproxy at {self.base_url}")
