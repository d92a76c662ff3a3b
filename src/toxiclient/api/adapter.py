"""
HTTP side of the client: one method per endpoint of the Toxiproxy REST API.

Every call is classified into exactly one outcome:

- a decoded record (or ``None`` for a 404 on a read),
- ``ServerUnreachableError`` when the transport fails or times out,
- ``UnexpectedStatusError`` for a non-2xx answer not handled otherwise,
- ``DeserializationError`` when the body is not the expected shape,
- ``ProxyAlreadyExistsError`` / ``ToxicAlreadyExistsError`` for a 409 on create.

Updates use the verb chosen by ``UpdateVerbPolicy`` for the negotiated
server version.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, List, Optional, TypeVar
from urllib.parse import quote

import httpx
from pydantic import TypeAdapter, ValidationError

from toxiclient.api.versions import UpdateVerbPolicy, parse_version
from toxiclient.model.errors import (
    DeserializationError,
    ProxyAlreadyExistsError,
    ServerUnreachableError,
    ToxicAlreadyExistsError,
    UnexpectedStatusError,
)
from toxiclient.model.wire import (
    PROXY,
    PROXY_MAP,
    TOXIC,
    TOXIC_LIST,
    VERSION,
    ProxyRecord,
    ToxicRecord,
)

logger = logging.getLogger(__name__)

R = TypeVar("R")


@dataclass(frozen=True)
class ServerSession:
    base_url: str
    version: str


def _path(*parts: str) -> str:
    return "/" + "/".join(quote(p, safe="") for p in parts)


def _detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text.strip()
    if isinstance(body, dict):
        return str(body.get("error") or body.get("detail") or "")
    return ""


async def send(
    http: httpx.AsyncClient,
    method: str,
    path: str,
    *,
    operation: str,
    resource: str,
    json: Any = None,
) -> httpx.Response:
    logger.debug(f"{method} {path}")
    try:
        return await http.request(method, path, json=json)
    except httpx.TransportError as e:
        logger.warning(f"{method} {path} failed: {e!r}")
        raise ServerUnreachableError(operation, resource, str(e) or type(e).__name__) from e


def raise_for_status(response: httpx.Response, operation: str, resource: str) -> None:
    if response.is_success:
        return
    detail = _detail(response)
    request = response.request
    logger.warning(f"{request.method} {request.url.path} answered {response.status_code}: {detail}")
    raise UnexpectedStatusError(operation, resource, response.status_code, detail)


def decode(response: httpx.Response, shape: TypeAdapter[R], operation: str, resource: str) -> R:
    try:
        return shape.validate_json(response.content)
    except ValidationError as e:
        raise DeserializationError(operation, resource, f"unexpected response body: {e}") from e


async def fetch_version(http: httpx.AsyncClient) -> str:
    """Reads the server version; older servers answer plain text instead of JSON."""
    operation, resource = "read version of", str(http.base_url)
    response = await send(http, "GET", "/version", operation=operation, resource=resource)
    raise_for_status(response, operation, resource)

    if response.text.lstrip().startswith("{"):
        version = decode(response, VERSION, operation, resource).version
    else:
        version = response.text.strip()

    try:
        parse_version(version)
    except ValueError as e:
        raise DeserializationError(operation, resource, str(e)) from e
    return version


class ToxiproxyAdapter:
    def __init__(self, http: httpx.AsyncClient, session: ServerSession):
        self._http = http
        self.session = session
        self.update_policy = UpdateVerbPolicy(session.version)

    async def _request(
        self, method: str, path: str, operation: str, resource: str, json: Any = None
    ) -> httpx.Response:
        return await send(
            self._http, method, path, operation=operation, resource=resource, json=json
        )

    # proxies

    async def list_proxies(self) -> List[ProxyRecord]:
        operation, resource = "list proxies on", self.session.base_url
        r = await self._request("GET", "/proxies", operation, resource)
        raise_for_status(r, operation, resource)
        return list(decode(r, PROXY_MAP, operation, resource).values())

    async def get_proxy(self, name: str) -> Optional[ProxyRecord]:
        r = await self._request("GET", _path("proxies", name), "read proxy", name)
        if r.status_code == 404:
            return None
        raise_for_status(r, "read proxy", name)
        return decode(r, PROXY, "read proxy", name)

    async def create_proxy(self, record: ProxyRecord) -> ProxyRecord:
        r = await self._request(
            "POST", "/proxies", "create proxy", record.name, json=record.payload()
        )
        if r.status_code == 409:
            raise ProxyAlreadyExistsError(record.name)
        raise_for_status(r, "create proxy", record.name)
        return decode(r, PROXY, "create proxy", record.name)

    async def update_proxy(self, record: ProxyRecord) -> ProxyRecord:
        verb = self.update_policy.verb()
        path = _path("proxies", record.name)
        r = await self._request(verb, path, "update proxy", record.name, json=record.payload())
        raise_for_status(r, "update proxy", record.name)
        return decode(r, PROXY, "update proxy", record.name)

    async def delete_proxy(self, name: str) -> None:
        r = await self._request("DELETE", _path("proxies", name), "delete proxy", name)
        if r.status_code == 404:
            logger.debug(f"proxy '{name}' already absent")
            return
        raise_for_status(r, "delete proxy", name)

    async def reset(self) -> None:
        r = await self._request("POST", "/reset", "reset", self.session.base_url)
        raise_for_status(r, "reset", self.session.base_url)

    # toxics

    async def list_toxics(self, proxy: str) -> List[ToxicRecord]:
        path = _path("proxies", proxy, "toxics")
        r = await self._request("GET", path, "list toxics of proxy", proxy)
        raise_for_status(r, "list toxics of proxy", proxy)
        return decode(r, TOXIC_LIST, "list toxics of proxy", proxy)

    async def get_toxic(self, proxy: str, name: str) -> Optional[ToxicRecord]:
        resource = f"{proxy}/{name}"
        path = _path("proxies", proxy, "toxics", name)
        r = await self._request("GET", path, "read toxic", resource)
        if r.status_code == 404:
            return None
        raise_for_status(r, "read toxic", resource)
        return decode(r, TOXIC, "read toxic", resource)

    async def create_toxic(self, proxy: str, record: ToxicRecord) -> ToxicRecord:
        resource = f"{proxy}/{record.name}"
        path = _path("proxies", proxy, "toxics")
        r = await self._request("POST", path, "create toxic", resource, json=record.model_dump())
        if r.status_code == 409:
            raise ToxicAlreadyExistsError(proxy, record.name)
        raise_for_status(r, "create toxic", resource)
        return decode(r, TOXIC, "create toxic", resource)

    async def update_toxic(self, proxy: str, record: ToxicRecord) -> ToxicRecord:
        resource = f"{proxy}/{record.name}"
        verb = self.update_policy.verb()
        path = _path("proxies", proxy, "toxics", record.name)
        r = await self._request(verb, path, "update toxic", resource, json=record.model_dump())
        raise_for_status(r, "update toxic", resource)
        return decode(r, TOXIC, "update toxic", resource)

    async def delete_toxic(self, proxy: str, name: str) -> None:
        resource = f"{proxy}/{name}"
        path = _path("proxies", proxy, "toxics", name)
        r = await self._request("DELETE", path, "delete toxic", resource)
        if r.status_code == 404:
            logger.debug(f"toxic '{resource}' already absent")
            return
        raise_for_status(r, "delete toxic", resource)
