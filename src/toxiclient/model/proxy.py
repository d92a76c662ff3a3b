from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, List, Optional, Type, TypeVar, Union, overload

from toxiclient.model.errors import (
    ProxyConfigurationError,
    ProxyDeletedError,
    ProxyStateError,
    ToxiproxyError,
)
from toxiclient.model.toxics import (
    BandwidthToxic,
    LatencyToxic,
    LimitDataToxic,
    ResetPeerToxic,
    SlicerToxic,
    SlowCloseToxic,
    TimeoutToxic,
    Toxic,
    ToxicDirection,
    construct,
    construct_typed,
    to_record,
)
from toxiclient.model.validation import require_address, require_non_empty
from toxiclient.model.wire import ProxyRecord

if TYPE_CHECKING:
    from toxiclient.api.adapter import ServerSession, ToxiproxyAdapter

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=Toxic)
Stream = Union[ToxicDirection, str]


class ProxyState(str, Enum):
    UNSAVED = "UNSAVED"
    ENABLED = "ENABLED"
    DISABLED = "DISABLED"
    DELETED = "DELETED"


class Proxy:
    """
    Local copy of a server-side proxy.

    Mutations (``enable``, ``set_upstream``, ...) change the local copy first
    and then push the whole resource to the server; the server's answer then
    replaces the local state. If the push fails the local copy keeps the new
    value, so re-fetch (``refresh``) before relying on it.

    An unsaved proxy only changes locally until ``create`` is awaited.
    """

    def __init__(self, adapter: ToxiproxyAdapter, record: ProxyRecord, *, saved: bool = False):
        self._adapter = adapter
        self._saved = saved
        self._deleted = False
        self._apply(record)

    def _apply(self, record: ProxyRecord) -> None:
        self._name = record.name
        self._listen = record.listen
        self._upstream = record.upstream
        self._enabled = record.enabled
        self.toxics: List[Toxic] = [construct(t) for t in record.toxics]

    @property
    def session(self) -> ServerSession:
        return self._adapter.session

    @property
    def name(self) -> str:
        return self._name

    @name.setter
    def name(self, value: str) -> None:
        if self._saved or self._deleted:
            raise ProxyConfigurationError(
                "name", "Name cannot be changed once the proxy exists on the server"
            )
        self._name = value

    @property
    def listen(self) -> str:
        return self._listen

    @property
    def upstream(self) -> str:
        return self._upstream

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def state(self) -> ProxyState:
        if self._deleted:
            return ProxyState.DELETED
        if not self._saved:
            return ProxyState.UNSAVED
        return ProxyState.ENABLED if self._enabled else ProxyState.DISABLED

    def __repr__(self) -> str:
        return (
            f"Proxy(name={self._name!r}, listen={self._listen!r}, upstream={self._upstream!r}, "
            f"enabled={self._enabled}, toxics={len(self.toxics)})"
        )

    def validate(self) -> None:
        require_non_empty("name", self._name, ProxyConfigurationError)
        require_address("listen", self._listen, ProxyConfigurationError)
        require_address("upstream", self._upstream, ProxyConfigurationError)

    def to_record(self) -> ProxyRecord:
        return ProxyRecord(
            name=self._name,
            listen=self._listen,
            upstream=self._upstream,
            enabled=self._enabled,
            toxics=[to_record(t) for t in self.toxics],
        )

    def _check_alive(self) -> None:
        if self._deleted:
            raise ProxyDeletedError(self._name)

    def _check_saved(self) -> None:
        self._check_alive()
        if not self._saved:
            raise ProxyStateError(self._name, "has not been created on the server yet")

    # proxy lifecycle

    async def create(self) -> Proxy:
        self._check_alive()
        self.validate()
        record = await self._adapter.create_proxy(self.to_record())
        self._apply(record)
        self._saved = True
        logger.info(f"created proxy {self._name} ({self._listen} -> {self._upstream})")
        return self

    async def refresh(self) -> bool:
        """Reloads from the server. Returns False (and marks the proxy deleted) if it is gone."""
        self._check_saved()
        record = await self._adapter.get_proxy(self._name)
        if record is None:
            self._deleted = True
            return False
        self._apply(record)
        return True

    async def update(self) -> None:
        self._check_alive()
        self.validate()
        if not self._saved:
            return
        self._apply(await self._adapter.update_proxy(self.to_record()))

    async def enable(self) -> None:
        self._check_alive()
        self._enabled = True
        await self.update()

    async def disable(self) -> None:
        self._check_alive()
        self._enabled = False
        await self.update()

    async def set_upstream(self, upstream: str) -> None:
        self._check_alive()
        require_address("upstream", upstream, ProxyConfigurationError)
        self._upstream = upstream
        await self.update()

    async def set_listen(self, listen: str) -> None:
        self._check_alive()
        require_address("listen", listen, ProxyConfigurationError)
        self._listen = listen
        await self.update()

    async def delete(self) -> None:
        if self._deleted:
            return
        if self._saved:
            await self._adapter.delete_proxy(self._name)
            logger.info(f"deleted proxy {self._name}")
        self._deleted = True

    # toxics

    async def get_toxics(self) -> List[Toxic]:
        self._check_saved()
        records = await self._adapter.list_toxics(self._name)
        self.toxics = [construct(r) for r in records]
        return list(self.toxics)

    @overload
    async def get_toxic(self, name: str) -> Optional[Toxic]: ...

    @overload
    async def get_toxic(self, name: str, kind: Type[T]) -> Optional[T]: ...

    async def get_toxic(self, name: str, kind: Optional[Type[T]] = None) -> Optional[Toxic]:
        self._check_saved()
        record = await self._adapter.get_toxic(self._name, name)
        if record is None:
            return None
        if kind is None:
            return construct(record)
        return construct_typed(record, kind)

    async def add_toxic(self, toxic: T) -> T:
        self._check_saved()
        toxic.validate()
        record = await self._adapter.create_toxic(self._name, to_record(toxic))
        created = construct_typed(record, type(toxic))
        self.toxics.append(created)
        logger.info(f"added toxic {created} to proxy {self._name}")
        return created

    async def update_toxic(self, toxic: T) -> T:
        self._check_saved()
        toxic.validate()
        record = await self._adapter.update_toxic(self._name, to_record(toxic))
        updated = construct_typed(record, type(toxic))
        self.toxics = [updated if t.name == updated.name else t for t in self.toxics]
        return updated

    async def remove_toxic(self, name: str) -> None:
        self._check_saved()
        await self._adapter.delete_toxic(self._name, name)
        logger.info(f"removed toxic {name} from proxy {self._name}")
        await self.get_toxics()

    async def remove_all_toxics(self) -> None:
        """
        Removes every toxic with one DELETE each, concurrently, and waits for all.

        Not atomic: if one removal fails the first error is raised after the
        others finished, and the toxics already removed stay removed. That
        error wins over a failure of the refresh that follows.
        """
        toxics = await self.get_toxics()
        results = await asyncio.gather(
            *(self._adapter.delete_toxic(self._name, t.name) for t in toxics),
            return_exceptions=True,
        )
        failures = [r for r in results if isinstance(r, BaseException)]
        try:
            await self.get_toxics()
        except ToxiproxyError:
            if not failures:
                raise
            logger.warning(f"could not reload toxics of proxy {self._name} after a failed removal")
            raise failures[0]
        if failures:
            raise failures[0]

    async def add_latency_toxic(
        self, latency: int = 0, jitter: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> LatencyToxic:
        return await self.add_toxic(
            LatencyToxic(name=name, stream=stream, toxicity=toxicity, latency=latency, jitter=jitter)
        )

    async def add_bandwidth_toxic(
        self, rate: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> BandwidthToxic:
        return await self.add_toxic(
            BandwidthToxic(name=name, stream=stream, toxicity=toxicity, rate=rate)
        )

    async def add_timeout_toxic(
        self, timeout: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> TimeoutToxic:
        return await self.add_toxic(
            TimeoutToxic(name=name, stream=stream, toxicity=toxicity, timeout=timeout)
        )

    async def add_slow_close_toxic(
        self, delay: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> SlowCloseToxic:
        return await self.add_toxic(
            SlowCloseToxic(name=name, stream=stream, toxicity=toxicity, delay=delay)
        )

    async def add_slicer_toxic(
        self, average_size: int = 0, size_variation: int = 0, delay: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> SlicerToxic:
        return await self.add_toxic(
            SlicerToxic(
                name=name, stream=stream, toxicity=toxicity,
                average_size=average_size, size_variation=size_variation, delay=delay,
            )
        )

    async def add_limit_data_toxic(
        self, bytes: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> LimitDataToxic:
        return await self.add_toxic(
            LimitDataToxic(name=name, stream=stream, toxicity=toxicity, bytes=bytes)
        )

    async def add_reset_peer_toxic(
        self, timeout: int = 0, *,
        name: str = "", stream: Stream = ToxicDirection.DOWNSTREAM, toxicity: float = 1.0,
    ) -> ResetPeerToxic:
        return await self.add_toxic(
            ResetPeerToxic(name=name, stream=stream, toxicity=toxicity, timeout=timeout)
        )
