"""
Typed toxics and the registry translating them to and from wire records.

A server-side toxic is a ``type`` tag plus a flat attribute map. Here every
tag has its own dataclass owning the typed fields; ``construct`` turns a
``ToxicRecord`` into the matching class and ``to_record`` flattens it back.
Attribute keys the client does not model are carried in ``extras`` so an
update never drops them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Dict, Tuple, Type, TypeVar

from toxiclient.model.errors import ToxicCastError, ToxicConfigurationError, UnknownToxicTypeError
from toxiclient.model.validation import (
    require_less_than,
    require_non_empty,
    require_non_negative,
    require_toxicity,
)
from toxiclient.model.wire import ToxicRecord


class ToxicDirection(str, Enum):
    UPSTREAM = "upstream"
    DOWNSTREAM = "downstream"


@dataclass
class Toxic:
    type: ClassVar[str] = ""
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ()

    name: str = ""
    stream: ToxicDirection = ToxicDirection.DOWNSTREAM
    toxicity: float = 1.0
    extras: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        try:
            self.stream = ToxicDirection(str(getattr(self.stream, "value", self.stream)).lower())
        except ValueError:
            raise ToxicConfigurationError(
                "stream", f"Stream must be 'upstream' or 'downstream', got '{self.stream}'"
            ) from None
        if not self.name:
            self.name = f"{self.type}_{self.stream.value}"

    @property
    def attributes(self) -> Dict[str, Any]:
        attrs = dict(self.extras)
        attrs.update({key: getattr(self, key) for key in self.ATTRIBUTES})
        return attrs

    def validate(self) -> None:
        require_non_empty("name", self.name, ToxicConfigurationError)
        require_non_empty("type", self.type, ToxicConfigurationError)
        require_toxicity(self.toxicity)
        for key in self.ATTRIBUTES:
            require_non_negative(key, getattr(self, key), ToxicConfigurationError)

    def __str__(self) -> str:
        attrs = ", ".join(f"{k}={v}" for k, v in self.attributes.items())
        return (
            f"{self.name}: type={self.type} stream={self.stream.value} "
            f"toxicity={self.toxicity:.2f} attributes=[{attrs}]"
        )


@dataclass
class LatencyToxic(Toxic):
    """Delays data by ``latency`` ms, +/- ``jitter`` ms."""

    type: ClassVar[str] = "latency"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("latency", "jitter")

    latency: int = 0
    jitter: int = 0


@dataclass
class BandwidthToxic(Toxic):
    """Caps throughput at ``rate`` KB/s."""

    type: ClassVar[str] = "bandwidth"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("rate",)

    rate: int = 0


@dataclass
class TimeoutToxic(Toxic):
    """Stops data and closes after ``timeout`` ms; 0 keeps the connection open and drops data."""

    type: ClassVar[str] = "timeout"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("timeout",)

    timeout: int = 0


@dataclass
class SlowCloseToxic(Toxic):
    type: ClassVar[str] = "slow_close"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("delay",)

    delay: int = 0


@dataclass
class SlicerToxic(Toxic):
    """
    Slices data into packets of ``average_size`` +/- ``size_variation`` bytes,
    waiting ``delay`` microseconds between them.
    """

    type: ClassVar[str] = "slicer"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("average_size", "size_variation", "delay")

    average_size: int = 0
    size_variation: int = 0
    delay: int = 0

    def validate(self) -> None:
        super().validate()
        require_less_than(
            "size_variation", self.size_variation,
            "average_size", self.average_size,
            ToxicConfigurationError,
        )


@dataclass
class LimitDataToxic(Toxic):
    type: ClassVar[str] = "limit_data"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("bytes",)

    bytes: int = 0


@dataclass
class ResetPeerToxic(Toxic):
    type: ClassVar[str] = "reset_peer"
    ATTRIBUTES: ClassVar[Tuple[str, ...]] = ("timeout",)

    timeout: int = 0


TOXIC_TYPES: Dict[str, Type[Toxic]] = {
    kind.type: kind
    for kind in (
        LatencyToxic,
        BandwidthToxic,
        TimeoutToxic,
        SlowCloseToxic,
        SlicerToxic,
        LimitDataToxic,
        ResetPeerToxic,
    )
}

T = TypeVar("T", bound=Toxic)


def _coerce_int(value: Any) -> int:
    # attribute values come from untyped JSON; anything unusable reads as 0
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def construct(record: ToxicRecord) -> Toxic:
    kind = TOXIC_TYPES.get(record.type.lower())
    if kind is None:
        raise UnknownToxicTypeError(record.type)

    values = {key: _coerce_int(record.attributes.get(key)) for key in kind.ATTRIBUTES}
    extras = {k: v for k, v in record.attributes.items() if k not in kind.ATTRIBUTES}
    return kind(
        name=record.name,
        stream=record.stream,
        toxicity=record.toxicity,
        extras=extras,
        **values,
    )


def construct_typed(record: ToxicRecord, kind: Type[T]) -> T:
    toxic = construct(record)
    if not isinstance(toxic, kind):
        raise ToxicCastError(record.name, record.type, kind)
    return toxic


def to_record(toxic: Toxic) -> ToxicRecord:
    return ToxicRecord(
        name=toxic.name,
        type=toxic.type,
        stream=toxic.stream.value,
        toxicity=toxic.toxicity,
        attributes=toxic.attributes,
    )
