from __future__ import annotations

from typing import Any, Dict, List, Literal

from pydantic import BaseModel, Field, TypeAdapter, field_validator


class ToxicRecord(BaseModel):
    name: str = ""
    type: str
    stream: Literal["upstream", "downstream"] = "downstream"
    toxicity: float = 1.0
    attributes: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("stream", mode="before")
    @classmethod
    def _fold_stream(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("attributes", mode="before")
    @classmethod
    def _null_attributes(cls, value: Any) -> Any:
        return {} if value is None else value


class ProxyRecord(BaseModel):
    name: str
    listen: str
    upstream: str
    enabled: bool = True
    toxics: List[ToxicRecord] = Field(default_factory=list)

    @field_validator("toxics", mode="before")
    @classmethod
    def _null_toxics(cls, value: Any) -> Any:
        return [] if value is None else value

    def payload(self) -> dict:
        """Body for create/update calls; toxics are managed through their own endpoints."""
        return self.model_dump(exclude={"toxics"})


class VersionInfo(BaseModel):
    version: str


PROXY_MAP = TypeAdapter(Dict[str, ProxyRecord])
TOXIC_LIST = TypeAdapter(List[ToxicRecord])
PROXY = TypeAdapter(ProxyRecord)
TOXIC = TypeAdapter(ToxicRecord)
VERSION = TypeAdapter(VersionInfo)
