from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class ProxyEntry:
    name: str
    listen: str
    upstream: str
    enabled: bool = True
    toxics: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    def to_json(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "listen": self.listen,
            "upstream": self.upstream,
            "enabled": self.enabled,
            "toxics": list(self.toxics.values()),
        }


@dataclass
class ProxyStore:
    """In-memory server state. KeyError means missing, ValueError means conflict."""

    proxies: Dict[str, ProxyEntry] = field(default_factory=dict)
    reset_count: int = 0

    def get(self, name: str) -> ProxyEntry:
        if name not in self.proxies:
            raise KeyError(f"proxy not found: {name}")
        return self.proxies[name]

    def create(self, entry: ProxyEntry) -> ProxyEntry:
        if entry.name in self.proxies:
            raise ValueError(f"proxy already exists: {entry.name}")
        self.proxies[entry.name] = entry
        return entry

    def delete(self, name: str) -> None:
        self.get(name)
        del self.proxies[name]

    def get_toxic(self, proxy: str, name: str) -> Dict[str, Any]:
        toxics = self.get(proxy).toxics
        if name not in toxics:
            raise KeyError(f"toxic not found: {name}")
        return toxics[name]

    def add_toxic(self, proxy: str, toxic: Dict[str, Any]) -> Dict[str, Any]:
        toxics = self.get(proxy).toxics
        if toxic["name"] in toxics:
            raise ValueError(f"toxic already exists: {toxic['name']}")
        toxics[toxic["name"]] = toxic
        return toxic

    def delete_toxic(self, proxy: str, name: str) -> None:
        self.get_toxic(proxy, name)
        del self.get(proxy).toxics[name]

    def reset(self) -> None:
        # real toxiproxy re-enables every proxy and drops all toxics
        for entry in self.proxies.values():
            entry.enabled = True
            entry.toxics.clear()
        self.reset_count += 1
