from __future__ import annotations

from dataclasses import dataclass
import os


@dataclass(frozen=True)
class Settings:
    toxiproxy_url: str
    timeout_s: float


def get_settings() -> Settings:
    """
    Centralized configuration for the client and its tests.
    Values come from environment variables with safe defaults.
    """
    return Settings(
        toxiproxy_url=os.getenv("TOXIPROXY_URL", "http://127.0.0.1:8474"),
        timeout_s=float(os.getenv("TOXIPROXY_TIMEOUT_S", "30.0")),
    )
