"""
Field-level checks shared by proxies and toxics.

Each ``require_*`` helper raises the given configuration error type with the
offending field's name; ``is_valid_address`` is the boolean form used by the
address check.
"""
from __future__ import annotations

import ipaddress
import re
from typing import Type

from toxiclient.model.errors import ConfigurationError, ToxicConfigurationError

_IPV4_SHAPED = re.compile(r"^\d+(\.\d+)*$")
_HOST_LABEL = re.compile(r"^[A-Za-z0-9_]([A-Za-z0-9_-]{0,61}[A-Za-z0-9_])?$")
_MAX_HOSTNAME = 253


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def _is_valid_host(host: str) -> bool:
    if _IPV4_SHAPED.match(host):
        try:
            ipaddress.IPv4Address(host)
        except ValueError:
            return False
        return True

    if len(host) > _MAX_HOSTNAME:
        return False
    return all(_HOST_LABEL.match(label) for label in host.split("."))


def is_valid_address(value: str) -> bool:
    parts = value.split(":")
    if len(parts) != 2:
        return False

    host, port = parts
    if not host or not (port.isascii() and port.isdigit()):
        return False
    if not (1 <= int(port) <= 65535):
        return False
    return _is_valid_host(host)


def require_non_empty(field: str, value: str | None, error: Type[ConfigurationError]) -> None:
    if value is None or not value.strip():
        raise error(field, f"{_label(field)} must not be empty")


def require_address(field: str, value: str | None, error: Type[ConfigurationError]) -> None:
    require_non_empty(field, value, error)
    if not is_valid_address(value):
        raise error(field, f"'{value}' is not a valid host:port address")


def require_non_negative(field: str, value: float, error: Type[ConfigurationError]) -> None:
    if value < 0:
        raise error(field, f"{_label(field)} must be a non-negative value")


def require_toxicity(value: float) -> None:
    if not (0.0 <= value <= 1.0):
        raise ToxicConfigurationError(
            "toxicity", "Toxicity must be a value between 0.0 and 1.0"
        )


def require_less_than(
    field: str, value: float, limit_field: str, limit: float, error: Type[ConfigurationError]
) -> None:
    if not value < limit:
        raise error(field, f"{_label(field)} must be smaller than {_label(limit_field).lower()}")
