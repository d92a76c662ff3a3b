from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Tuple

MINIMUM_SUPPORTED_VERSION = "2.0.0"

# Toxiproxy 2.6.0 added PATCH for updates and deprecated POST.
# https://github.com/Shopify/toxiproxy/blob/main/CHANGELOG.md#260---2023-08-22
PATCH_UPDATES_SINCE = "2.6.0"

_VERSION = re.compile(r"^v?(\d+)(?:\.(\d+))?(?:\.(\d+))?(?:[-+].*)?$")


def parse_version(text: str) -> Tuple[int, int, int]:
    m = _VERSION.match(text.strip())
    if m is None:
        raise ValueError(f"not a dotted numeric version: '{text}'")
    major, minor, patch = (int(part or 0) for part in m.groups())
    return major, minor, patch


def is_supported(version: str, minimum: str = MINIMUM_SUPPORTED_VERSION) -> bool:
    return parse_version(version) >= parse_version(minimum)


@dataclass(frozen=True)
class UpdateVerbPolicy:
    """Picks the HTTP verb the attached server expects for updates."""

    server_version: str
    threshold: str = PATCH_UPDATES_SINCE

    def verb(self) -> str:
        if parse_version(self.server_version) >= parse_version(self.threshold):
            return "PATCH"
        return "POST"
