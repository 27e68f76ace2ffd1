"""Daily image provider contracts."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict


FALLBACK_SOURCE = "fallback"


class ProviderError(RuntimeError):
    """Raised when a provider request fails, times out or returns an unusable body."""


@dataclass(frozen=True)
class NormalizedImage:
    url: str
    title: str = ""
    copyright: str = ""
    source: str = ""

    def to_payload(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload.pop("source")
        return payload
