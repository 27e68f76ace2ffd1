"""In-process read-through cache for the global wallpaper config."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from services.wallpaper_store import WallpaperConfig

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 300


@dataclass(frozen=True)
class CacheEntry:
    payload: WallpaperConfig
    populated_at: float


class WallpaperConfigCache:
    """Time-bounded cache in front of the config store.

    Concurrent misses each call the loader; duplicate store reads are
    accepted rather than coalesced. A load that began before the most recent
    ``invalidate()`` is returned to its caller but never stored, so a write
    followed by invalidation cannot be undone by a slow reader.
    """

    def __init__(
        self,
        loader: Callable[[], Awaitable[WallpaperConfig]],
        ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._loader = loader
        self._ttl_seconds = float(ttl_seconds)
        self._clock = clock
        self._entry: Optional[CacheEntry] = None
        self._generation = 0

    @property
    def entry(self) -> Optional[CacheEntry]:
        return self._entry

    def _fresh_entry(self) -> Optional[CacheEntry]:
        entry = self._entry
        if entry is None:
            return None
        if self._clock() - entry.populated_at >= self._ttl_seconds:
            return None
        return entry

    async def get(self) -> WallpaperConfig:
        entry = self._fresh_entry()
        if entry is not None:
            return entry.payload

        generation = self._generation
        payload = await self._loader()
        if generation == self._generation:
            self._entry = CacheEntry(payload=payload, populated_at=self._clock())
        else:
            logger.debug("Wallpaper config invalidated during load; not caching")
        return payload

    def invalidate(self) -> None:
        self._generation += 1
        self._entry = None
        logger.debug("Wallpaper config cache cleared")
