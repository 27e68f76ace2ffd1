"""
Global wallpaper service: cached reads plus the two write paths
(pool shuffle and daily image refresh) shared by the timers and admin triggers.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from config import WallpaperConfigurationError, settings
from database import async_session_maker
from models.wallpaper_history import WallpaperHistory
from services.fallback_pool import select_fallback
from services.image_providers import (
    BaseImageProvider,
    NormalizedImage,
    build_provider_chain,
    fetch_daily_image,
)
from services.wallpaper_cache import WallpaperConfigCache
from services.wallpaper_shuffle import shuffle_global_wallpapers
from services.wallpaper_store import (
    WallpaperConfig,
    ensure_global_config,
    get_history_entry,
    list_history,
    load_global_config,
    save_daily_image,
)

logger = logging.getLogger(__name__)


def resolve_wallpaper_timezone(name: Optional[str] = None) -> ZoneInfo:
    """Configured rotation zone, or UTC when the name does not resolve.

    A bad zone is a scheduler configuration error; reads still need a zone
    for ``used_date`` so they fall back to UTC instead of failing.
    """
    key = name if name is not None else settings.WALLPAPER_TIMEZONE
    try:
        return ZoneInfo(str(key or "").strip())
    except (ZoneInfoNotFoundError, ValueError):
        logger.warning("Unknown wallpaper time zone %r; using UTC", key)
        return ZoneInfo("UTC")


@dataclass(frozen=True)
class DailyRefreshResult:
    image: NormalizedImage
    used_date: date
    changed: bool


def serialize_history_entry(entry: WallpaperHistory) -> Dict[str, Any]:
    return {
        "usedDate": entry.used_date.isoformat(),
        "url": entry.url,
        "source": entry.source,
        "title": entry.title or "",
        "copyright": entry.copyright or "",
    }


class WallpaperService:
    def __init__(
        self,
        session_maker: Optional[async_sessionmaker[AsyncSession]] = None,
        *,
        providers: Optional[Sequence[BaseImageProvider]] = None,
        fallback_urls: Optional[Sequence[str]] = None,
        cache_ttl_seconds: Optional[float] = None,
        provider_timeout: Optional[float] = None,
        tz: Optional[ZoneInfo] = None,
        rng: Optional[random.Random] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session_maker = session_maker or async_session_maker
        self.providers: List[BaseImageProvider] = list(providers or [])
        urls = settings.WALLPAPER_FALLBACK_URLS if fallback_urls is None else fallback_urls
        self.fallback_urls: List[str] = [str(url).strip() for url in urls if str(url or "").strip()]
        self.provider_timeout = float(
            provider_timeout if provider_timeout is not None else settings.WALLPAPER_PROVIDER_TIMEOUT_SECONDS
        )
        self.tz = tz or resolve_wallpaper_timezone()
        self._rng = rng
        self._http_client = http_client
        ttl = cache_ttl_seconds if cache_ttl_seconds is not None else settings.WALLPAPER_CACHE_TTL_SECONDS
        self.cache = WallpaperConfigCache(self._load_config, ttl_seconds=ttl, clock=clock)
        # shuffle and daily refresh each own the config row for their whole write
        self._write_lock = asyncio.Lock()

    async def _load_config(self) -> WallpaperConfig:
        async with self._session_maker() as db:
            return await load_global_config(db)

    def today(self) -> date:
        return datetime.now(self.tz).date()

    async def ensure_seeded(self) -> bool:
        async with self._session_maker() as db:
            created = await ensure_global_config(db)
        if created:
            self.cache.invalidate()
        return created

    async def get_global_config(self) -> WallpaperConfig:
        return await self.cache.get()

    async def shuffle(self) -> int:
        """Reshuffle the random pool; returns how many URLs were reordered."""
        async with self._write_lock:
            async with self._session_maker() as db:
                count = await shuffle_global_wallpapers(db, self._rng)
            if count:
                self.cache.invalidate()
        return count

    async def resolve_daily_image(self, day: date) -> NormalizedImage:
        image = None
        if self.providers:
            image = await fetch_daily_image(self.providers, client=self._http_client, timeout=self.provider_timeout)
        if image is None:
            if not self.fallback_urls:
                raise WallpaperConfigurationError("No fallback wallpapers configured.")
            image = select_fallback(day, self.fallback_urls)
        return image

    async def refresh_daily_image(self, day: Optional[date] = None) -> DailyRefreshResult:
        """Pick today's image and persist it unless it is already the current one."""
        used_date = day or self.today()
        image = await self.resolve_daily_image(used_date)

        async with self._write_lock:
            async with self._session_maker() as db:
                current = await load_global_config(db)
                if current.daily_url == image.url:
                    logger.info("Daily wallpaper unchanged for %s (%s); skipping write", used_date, image.source)
                    return DailyRefreshResult(image=image, used_date=used_date, changed=False)
                await save_daily_image(db, used_date, image)
            self.cache.invalidate()

        logger.info("Daily wallpaper for %s set from %s: %s", used_date, image.source, image.url)
        return DailyRefreshResult(image=image, used_date=used_date, changed=True)

    async def has_history_for(self, day: date) -> bool:
        async with self._session_maker() as db:
            return await get_history_entry(db, day) is not None

    async def list_history(self, page: int = 1, limit: int = 20) -> Tuple[List[Dict[str, Any]], int]:
        async with self._session_maker() as db:
            entries, total = await list_history(db, page=page, limit=limit)
        return [serialize_history_entry(entry) for entry in entries], total


def build_wallpaper_service() -> WallpaperService:
    """Service wired from application settings."""
    providers = build_provider_chain() if settings.WALLPAPER_PROVIDERS_ENABLED else []
    return WallpaperService(providers=providers)
