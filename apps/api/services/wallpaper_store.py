"""Persistence helpers for the global wallpaper row and the daily history log."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import settings
from models.global_wallpaper import GlobalWallpaper
from models.wallpaper_history import WallpaperHistory
from services.image_providers.types import NormalizedImage


WALLPAPER_MODES = ("website", "daily", "random")


class PersistenceError(RuntimeError):
    """Raised when the wallpaper tables cannot be read or written."""


@dataclass(frozen=True)
class WallpaperConfig:
    mode: str
    website_url: str
    daily_url: str
    random_urls: Tuple[str, ...] = field(default_factory=tuple)

    def to_payload(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "websiteUrl": self.website_url,
            "dailyUrl": self.daily_url,
            "randomUrls": list(self.random_urls),
        }


def default_wallpaper_config() -> WallpaperConfig:
    """Configuration served before the row exists."""
    default_url = settings.WALLPAPER_DEFAULT_URL
    return WallpaperConfig(mode="website", website_url=default_url, daily_url=default_url, random_urls=())


def parse_random_urls(raw: Any) -> List[str]:
    """Decode the stored candidate list.

    Accepts a list, a JSON array string, or a legacy comma separated string.
    """
    if raw is None:
        return []
    if isinstance(raw, (list, tuple)):
        return [str(item).strip() for item in raw if str(item or "").strip()]
    text = str(raw).strip()
    if not text:
        return []
    try:
        decoded = json.loads(text)
    except ValueError:
        decoded = None
    if isinstance(decoded, list):
        return [str(item).strip() for item in decoded if str(item or "").strip()]
    return [part.strip() for part in text.split(",") if part.strip()]


def serialize_random_urls(urls: List[str]) -> str:
    return json.dumps(list(urls), ensure_ascii=False)


def _normalize_mode(mode: Optional[str]) -> str:
    cleaned = str(mode or "").strip().lower()
    return cleaned if cleaned in WALLPAPER_MODES else "website"


def _to_config(row: GlobalWallpaper) -> WallpaperConfig:
    return WallpaperConfig(
        mode=_normalize_mode(row.mode),
        website_url=(row.website_url or "").strip() or settings.WALLPAPER_DEFAULT_URL,
        daily_url=(row.daily_url or "").strip(),
        random_urls=tuple(parse_random_urls(row.random_urls)),
    )


async def _get_row(db: AsyncSession) -> Optional[GlobalWallpaper]:
    result = await db.execute(select(GlobalWallpaper).order_by(GlobalWallpaper.id).limit(1))
    return result.scalar_one_or_none()


async def ensure_global_config(db: AsyncSession) -> bool:
    """Seed the singleton row on first deploy. Returns True when a row was created."""
    try:
        if await _get_row(db) is not None:
            return False
        default_url = settings.WALLPAPER_DEFAULT_URL
        db.add(
            GlobalWallpaper(
                mode=_normalize_mode(settings.WALLPAPER_DEFAULT_MODE),
                website_url=default_url,
                daily_url=default_url,
                random_urls=serialize_random_urls(parse_random_urls(settings.WALLPAPER_SEED_RANDOM_URLS)),
            )
        )
        await db.commit()
        return True
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not seed global wallpaper config: {exc}") from exc


async def load_global_config(db: AsyncSession) -> WallpaperConfig:
    try:
        row = await _get_row(db)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not read global wallpaper config: {exc}") from exc
    if row is None:
        return default_wallpaper_config()
    return _to_config(row)


async def save_random_urls(db: AsyncSession, urls: List[str]) -> None:
    """Persist a new candidate order and stamp the shuffle time, then commit."""
    try:
        row = await _get_row(db)
        if row is None:
            raise PersistenceError("Global wallpaper config row is missing.")
        row.random_urls = serialize_random_urls(urls)
        row.shuffled_at = datetime.now(timezone.utc)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not save shuffled wallpapers: {exc}") from exc


async def _upsert_history(db: AsyncSession, used_date: date, image: NormalizedImage) -> None:
    values = {
        "url": image.url,
        "source": image.source,
        "title": image.title,
        "copyright": image.copyright,
    }
    dialect = getattr(getattr(db.bind, "dialect", None), "name", "")
    if dialect in ("postgresql", "sqlite"):
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        else:
            from sqlalchemy.dialects.sqlite import insert
        stmt = insert(WallpaperHistory).values(used_date=used_date, **values)
        stmt = stmt.on_conflict_do_update(
            index_elements=[WallpaperHistory.used_date],
            set_={**values, "updated_at": func.now()},
        )
        await db.execute(stmt)
        return

    result = await db.execute(select(WallpaperHistory).where(WallpaperHistory.used_date == used_date))
    entry = result.scalar_one_or_none()
    if entry is None:
        db.add(WallpaperHistory(used_date=used_date, **values))
        return
    for key, value in values.items():
        setattr(entry, key, value)


async def save_daily_image(db: AsyncSession, used_date: date, image: NormalizedImage) -> None:
    """Replace ``daily_url`` and upsert the history row for ``used_date`` in one commit."""
    try:
        row = await _get_row(db)
        if row is None:
            raise PersistenceError("Global wallpaper config row is missing.")
        row.daily_url = image.url
        await _upsert_history(db, used_date, image)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise PersistenceError(f"Could not save daily wallpaper: {exc}") from exc


async def get_history_entry(db: AsyncSession, used_date: date) -> Optional[WallpaperHistory]:
    try:
        result = await db.execute(select(WallpaperHistory).where(WallpaperHistory.used_date == used_date))
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not read wallpaper history: {exc}") from exc
    return result.scalar_one_or_none()


async def list_history(db: AsyncSession, page: int = 1, limit: int = 20) -> Tuple[List[WallpaperHistory], int]:
    """Return one page of history, newest date first, plus the total row count."""
    page = max(int(page), 1)
    limit = max(int(limit), 1)
    try:
        total = await db.execute(select(func.count()).select_from(WallpaperHistory))
        result = await db.execute(
            select(WallpaperHistory)
            .order_by(WallpaperHistory.used_date.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not read wallpaper history: {exc}") from exc
    return list(result.scalars().all()), int(total.scalar() or 0)
