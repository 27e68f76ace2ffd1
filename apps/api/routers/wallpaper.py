"""
Global wallpaper endpoints: public cached read and admin rotation triggers.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from config import WallpaperConfigurationError
from routers.auth_scope import AdminContext, require_admin
from routers.rate_limit import admin_rate_limit
from services.wallpaper import WallpaperService, build_wallpaper_service
from services.wallpaper_store import PersistenceError

logger = logging.getLogger(__name__)

router = APIRouter()


class GlobalWallpaperResponse(BaseModel):
    mode: str
    websiteUrl: str
    dailyUrl: str
    randomUrls: List[str]


class DailyImageResponse(BaseModel):
    url: str
    title: str
    copyright: str


class WallpaperHistoryItem(BaseModel):
    usedDate: str
    url: str
    source: str
    title: str
    copyright: str


class WallpaperHistoryResponse(BaseModel):
    items: List[WallpaperHistoryItem]
    total: int
    page: int
    limit: int


def get_wallpaper_service(request: Request) -> WallpaperService:
    service = getattr(request.app.state, "wallpaper_service", None)
    if service is None:
        service = build_wallpaper_service()
        request.app.state.wallpaper_service = service
    return service


@router.get("/global", response_model=GlobalWallpaperResponse)
async def get_global_wallpaper(service: WallpaperService = Depends(get_wallpaper_service)):
    """Site-wide wallpaper config, served from the in-process cache."""
    try:
        config = await service.get_global_config()
    except PersistenceError as exc:
        logger.error("Global wallpaper read failed: %s", exc)
        raise HTTPException(status_code=500, detail="Wallpaper config unavailable.") from exc
    return config.to_payload()


@router.post("/shuffle")
async def shuffle_wallpapers(
    _admin: AdminContext = Depends(admin_rate_limit("shuffle", limit=30, window_seconds=3600)),
    service: WallpaperService = Depends(get_wallpaper_service),
):
    """Reshuffle the random pool now."""
    try:
        await service.shuffle()
    except PersistenceError as exc:
        logger.error("Manual wallpaper shuffle failed: %s", exc)
        raise HTTPException(status_code=500, detail="Wallpaper shuffle failed.") from exc
    return {}


@router.post("/update-daily", response_model=DailyImageResponse)
async def update_daily_wallpaper(
    _admin: AdminContext = Depends(admin_rate_limit("update-daily", limit=30, window_seconds=3600)),
    service: WallpaperService = Depends(get_wallpaper_service),
):
    """Run the daily image job now and return the image it settled on."""
    try:
        result = await service.refresh_daily_image()
    except (PersistenceError, WallpaperConfigurationError) as exc:
        logger.error("Manual daily wallpaper refresh failed: %s", exc)
        raise HTTPException(status_code=500, detail="Daily wallpaper refresh failed.") from exc
    return result.image.to_payload()


@router.get("/history", response_model=WallpaperHistoryResponse)
async def get_wallpaper_history(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    _admin: AdminContext = Depends(require_admin),
    service: WallpaperService = Depends(get_wallpaper_service),
):
    """Paginated daily image history, newest first."""
    try:
        items, total = await service.list_history(page=page, limit=limit)
    except PersistenceError as exc:
        raise HTTPException(status_code=500, detail="Wallpaper history unavailable.") from exc
    return {"items": items, "total": total, "page": page, "limit": limit}


@router.get("/status")
async def get_rotation_status(
    request: Request,
    _admin: AdminContext = Depends(require_admin),
):
    """Timer states of the rotation scheduler, if it is armed in this process."""
    scheduler = getattr(request.app.state, "wallpaper_scheduler", None)
    if scheduler is None:
        return {"armed": False, "reason": getattr(request.app.state, "wallpaper_scheduler_error", None)}
    return {"armed": True, **scheduler.status()}
