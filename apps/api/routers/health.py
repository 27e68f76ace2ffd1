"""
Health check endpoints.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
import redis.asyncio as redis

from config import WallpaperConfigurationError, settings, validate_wallpaper_settings
from services.image_providers import build_provider_chain

router = APIRouter()


def _provider_summary():
    if not settings.WALLPAPER_PROVIDERS_ENABLED:
        return {"enabled": False, "providers": {}}
    return {
        "enabled": True,
        "providers": {
            provider.name: "configured" if provider.is_configured() else "skipped"
            for provider in build_provider_chain()
        },
    }


@router.get("/health")
async def health_check(request: Request):
    """
    Health check endpoint.
    Returns overall system health status.
    """
    scheduler = getattr(request.app.state, "wallpaper_scheduler", None)
    health_status = {
        "status": "healthy",
        "api": "up",
        "database": "unknown",
        "redis": "unknown",
        "wallpaper_scheduler": "armed" if scheduler is not None else "not armed",
        "wallpaper_providers": _provider_summary(),
    }

    # Check database connection
    try:
        from database import engine
        from sqlalchemy import text
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["database"] = "up"
    except Exception as e:
        health_status["database"] = f"down: {str(e)}"
        health_status["status"] = "degraded"

    # Redis only backs the admin rate limits, so it never degrades the status
    try:
        r = redis.from_url(settings.REDIS_URL)
        await r.ping()
        await r.aclose()
        health_status["redis"] = "up"
    except Exception as e:
        health_status["redis"] = f"down: {str(e)}"

    return health_status


@router.get("/health/ready")
async def readiness_check():
    """Kubernetes-style readiness probe."""
    try:
        validate_wallpaper_settings()
    except WallpaperConfigurationError as exc:
        return JSONResponse(
            status_code=503,
            content={"ready": False, "reason": str(exc)},
        )
    return {"ready": True}


@router.get("/health/live")
async def liveness_check():
    """Kubernetes-style liveness probe."""
    return {"alive": True}
