"""
Veritas Blog - Wallpaper API
Application entry point: schema bootstrap, wallpaper rotation timers and routing.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from config import (
    WallpaperConfigurationError,
    settings,
    validate_security_settings,
    validate_wallpaper_settings,
)
from database import engine, Base
import models  # noqa: F401
from routers import health, wallpaper
from services.wallpaper import build_wallpaper_service
from services.wallpaper_rotation import build_rotation_scheduler
from services.wallpaper_store import PersistenceError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    # Startup
    print("🚀 Starting Veritas wallpaper API...")
    validate_security_settings()
    if settings.AUTO_CREATE_DB_SCHEMA:
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            print("🗄️ Database schema verified.")
        except Exception as e:
            print(f"⚠️ Database bootstrap skipped: {e}")

    wallpaper_config_error = None
    try:
        validate_wallpaper_settings()
    except WallpaperConfigurationError as exc:
        wallpaper_config_error = str(exc)

    # A bad rotation config only disarms the timers; the read path stays up
    service = build_wallpaper_service()
    app.state.wallpaper_service = service
    try:
        if await service.ensure_seeded():
            print("🖼️ Seeded default global wallpaper config.")
    except PersistenceError as exc:
        print(f"⚠️ Wallpaper config seeding skipped: {exc}")

    scheduler = None
    app.state.wallpaper_scheduler = None
    app.state.wallpaper_scheduler_error = wallpaper_config_error
    if wallpaper_config_error is not None:
        print(f"❌ Wallpaper rotation not armed: {wallpaper_config_error}")
    elif settings.WALLPAPER_SCHEDULER_ENABLED:
        scheduler = build_rotation_scheduler(service)
        scheduler.start()
        app.state.wallpaper_scheduler = scheduler
        print(
            "📅 Wallpaper rotation armed "
            f"(shuffle {settings.WALLPAPER_SHUFFLE_TIME}, daily {settings.WALLPAPER_DAILY_TIME} "
            f"{settings.WALLPAPER_TIMEZONE})."
        )
    else:
        app.state.wallpaper_scheduler_error = "WALLPAPER_SCHEDULER_ENABLED is false"
    yield
    # Shutdown
    if scheduler is not None:
        await scheduler.stop()
    print("👋 Shutting down API...")


app = FastAPI(
    title="Veritas Wallpaper API",
    description="Global wallpaper config with scheduled shuffle and daily image rotation",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(wallpaper.router, prefix="/wallpaper", tags=["Wallpaper"])


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Veritas Wallpaper API",
        "version": "0.1.0",
        "status": "running"
    }
