"""Routers package."""

from . import (
    health,
    wallpaper,
)
