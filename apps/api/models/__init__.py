"""Models package."""

from .global_wallpaper import GlobalWallpaper
from .wallpaper_history import WallpaperHistory
