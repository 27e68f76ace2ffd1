"""Deterministic date-seeded pick from the static fallback wallpapers."""

from __future__ import annotations

from datetime import date
from typing import Sequence

from services.image_providers.types import FALLBACK_SOURCE, NormalizedImage


def select_fallback(day: date, pool: Sequence[str]) -> NormalizedImage:
    """Return the pool entry for ``day``; the same date always maps to the same URL.

    ``pool`` must be non-empty; that is checked once at startup by
    ``config.validate_wallpaper_settings``.
    """
    index = day.timetuple().tm_yday % len(pool)
    return NormalizedImage(
        url=pool[index],
        title=f"Fallback wallpaper #{index + 1}",
        copyright="",
        source=FALLBACK_SOURCE,
    )
