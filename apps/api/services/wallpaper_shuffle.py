"""Fisher-Yates reshuffle of the random-mode wallpaper pool."""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Sequence, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from services.wallpaper_store import load_global_config, save_random_urls

logger = logging.getLogger(__name__)

T = TypeVar("T")


def fisher_yates_shuffle(items: Sequence[T], rng: Optional[random.Random] = None) -> List[T]:
    """Return a uniformly random permutation of ``items`` as a new list."""
    generator = rng or random.SystemRandom()
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = generator.randint(0, i)
        result[i], result[j] = result[j], result[i]
    return result


async def shuffle_global_wallpapers(db: AsyncSession, rng: Optional[random.Random] = None) -> int:
    """Reorder and persist ``random_urls``. Returns the number of URLs shuffled.

    An empty pool is left untouched and reported as 0. Cache invalidation is
    the caller's job and must happen after this returns.
    """
    config = await load_global_config(db)
    urls = list(config.random_urls)
    if not urls:
        logger.info("Wallpaper shuffle skipped: random pool is empty")
        return 0

    shuffled = fisher_yates_shuffle(urls, rng)
    await save_random_urls(db, shuffled)
    logger.info("Wallpaper shuffle completed (%d urls)", len(shuffled))
    return len(shuffled)
