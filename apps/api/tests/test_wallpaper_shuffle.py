import random
from collections import Counter
from unittest.mock import patch

import pytest

from models.global_wallpaper import GlobalWallpaper
from services.wallpaper import WallpaperService
from services.wallpaper_shuffle import fisher_yates_shuffle
from services.wallpaper_store import PersistenceError, load_global_config, serialize_random_urls


POOL = ["https://r/a.jpg", "https://r/b.jpg", "https://r/c.jpg", "https://r/d.jpg"]


class _RecordingRandom:
    def __init__(self):
        self.ranges = []

    def randint(self, low, high):
        self.ranges.append((low, high))
        return low


async def _seed(session_maker, urls):
    async with session_maker() as session:
        session.add(
            GlobalWallpaper(
                mode="random",
                website_url="https://w/site.jpg",
                daily_url="https://d/today.jpg",
                random_urls=serialize_random_urls(urls),
            )
        )
        await session.commit()


def test_fisher_yates_returns_a_new_permutation():
    original = list(POOL)
    result = fisher_yates_shuffle(original, random.Random(7))

    assert sorted(result) == sorted(POOL)
    assert original == POOL


def test_fisher_yates_draws_from_zero_to_i_inclusive_walking_down():
    rng = _RecordingRandom()
    fisher_yates_shuffle(POOL, rng)
    assert rng.ranges == [(0, 3), (0, 2), (0, 1)]


def test_fisher_yates_is_a_no_op_for_short_lists():
    assert fisher_yates_shuffle([], random.Random(1)) == []
    assert fisher_yates_shuffle(["only"], random.Random(1)) == ["only"]


def test_fisher_yates_places_each_element_uniformly():
    rng = random.Random(20240310)
    runs = 24000
    counts = Counter()
    for _ in range(runs):
        for position, item in enumerate(fisher_yates_shuffle(POOL, rng)):
            counts[(item, position)] += 1

    expected = runs / len(POOL)
    for item in POOL:
        for position in range(len(POOL)):
            assert abs(counts[(item, position)] - expected) < expected * 0.06


@pytest.mark.asyncio
async def test_shuffle_persists_new_order_and_next_read_sees_it(wallpaper_db):
    await _seed(wallpaper_db, POOL)
    service = WallpaperService(wallpaper_db, rng=random.Random(3))

    before = await service.get_global_config()
    assert list(before.random_urls) == POOL

    shuffled = await service.shuffle()
    after = await service.get_global_config()

    async with wallpaper_db() as session:
        stored = await load_global_config(session)
        row = await session.get(GlobalWallpaper, 1)

    assert shuffled == len(POOL)
    assert sorted(after.random_urls) == sorted(POOL)
    assert after.random_urls == stored.random_urls
    assert row.shuffled_at is not None


@pytest.mark.asyncio
async def test_shuffle_of_empty_pool_has_no_side_effects(wallpaper_db):
    await _seed(wallpaper_db, [])
    service = WallpaperService(wallpaper_db)
    await service.get_global_config()

    with patch.object(service.cache, "invalidate", wraps=service.cache.invalidate) as invalidate:
        assert await service.shuffle() == 0

    invalidate.assert_not_called()
    assert service.cache.entry is not None
    async with wallpaper_db() as session:
        row = await session.get(GlobalWallpaper, 1)
    assert row.random_urls == "[]"
    assert row.shuffled_at is None


@pytest.mark.asyncio
async def test_shuffle_persistence_failure_surfaces_and_keeps_cache(wallpaper_db):
    await _seed(wallpaper_db, POOL)
    service = WallpaperService(wallpaper_db)
    await service.get_global_config()

    with patch("services.wallpaper.shuffle_global_wallpapers", side_effect=PersistenceError("disk full")):
        with pytest.raises(PersistenceError):
            await service.shuffle()

    assert service.cache.entry is not None
