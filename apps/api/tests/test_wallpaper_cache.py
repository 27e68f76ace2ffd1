import asyncio

import pytest

from services.wallpaper_cache import WallpaperConfigCache
from services.wallpaper_store import PersistenceError, WallpaperConfig


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _config(daily_url: str) -> WallpaperConfig:
    return WallpaperConfig(mode="daily", website_url="https://w/site.jpg", daily_url=daily_url)


class _CountingLoader:
    def __init__(self):
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        return _config(f"https://d/{self.calls}.jpg")


@pytest.mark.asyncio
async def test_fresh_entry_is_served_without_reloading():
    clock = _Clock()
    loader = _CountingLoader()
    cache = WallpaperConfigCache(loader, ttl_seconds=300, clock=clock)

    first = await cache.get()
    clock.now += 299
    second = await cache.get()

    assert loader.calls == 1
    assert first == second
    assert cache.entry.populated_at == 1000.0


@pytest.mark.asyncio
async def test_entry_older_than_ttl_is_treated_as_absent():
    clock = _Clock()
    loader = _CountingLoader()
    cache = WallpaperConfigCache(loader, ttl_seconds=300, clock=clock)

    await cache.get()
    clock.now += 300
    refreshed = await cache.get()

    assert loader.calls == 2
    assert refreshed.daily_url == "https://d/2.jpg"


@pytest.mark.asyncio
async def test_invalidate_forces_the_next_read_to_load():
    clock = _Clock()
    loader = _CountingLoader()
    cache = WallpaperConfigCache(loader, ttl_seconds=300, clock=clock)

    await cache.get()
    cache.invalidate()
    assert cache.entry is None
    after = await cache.get()

    assert loader.calls == 2
    assert after.daily_url == "https://d/2.jpg"


@pytest.mark.asyncio
async def test_loader_failure_propagates_and_caches_nothing():
    async def failing_loader():
        raise PersistenceError("store offline")

    cache = WallpaperConfigCache(failing_loader, ttl_seconds=300, clock=_Clock())

    with pytest.raises(PersistenceError):
        await cache.get()
    assert cache.entry is None


@pytest.mark.asyncio
async def test_concurrent_misses_each_hit_the_store():
    # duplicate loads on a cold cache are accepted, not coalesced
    release = asyncio.Event()
    calls = []

    async def slow_loader():
        calls.append(len(calls))
        await release.wait()
        return _config("https://d/same.jpg")

    cache = WallpaperConfigCache(slow_loader, ttl_seconds=300, clock=_Clock())
    readers = [asyncio.create_task(cache.get()) for _ in range(3)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*readers)

    assert len(calls) == 3
    assert all(result.daily_url == "https://d/same.jpg" for result in results)
    assert cache.entry is not None


@pytest.mark.asyncio
async def test_load_started_before_invalidate_does_not_repopulate():
    release = asyncio.Event()

    async def slow_loader():
        await release.wait()
        return _config("https://d/stale.jpg")

    cache = WallpaperConfigCache(slow_loader, ttl_seconds=300, clock=_Clock())
    reader = asyncio.create_task(cache.get())
    await asyncio.sleep(0)
    cache.invalidate()
    release.set()

    stale = await reader
    assert stale.daily_url == "https://d/stale.jpg"
    assert cache.entry is None
