from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from main import app
from models.global_wallpaper import GlobalWallpaper
from routers.wallpaper import get_wallpaper_service
from services.image_providers import BaseImageProvider, NormalizedImage
from services.wallpaper import WallpaperService
from services.wallpaper_store import PersistenceError, serialize_random_urls
from token_helpers import bearer_header


ADMIN_AUTH_HEADER = bearer_header("admin-1", role="admin")
USER_AUTH_HEADER = bearer_header("reader-1")
POOL = ["https://r/a.jpg", "https://r/b.jpg", "https://r/c.jpg"]


class _PexelsStub(BaseImageProvider):
    name = "pexels"

    def __init__(self):
        super().__init__(endpoint="https://api.pexels.com/v1/curated", priority=0)

    async def fetch(self, client, timeout):
        return {"url": "https://x/img.jpg", "title": "T", "copyright": "C"}

    def parse(self, raw):
        return NormalizedImage(source=self.name, **raw)


@pytest_asyncio.fixture
async def wallpaper_client(wallpaper_db):
    async with wallpaper_db() as session:
        session.add(
            GlobalWallpaper(
                mode="random",
                website_url="https://w/site.jpg",
                daily_url="https://d/old.jpg",
                random_urls=serialize_random_urls(POOL),
            )
        )
        await session.commit()

    service = WallpaperService(wallpaper_db, providers=[_PexelsStub()], fallback_urls=["https://fallback/0.jpg"])
    app.dependency_overrides[get_wallpaper_service] = lambda: service
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client, service

    app.dependency_overrides.pop(get_wallpaper_service, None)


@pytest.mark.asyncio
async def test_global_config_is_public(wallpaper_client):
    client, _ = wallpaper_client
    response = await client.get("/wallpaper/global")

    assert response.status_code == 200
    assert response.json() == {
        "mode": "random",
        "websiteUrl": "https://w/site.jpg",
        "dailyUrl": "https://d/old.jpg",
        "randomUrls": POOL,
    }


@pytest.mark.asyncio
async def test_global_config_read_failure_is_a_server_error(wallpaper_client):
    client, service = wallpaper_client
    with patch.object(service, "get_global_config", side_effect=PersistenceError("store offline")):
        response = await client.get("/wallpaper/global")
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_admin_endpoints_require_admin_session(wallpaper_client):
    client, _ = wallpaper_client

    missing = await client.post("/wallpaper/shuffle")
    assert missing.status_code == 401

    forbidden = await client.post("/wallpaper/shuffle", headers=USER_AUTH_HEADER)
    assert forbidden.status_code == 403

    bad_token = await client.get("/wallpaper/history", headers={"Authorization": "Bearer not-a-token"})
    assert bad_token.status_code == 401


@pytest.mark.asyncio
async def test_manual_shuffle_returns_empty_body_and_reorders_pool(wallpaper_client):
    client, _ = wallpaper_client
    await client.get("/wallpaper/global")

    response = await client.post("/wallpaper/shuffle", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 200
    assert response.json() == {}

    after = await client.get("/wallpaper/global")
    assert sorted(after.json()["randomUrls"]) == sorted(POOL)


@pytest.mark.asyncio
async def test_manual_shuffle_persistence_failure_returns_500(wallpaper_client):
    client, service = wallpaper_client
    with patch.object(service, "shuffle", side_effect=PersistenceError("store offline")):
        response = await client.post("/wallpaper/shuffle", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_update_daily_returns_image_and_records_history(wallpaper_client):
    client, _ = wallpaper_client
    await client.get("/wallpaper/global")

    response = await client.post("/wallpaper/update-daily", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 200
    assert response.json() == {"url": "https://x/img.jpg", "title": "T", "copyright": "C"}

    config = await client.get("/wallpaper/global")
    assert config.json()["dailyUrl"] == "https://x/img.jpg"

    repeat = await client.post("/wallpaper/update-daily", headers=ADMIN_AUTH_HEADER)
    assert repeat.status_code == 200

    history = await client.get("/wallpaper/history?page=1&limit=10", headers=ADMIN_AUTH_HEADER)
    assert history.status_code == 200
    payload = history.json()
    assert payload["total"] == 1
    assert payload["page"] == 1
    assert payload["limit"] == 10
    assert payload["items"][0]["url"] == "https://x/img.jpg"
    assert payload["items"][0]["source"] == "pexels"


@pytest.mark.asyncio
async def test_update_daily_persistence_failure_returns_500(wallpaper_client):
    client, _ = wallpaper_client
    with patch("services.wallpaper.save_daily_image", side_effect=PersistenceError("store offline")):
        response = await client.post("/wallpaper/update-daily", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 500


@pytest.mark.asyncio
async def test_history_rejects_out_of_range_paging(wallpaper_client):
    client, _ = wallpaper_client
    response = await client.get("/wallpaper/history?page=0&limit=500", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_status_reports_unarmed_scheduler_outside_lifespan(wallpaper_client):
    client, _ = wallpaper_client
    app.state.wallpaper_scheduler = None
    response = await client.get("/wallpaper/status", headers=ADMIN_AUTH_HEADER)
    assert response.status_code == 200
    assert response.json()["armed"] is False


@pytest.mark.asyncio
async def test_manual_triggers_are_capped_per_admin_when_redis_is_down(wallpaper_client):
    client, service = wallpaper_client
    app.state.disable_rate_limits = False
    with patch("routers.rate_limit._consume_redis_quota", side_effect=ConnectionError("redis down")), \
            patch.object(service, "shuffle", return_value=0):
        statuses = [
            (await client.post("/wallpaper/shuffle", headers=ADMIN_AUTH_HEADER)).status_code
            for _ in range(31)
        ]
        other_admin = await client.post("/wallpaper/shuffle", headers=bearer_header("admin-2", role="admin"))

    assert statuses[:30] == [200] * 30
    assert statuses[30] == 429
    assert other_admin.status_code == 200
