from unittest.mock import patch

import pytest
from httpx import ASGITransport, AsyncClient

from main import app


@pytest.mark.asyncio
async def test_liveness_and_readiness_with_valid_config():
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        live = await client.get("/health/live")
        ready = await client.get("/health/ready")

    assert live.json() == {"alive": True}
    assert ready.status_code == 200
    assert ready.json() == {"ready": True}


@pytest.mark.asyncio
async def test_readiness_fails_on_empty_fallback_pool():
    with patch("config.settings.WALLPAPER_FALLBACK_URLS", []):
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
            response = await client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["ready"] is False
    assert "WALLPAPER_FALLBACK_URLS" in response.json()["reason"]
