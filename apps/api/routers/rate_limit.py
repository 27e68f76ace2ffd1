"""Per-admin quota on manual wallpaper triggers (Redis with in-process fallback)."""

from __future__ import annotations

import asyncio
import time
from typing import Awaitable, Callable, Dict, Tuple

from fastapi import Depends, HTTPException, Request
import redis.asyncio as redis

from config import settings
from routers.auth_scope import AdminContext, require_admin


_local_counters: Dict[str, Tuple[int, float]] = {}
_local_lock = asyncio.Lock()


async def _consume_local_quota(key: str, limit: int, window_seconds: int) -> bool:
    now = time.time()
    async with _local_lock:
        count, reset_at = _local_counters.get(key, (0, now + window_seconds))
        if now >= reset_at:
            count, reset_at = 0, now + window_seconds
        count += 1
        _local_counters[key] = (count, reset_at)
        return count <= limit


async def _consume_redis_quota(key: str, limit: int, window_seconds: int) -> bool:
    redis_client = redis.from_url(settings.REDIS_URL, decode_responses=True)
    try:
        current = await redis_client.incr(key)
        if current == 1:
            await redis_client.expire(key, window_seconds)
    finally:
        await redis_client.aclose()
    return current <= limit


def admin_rate_limit(action: str, limit: int, window_seconds: int) -> Callable[..., Awaitable[AdminContext]]:
    """Dependency that authorizes an admin and caps how often they may run ``action``."""

    async def _dependency(request: Request, admin: AdminContext = Depends(require_admin)) -> AdminContext:
        if getattr(request.app.state, "disable_rate_limits", False):
            return admin

        key = f"veritas:wallpaper:{action}:{admin.user_id}"
        try:
            allowed = await _consume_redis_quota(key, limit, window_seconds)
        except Exception:
            allowed = await _consume_local_quota(key, limit, window_seconds)

        if not allowed:
            raise HTTPException(
                status_code=429,
                detail=f"Too many {action} requests. Try again later.",
            )
        return admin

    return _dependency
