"""First-success-wins walk over the configured daily image providers."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Optional, Sequence

import httpx

from services.image_providers.providers import BaseImageProvider
from services.image_providers.types import NormalizedImage, ProviderError

logger = logging.getLogger(__name__)

DEFAULT_PROVIDER_TIMEOUT_SECONDS = 8.0


async def _attempt(
    provider: BaseImageProvider,
    client: httpx.AsyncClient,
    timeout: float,
) -> Optional[NormalizedImage]:
    try:
        raw = await asyncio.wait_for(provider.fetch(client, timeout), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise ProviderError(f"{provider.name} timed out after {timeout:g}s") from exc

    image = provider.parse(raw)
    if image is None or not image.url.strip():
        return None
    if not image.source:
        image = replace(image, source=provider.name)
    return image


async def fetch_daily_image(
    providers: Sequence[BaseImageProvider],
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_PROVIDER_TIMEOUT_SECONDS,
) -> Optional[NormalizedImage]:
    """Return the first usable image from ``providers`` in priority order.

    Unconfigured providers are skipped. A provider that errors, times out or
    parses to nothing is logged and the walk moves on; ``None`` means every
    provider was exhausted and the caller should use the fallback pool.
    """
    ordered = sorted(providers, key=lambda provider: provider.priority)
    owns_client = client is None
    http_client = client or httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True)
    try:
        for provider in ordered:
            if not provider.is_configured():
                logger.info("Wallpaper provider %s skipped: not configured", provider.name)
                continue
            try:
                image = await _attempt(provider, http_client, timeout)
            except ProviderError as exc:
                logger.warning("Wallpaper provider %s failed: %s", provider.name, exc)
                continue
            except Exception:
                logger.exception("Wallpaper provider %s raised unexpectedly", provider.name)
                continue
            if image is None:
                logger.warning("Wallpaper provider %s returned no usable image", provider.name)
                continue
            logger.info("Wallpaper provider %s supplied %s", provider.name, image.url)
            return image
    finally:
        if owns_client:
            await http_client.aclose()

    logger.warning("All wallpaper providers exhausted; falling back to the local pool")
    return None
