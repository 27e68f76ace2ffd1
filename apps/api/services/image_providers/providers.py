"""Daily image provider implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import urljoin, urlsplit

import httpx

from config import settings
from services.image_providers.types import NormalizedImage, ProviderError


PLACEHOLDER_PREFIXES = ("your", "change_me", "<", "xxx")


def _is_placeholder(value: Optional[str]) -> bool:
    cleaned = str(value or "").strip().lower()
    if not cleaned:
        return True
    return cleaned.startswith(PLACEHOLDER_PREFIXES)


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


class BaseImageProvider(ABC):
    """One external source of a daily wallpaper.

    ``fetch`` performs the HTTP call and returns the decoded JSON body;
    ``parse`` turns that body into a :class:`NormalizedImage` or ``None``
    when the body does not describe a usable image.
    """

    name: str
    endpoint: str
    priority: int

    def __init__(self, *, endpoint: str, priority: int = 0) -> None:
        self.endpoint = endpoint
        self.priority = priority

    def is_configured(self) -> bool:
        return True

    def request_params(self) -> Dict[str, Any]:
        return {}

    def request_headers(self) -> Dict[str, str]:
        return {}

    async def fetch(self, client: httpx.AsyncClient, timeout: float) -> Any:
        try:
            response = await client.get(
                self.endpoint,
                params=self.request_params(),
                headers=self.request_headers(),
                timeout=timeout,
            )
        except httpx.TimeoutException as exc:
            raise ProviderError(f"{self.name} timed out after {timeout:g}s") from exc
        except httpx.HTTPError as exc:
            raise ProviderError(f"{self.name} request failed: {exc}") from exc

        if not response.is_success:
            raise ProviderError(f"{self.name} returned HTTP {response.status_code}")
        try:
            return response.json()
        except ValueError as exc:
            raise ProviderError(f"{self.name} returned a non-JSON body") from exc

    @abstractmethod
    def parse(self, raw: Any) -> Optional[NormalizedImage]:
        raise NotImplementedError


class BingImageProvider(BaseImageProvider):
    """Bing homepage image of the day; needs no credentials."""

    name = "bing"

    def __init__(self, *, endpoint: str, market: str = "zh-CN", priority: int = 0) -> None:
        super().__init__(endpoint=endpoint, priority=priority)
        self.market = market

    def request_params(self) -> Dict[str, Any]:
        return {"format": "js", "idx": 0, "n": 1, "mkt": self.market}

    def _host(self) -> str:
        parts = urlsplit(self.endpoint)
        return f"{parts.scheme}://{parts.netloc}"

    def parse(self, raw: Any) -> Optional[NormalizedImage]:
        if not isinstance(raw, dict):
            return None
        images = raw.get("images")
        if not isinstance(images, list) or not images or not isinstance(images[0], dict):
            return None
        first = images[0]
        path = _text(first.get("url"))
        if not path:
            return None
        return NormalizedImage(
            url=urljoin(self._host(), path),
            title=_text(first.get("title")),
            copyright=_text(first.get("copyright")),
            source=self.name,
        )


class PexelsImageProvider(BaseImageProvider):
    """Pexels curated photos; skipped until PEXELS_API_KEY is set."""

    name = "pexels"

    def __init__(self, *, endpoint: str, api_key: str, priority: int = 0) -> None:
        super().__init__(endpoint=endpoint, priority=priority)
        self.api_key = api_key

    def is_configured(self) -> bool:
        return not _is_placeholder(self.api_key)

    def request_params(self) -> Dict[str, Any]:
        return {"per_page": 1}

    def request_headers(self) -> Dict[str, str]:
        return {"Authorization": self.api_key}

    def parse(self, raw: Any) -> Optional[NormalizedImage]:
        if not isinstance(raw, dict):
            return None
        photos = raw.get("photos")
        if not isinstance(photos, list) or not photos or not isinstance(photos[0], dict):
            return None
        photo = photos[0]
        src = photo.get("src") if isinstance(photo.get("src"), dict) else {}
        url = _text(src.get("original") or src.get("large2x"))
        if not url:
            return None
        photographer = _text(photo.get("photographer"))
        return NormalizedImage(
            url=url,
            title=_text(photo.get("alt")),
            copyright=f"Photo by {photographer} on Pexels" if photographer else "Pexels",
            source=self.name,
        )


class UnsplashImageProvider(BaseImageProvider):
    """Unsplash random landscape photo; skipped until UNSPLASH_ACCESS_KEY is set."""

    name = "unsplash"

    def __init__(self, *, endpoint: str, access_key: str, query: str = "", priority: int = 0) -> None:
        super().__init__(endpoint=endpoint, priority=priority)
        self.access_key = access_key
        self.query = query

    def is_configured(self) -> bool:
        return not _is_placeholder(self.access_key)

    def request_params(self) -> Dict[str, Any]:
        params: Dict[str, Any] = {"orientation": "landscape"}
        if self.query:
            params["query"] = self.query
        return params

    def request_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Client-ID {self.access_key}", "Accept-Version": "v1"}

    def parse(self, raw: Any) -> Optional[NormalizedImage]:
        if not isinstance(raw, dict):
            return None
        urls = raw.get("urls")
        if not isinstance(urls, dict):
            return None
        url = _text(urls.get("full") or urls.get("regular"))
        if not url:
            return None
        user = raw.get("user") if isinstance(raw.get("user"), dict) else {}
        author = _text(user.get("name"))
        return NormalizedImage(
            url=url,
            title=_text(raw.get("description") or raw.get("alt_description")),
            copyright=f"Photo by {author} on Unsplash" if author else "Unsplash",
            source=self.name,
        )


def _bing(priority: int) -> BaseImageProvider:
    return BingImageProvider(
        endpoint=settings.BING_WALLPAPER_ENDPOINT,
        market=settings.BING_MARKET,
        priority=priority,
    )


def _pexels(priority: int) -> BaseImageProvider:
    return PexelsImageProvider(
        endpoint="https://api.pexels.com/v1/curated",
        api_key=settings.PEXELS_API_KEY,
        priority=priority,
    )


def _unsplash(priority: int) -> BaseImageProvider:
    return UnsplashImageProvider(
        endpoint="https://api.unsplash.com/photos/random",
        access_key=settings.UNSPLASH_ACCESS_KEY,
        query=settings.UNSPLASH_QUERY,
        priority=priority,
    )


PROVIDER_FACTORIES: Dict[str, Callable[[int], BaseImageProvider]] = {
    "bing": _bing,
    "pexels": _pexels,
    "unsplash": _unsplash,
}


def build_provider_chain(order: Optional[Sequence[str]] = None) -> List[BaseImageProvider]:
    """Instantiate providers in configured priority order, ignoring unknown names."""
    names = order if order is not None else settings.WALLPAPER_PROVIDER_ORDER
    chain: List[BaseImageProvider] = []
    seen = set()
    for name in names:
        key = str(name or "").strip().lower()
        factory = PROVIDER_FACTORIES.get(key)
        if factory is None or key in seen:
            continue
        seen.add(key)
        chain.append(factory(len(chain)))
    return chain
