"""Public daily image provider utilities."""

from services.image_providers.chain import fetch_daily_image
from services.image_providers.providers import (
    BaseImageProvider,
    BingImageProvider,
    PexelsImageProvider,
    UnsplashImageProvider,
    build_provider_chain,
)
from services.image_providers.types import FALLBACK_SOURCE, NormalizedImage, ProviderError

__all__ = [
    "FALLBACK_SOURCE",
    "BaseImageProvider",
    "BingImageProvider",
    "NormalizedImage",
    "PexelsImageProvider",
    "ProviderError",
    "UnsplashImageProvider",
    "build_provider_chain",
    "fetch_daily_image",
]
