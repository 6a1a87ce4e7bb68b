"""DigitalOcean droplets provider."""

from .client import (
    DigitalOceanClient,
    ProviderCreateError,
    ProviderError,
    ProviderListError,
)
from .config import DO_API_URL, DigitalOcean, get_token
from .types import DropletCreateParams, DropletResponse, region_slug

__all__ = [
    "DO_API_URL",
    "DigitalOcean",
    "DigitalOceanClient",
    "DropletCreateParams",
    "DropletResponse",
    "ProviderCreateError",
    "ProviderError",
    "ProviderListError",
    "get_token",
    "region_slug",
]
