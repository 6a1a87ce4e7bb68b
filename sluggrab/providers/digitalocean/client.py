"""Async HTTP client for the DigitalOcean droplets API.

Returns TypedDicts directly from API responses.
"""

from __future__ import annotations

from typing import Any, cast

from loguru import logger

from sluggrab.infra.http import BearerAuth, HttpClient, HttpError

from .config import DigitalOcean
from .types import DropletCreateParams, DropletResponse


class ProviderError(Exception):
    """Error from the DigitalOcean API.

    ``status`` is the HTTP status code, or 0 for transport failures.
    """

    def __init__(self, message: str, *, status: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ProviderListError(ProviderError):
    """Listing droplets failed."""


class ProviderCreateError(ProviderError):
    """Creating a droplet failed."""


class DigitalOceanClient:
    """Async HTTP client for the DigitalOcean droplets API.

    Example:
        async with DigitalOceanClient(DigitalOcean(token="...")) as client:
            page = await client.list_droplets(page=1)
    """

    def __init__(self, config: DigitalOcean, http: HttpClient | None = None) -> None:
        if not config.token:
            raise ValueError("DigitalOcean API token is required")
        self._config = config
        self._log = logger.bind(provider="digitalocean", component="client")
        self._http = http or HttpClient(
            config.api_url,
            BearerAuth(config.token),
            timeout=config.request_timeout,
            default_headers={"Content-Type": "application/json"},
        )

    @property
    def page_size(self) -> int:
        return self._config.page_size

    async def __aenter__(self) -> DigitalOceanClient:
        return self

    async def __aexit__(self, *_args: object) -> None:
        await self._http.close()

    # =========================================================================
    # Droplets
    # =========================================================================

    async def list_droplets(self, page: int, per_page: int | None = None) -> list[DropletResponse]:
        """Fetch a single page of droplets."""
        per_page = per_page or self._config.page_size
        try:
            result: Any = await self._http.get(
                "/droplets", params={"page": page, "per_page": per_page},
            )
        except HttpError as e:
            self._log.warning(
                "API error GET /droplets page={page}: {status}",
                page=page, status=e.status,
            )
            raise ProviderListError(
                f"Failed to list droplets (page {page}): {e}",
                status=e.status, body=e.body,
            ) from e

        match result:
            case None | {"droplets": None}:
                return []
            case {"droplets": list() as droplets}:
                return cast(list[DropletResponse], droplets)
            case dict() if "droplets" not in result:
                return []
            case _:
                raise ProviderListError(
                    f"Failed to list droplets (page {page}): unexpected response {_excerpt(result)}",
                    body=_excerpt(result),
                )

    async def create_droplet(self, params: DropletCreateParams) -> DropletResponse:
        """Create a new droplet; the response must carry the droplet and its id."""
        self._log.debug("Creating droplet {name} in {region}", name=params["name"], region=params["region"])
        try:
            result: Any = await self._http.post("/droplets", json=dict(params))
        except HttpError as e:
            self._log.warning(
                "API error POST /droplets: {status} {body}",
                status=e.status, body=e.body[:500],
            )
            raise ProviderCreateError(
                f"Failed to create droplet {params['name']}: {e}",
                status=e.status, body=e.body,
            ) from e

        match result:
            case {"droplet": {"id": int() | str()} as droplet}:
                return cast(DropletResponse, droplet)
            case None:
                raise ProviderCreateError(f"Failed to create droplet {params['name']}: empty response")
            case _:
                raise ProviderCreateError(
                    f"Failed to create droplet {params['name']}: no droplet id in {_excerpt(result)}",
                    body=_excerpt(result),
                )


def _excerpt(value: object) -> str:
    return repr(value)[:200]


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    "DigitalOceanClient",
    "ProviderCreateError",
    "ProviderError",
    "ProviderListError",
]
