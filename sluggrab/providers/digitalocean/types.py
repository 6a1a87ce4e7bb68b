"""DigitalOcean API response types.

TypedDicts for API responses - no conversion needed.
"""

from __future__ import annotations

from typing import Any, NotRequired, TypedDict


class RegionResponse(TypedDict):
    """Region object embedded in a droplet."""

    slug: str
    name: NotRequired[str]
    available: NotRequired[bool]


class DropletResponse(TypedDict):
    """Droplet as returned by the API.

    Only the fields the reconciler reads are declared; everything else the
    provider returns is carried through untouched.
    """

    id: int
    name: str
    size_slug: str
    region: RegionResponse | str
    status: NotRequired[str]
    tags: NotRequired[list[str]]
    networks: NotRequired[dict[str, Any]]
    created_at: NotRequired[str]


class DropletCreateParams(TypedDict):
    """Body of ``POST /droplets``."""

    name: str
    region: str
    size: str
    image: str
    tags: list[str]
    ssh_keys: list[str]


def region_slug(droplet: DropletResponse) -> str | None:
    """Region code of a droplet, whether the API nested it or not."""
    match droplet.get("region"):
        case {"slug": str() as slug}:
            return slug
        case str() as slug:
            return slug
        case _:
            return None
