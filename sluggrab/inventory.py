"""Droplet inventory discovery.

Pages through ``GET /droplets`` until a short page (end of data) or a failed
page. What happens on a failed page depends on the listing policy:

- ``FAIL_OPEN`` returns whatever was accumulated so far. A listing outage
  therefore looks like "few or no droplets" and the reconciler creates more.
- ``STRICT`` raises ``ProviderListError`` so the caller can skip the region
  for this pass.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from typing import Protocol

from loguru import logger

from sluggrab.providers.digitalocean import DropletResponse, ProviderListError, region_slug

log = logger.bind(component="inventory")


class ListingPolicy(Enum):
    FAIL_OPEN = "fail-open"
    STRICT = "strict"


class DropletSource(Protocol):
    @property
    def page_size(self) -> int: ...

    async def list_droplets(self, page: int, per_page: int | None = None) -> list[DropletResponse]: ...


class Inventory:
    def __init__(self, source: DropletSource, policy: ListingPolicy = ListingPolicy.FAIL_OPEN) -> None:
        self._source = source
        self._policy = policy

    async def list_instances(self) -> list[DropletResponse]:
        """All droplets on the account, across every page."""
        per_page = self._source.page_size
        droplets: list[DropletResponse] = []
        page = 1

        while True:
            try:
                batch = await self._source.list_droplets(page, per_page)
            except ProviderListError as e:
                if self._policy is ListingPolicy.STRICT:
                    raise
                log.error(
                    "Error fetching droplets (page {page}): {err}; continuing with {n} listed",
                    page=page, err=e, n=len(droplets),
                )
                break

            droplets.extend(batch)
            if len(batch) < per_page:
                break
            page += 1

        log.debug("Listed {n} droplets over {pages} page(s)", n=len(droplets), pages=page)
        return droplets


def matches(droplet: DropletResponse, size: str, region: str | None = None) -> bool:
    if droplet.get("size_slug") != size:
        return False
    return region is None or region_slug(droplet) == region


def filter_matching(
    instances: Iterable[DropletResponse], size: str, region: str | None = None,
) -> list[DropletResponse]:
    """Droplets of exactly ``size`` in exactly ``region`` (any region if None)."""
    return [d for d in instances if matches(d, size, region)]


def count_matching(instances: Iterable[DropletResponse], size: str, region: str | None = None) -> int:
    return len(filter_matching(instances, size, region))


__all__ = [
    "DropletSource",
    "Inventory",
    "ListingPolicy",
    "count_matching",
    "filter_matching",
    "matches",
]
