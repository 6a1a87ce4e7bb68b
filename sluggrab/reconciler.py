"""Per-region droplet reconciliation.

For each configured region, in declared order and strictly one at a time:
list the inventory, count droplets of the configured size in that region,
and create the deficit. Creation names are derived from the count observed
before the pass (``{prefix}-{region}-{existing + i + 1}``), so a failed
creation never shifts the names of the ones after it.

Failures are contained: a failed creation is recorded and the next index is
attempted; a strict-mode listing failure skips only that region.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from loguru import logger

from sluggrab.config import DesiredState
from sluggrab.events import Configuration, DropletCreated, DropletsCreatedSummary, Event
from sluggrab.inventory import Inventory, filter_matching
from sluggrab.providers.digitalocean import (
    DropletCreateParams,
    DropletResponse,
    ProviderError,
    ProviderListError,
)

log = logger.bind(component="reconciler")


class DropletCreator(Protocol):
    async def create_droplet(self, params: DropletCreateParams) -> DropletResponse: ...


class EventSink(Protocol):
    async def notify(self, event: Event) -> bool: ...


@dataclass(frozen=True, slots=True)
class CreationFailure:
    index: int
    name: str
    error: str
    status: int = 0


@dataclass(frozen=True, slots=True)
class RegionOutcome:
    region: str
    existing: int
    deficit: int
    created: tuple[DropletResponse, ...] = ()
    failures: tuple[CreationFailure, ...] = ()
    listing_error: str | None = None

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def skipped(self) -> bool:
        return self.listing_error is not None


def droplet_name(prefix: str, region: str, index: int) -> str:
    return f"{prefix}-{region}-{index}"


def planned_names(prefix: str, region: str, existing: int, desired: int) -> list[str]:
    """Names for the droplets a region is missing, in creation order."""
    deficit = max(0, desired - existing)
    return [droplet_name(prefix, region, existing + i + 1) for i in range(deficit)]


class Reconciler:
    def __init__(self, inventory: Inventory, creator: DropletCreator, notifier: EventSink) -> None:
        self._inventory = inventory
        self._creator = creator
        self._notifier = notifier

    async def reconcile(self, state: DesiredState) -> list[RegionOutcome]:
        outcomes: list[RegionOutcome] = []
        for region in state.regions:
            outcomes.append(await self._reconcile_region(state, region))

        total_created = sum(o.created_count for o in outcomes)
        total_existing = sum(o.existing for o in outcomes)
        failed = sum(len(o.failures) for o in outcomes)
        log.info(
            "Pass complete: created={created} failed={failed} existing={existing} regions={n}",
            created=total_created, failed=failed, existing=total_existing, n=len(outcomes),
        )

        if total_created > 1:
            await self._notifier.notify(DropletsCreatedSummary(
                created_count=total_created,
                existing_count=total_existing,
                droplet_ids=tuple(
                    d["id"] for o in outcomes for d in o.created if d.get("id") is not None
                ),
                regions=state.regions,
                configuration=Configuration(
                    slug=state.size, region=",".join(state.regions), image=state.image,
                ),
            ))

        return outcomes

    async def _reconcile_region(self, state: DesiredState, region: str) -> RegionOutcome:
        rlog = log.bind(region=region)
        rlog.info("Checking for {size} droplets in {region}...", size=state.size, region=region)

        try:
            droplets = await self._inventory.list_instances()
        except ProviderListError as e:
            rlog.error("Listing failed, skipping region this pass: {err}", err=e)
            return RegionOutcome(region=region, existing=0, deficit=0, listing_error=str(e))

        existing = len(filter_matching(droplets, state.size, region))
        deficit = max(0, state.desired_count - existing)
        rlog.info(
            "Found {existing} existing {size} droplets. Desired count: {desired}",
            existing=existing, size=state.size, desired=state.desired_count,
        )

        if deficit == 0:
            rlog.info("No new droplets needed")
            return RegionOutcome(region=region, existing=existing, deficit=0)

        rlog.info("Creating {n} new {size} droplets...", n=deficit, size=state.size)
        configuration = Configuration(slug=state.size, region=region, image=state.image)
        created: list[DropletResponse] = []
        failures: list[CreationFailure] = []

        for index, name in enumerate(planned_names(state.prefix, region, existing, state.desired_count)):
            params = DropletCreateParams(
                name=name,
                region=region,
                size=state.size,
                image=state.image,
                tags=[state.size],
                ssh_keys=list(state.ssh_keys),
            )
            try:
                droplet = await self._creator.create_droplet(params)
            except ProviderError as e:
                rlog.error("Error creating droplet {name}: {err}", name=name, err=e)
                failures.append(CreationFailure(index=index, name=name, error=str(e), status=e.status))
                continue

            created.append(droplet)
            rlog.bind(droplet=droplet.get("id")).info(
                "Created droplet: {name} (ID: {id})", name=name, id=droplet.get("id"),
            )
            await self._notifier.notify(DropletCreated(
                droplet=droplet, region=region, configuration=configuration,
            ))

        rlog.info("Successfully created {n} new droplets", n=len(created))
        return RegionOutcome(
            region=region,
            existing=existing,
            deficit=deficit,
            created=tuple(created),
            failures=tuple(failures),
        )


__all__ = [
    "CreationFailure",
    "DropletCreator",
    "EventSink",
    "Reconciler",
    "RegionOutcome",
    "droplet_name",
    "planned_names",
]
