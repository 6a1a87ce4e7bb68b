"""Algebraic Data Type (ADT) for notification events.

Every event knows two renderings:

- ``to_payload()``: the raw JSON body posted to plain webhooks.
- ``render_text()``: a one-line human summary posted to chat webhooks as
  ``{"text": ...}``. Events without a dedicated renderer fall back to a
  labelled, pretty-printed dump of their payload.

Use pattern matching to handle events in consumers:

    match event:
        case DropletCreated(droplet=d, region=region):
            print(f"{d['name']} up in {region}")
        case DropletsCreatedSummary(created_count=n):
            print(f"{n} droplets created")
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, ClassVar

from sluggrab.providers.digitalocean import DropletResponse

FALLBACK_LABEL = "Slug Grabber notification:"


def _utcnow() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True, slots=True)
class Configuration:
    """Snapshot of what was asked for, attached to every event."""

    slug: str | None
    region: str | None
    image: str | None

    def to_dict(self) -> dict[str, Any]:
        return {"slug": self.slug, "region": self.region, "image": self.image}


@dataclass(frozen=True, slots=True)
class Event:
    """Base for all notification events."""

    tag: ClassVar[str] = "event"

    timestamp: str = field(default_factory=_utcnow, kw_only=True)

    def to_payload(self) -> dict[str, Any]:
        return {"event": self.tag, "timestamp": self.timestamp}

    def render_text(self) -> str:
        body = json.dumps(self.to_payload(), indent=2, default=str)
        return f"{FALLBACK_LABEL}\n```\n{body}\n```"


@dataclass(frozen=True, slots=True)
class DropletCreated(Event):
    """A single droplet was created."""

    tag: ClassVar[str] = "droplet_created"

    droplet: DropletResponse
    region: str
    configuration: Configuration

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": self.tag,
            "droplet": dict(self.droplet),
            "timestamp": self.timestamp,
            "configuration": self.configuration.to_dict(),
        }

    def render_text(self) -> str:
        region = self.configuration.region or "unknown region"
        size = self.configuration.slug or "unknown size"
        return (
            f"Droplet created: {self.droplet.get('name')} (ID: {self.droplet.get('id')}) "
            f"in {region} using {size}."
        )


@dataclass(frozen=True, slots=True)
class DropletsCreatedSummary(Event):
    """More than one droplet was created in a pass."""

    tag: ClassVar[str] = "droplets_created_summary"

    created_count: int
    existing_count: int
    droplet_ids: tuple[int, ...]
    regions: tuple[str, ...]
    configuration: Configuration

    def to_payload(self) -> dict[str, Any]:
        return {
            "event": self.tag,
            "createdCount": self.created_count,
            "existingCount": self.existing_count,
            "dropletIds": list(self.droplet_ids),
            "regions": list(self.regions),
            "timestamp": self.timestamp,
            "configuration": self.configuration.to_dict(),
        }

    def render_text(self) -> str:
        ids = ", ".join(str(i) for i in self.droplet_ids) or "n/a"
        return (
            f"Created {self.created_count} droplets (existing: {self.existing_count}) "
            f"for slug {self.configuration.slug or 'unknown'} "
            f"in {self.configuration.region or 'unknown region'}. IDs: {ids}."
        )


type NotificationEvent = DropletCreated | DropletsCreatedSummary


__all__ = [
    "Configuration",
    "DropletCreated",
    "DropletsCreatedSummary",
    "Event",
    "FALLBACK_LABEL",
    "NotificationEvent",
]
