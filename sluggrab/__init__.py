"""sluggrab - keep scarce DigitalOcean droplet sizes allocated.

Example:

    import asyncio
    from sluggrab import DesiredState, DigitalOcean, Settings, run

    settings = Settings(
        desired=DesiredState(
            size="gpu-h100x8-640gb",
            image="gpu-h100x8-base",
            regions=("tor1", "nyc2"),
            desired_count=2,
        ),
        provider=DigitalOcean(token="..."),
    )
    asyncio.run(run(settings))
"""

from sluggrab.app import run
from sluggrab.config import ConfigError, DesiredState, Settings, build_settings, load_config
from sluggrab.events import (
    Configuration,
    DropletCreated,
    DropletsCreatedSummary,
    Event,
    NotificationEvent,
)
from sluggrab.inventory import Inventory, ListingPolicy, count_matching, filter_matching
from sluggrab.logging import LogConfig, setup_logging
from sluggrab.notify import NotificationError, Notifier, WebhookDestination, WebhookFormat
from sluggrab.providers.digitalocean import (
    DigitalOcean,
    DigitalOceanClient,
    ProviderCreateError,
    ProviderError,
    ProviderListError,
)
from sluggrab.reconciler import CreationFailure, Reconciler, RegionOutcome
from sluggrab.scheduler import OverlapPolicy, Scheduler

__all__ = [
    "ConfigError",
    "Configuration",
    "CreationFailure",
    "DesiredState",
    "DigitalOcean",
    "DigitalOceanClient",
    "DropletCreated",
    "DropletsCreatedSummary",
    "Event",
    "Inventory",
    "ListingPolicy",
    "LogConfig",
    "NotificationError",
    "NotificationEvent",
    "Notifier",
    "OverlapPolicy",
    "ProviderCreateError",
    "ProviderError",
    "ProviderListError",
    "Reconciler",
    "RegionOutcome",
    "Scheduler",
    "Settings",
    "WebhookDestination",
    "WebhookFormat",
    "build_settings",
    "count_matching",
    "filter_matching",
    "load_config",
    "run",
    "setup_logging",
]
