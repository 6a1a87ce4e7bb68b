"""Application wiring: build the components from ``Settings`` and run them."""

from __future__ import annotations

from loguru import logger

from sluggrab.config import Settings
from sluggrab.inventory import Inventory
from sluggrab.notify import Notifier, WebhookDestination
from sluggrab.providers.digitalocean import DigitalOceanClient
from sluggrab.reconciler import Reconciler
from sluggrab.scheduler import Scheduler

log = logger.bind(component="app")


def log_startup(settings: Settings, destination: WebhookDestination | None) -> None:
    desired = settings.desired
    log.info("DigitalOcean Slug Grabber started")
    log.info(
        "Configuration: slug={slug}, regions={regions}, image={image}, desired_count={count}",
        slug=desired.size, regions=",".join(desired.regions),
        image=desired.image, count=desired.desired_count,
    )
    log.info(
        "Polling every {interval}s, listing policy={policy}, overlap={overlap}",
        interval=settings.interval, policy=settings.listing_policy.value,
        overlap=settings.overlap.value,
    )
    if desired.name_prefix:
        log.info("Droplet name prefix: {prefix}", prefix=desired.name_prefix)
    if destination:
        log.info(
            "Webhook notifications enabled: {url} (format={fmt})",
            url=destination.url, fmt=destination.format.value,
        )
    else:
        log.info(
            "Webhook notifications disabled. Set WEBHOOK_URL environment variable "
            "or use --webhook-url to enable."
        )


async def run(settings: Settings, *, max_passes: int | None = None) -> Scheduler:
    """Run reconciliation passes until ``max_passes`` (or ``--once``), or forever."""
    desired = settings.desired
    destination = WebhookDestination.from_url(desired.webhook_url, desired.webhook_format)
    log_startup(settings, destination)

    if max_passes is None and settings.once:
        max_passes = 1

    scheduler = Scheduler(settings.interval, overlap=settings.overlap, max_passes=max_passes)
    async with (
        DigitalOceanClient(settings.provider) as client,
        Notifier(destination, timeout=settings.notify_timeout) as notifier,
    ):
        reconciler = Reconciler(Inventory(client, settings.listing_policy), client, notifier)
        await scheduler.run(lambda: reconciler.reconcile(desired))
    return scheduler


__all__ = ["log_startup", "run"]
