"""Webhook notifications.

The destination decides the wire shape: plain webhooks receive the event's
raw payload, chat webhooks receive ``{"text": <one-line summary>}``. The
shape is fixed once when the destination is built, either explicitly or by
recognising a known chat host.

Notifications are fire-and-forget: ``Notifier.notify`` never raises, it
returns whether the post succeeded.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlsplit

from loguru import logger

from sluggrab.events import Event
from sluggrab.infra.http import HttpClient, HttpError

log = logger.bind(component="notifier")

CHAT_HOSTS = frozenset({"hooks.slack.com"})


class NotificationError(Exception):
    def __init__(self, message: str, *, status: int = 0, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class WebhookFormat(Enum):
    JSON = "json"
    TEXT = "text"

    @classmethod
    def detect(cls, url: str) -> WebhookFormat:
        host = (urlsplit(url).hostname or "").lower()
        return cls.TEXT if host in CHAT_HOSTS else cls.JSON

    @classmethod
    def resolve(cls, url: str, value: str | WebhookFormat = "auto") -> WebhookFormat:
        """Explicit format, or ``auto`` to detect from the URL."""
        if isinstance(value, WebhookFormat):
            return value
        if value == "auto":
            return cls.detect(url)
        try:
            return cls(value)
        except ValueError:
            raise ValueError(
                f"Unknown webhook format {value!r}. Valid: auto, "
                + ", ".join(f.value for f in cls)
            ) from None


@dataclass(frozen=True, slots=True)
class WebhookDestination:
    url: str
    format: WebhookFormat = WebhookFormat.JSON

    @classmethod
    def from_url(cls, url: str | None, format: str | WebhookFormat = "auto") -> WebhookDestination | None:
        if not url:
            return None
        return cls(url=url, format=WebhookFormat.resolve(url, format))

    def render(self, event: Event) -> dict[str, Any]:
        match self.format:
            case WebhookFormat.TEXT:
                return {"text": event.render_text()}
            case WebhookFormat.JSON:
                return event.to_payload()


class Notifier:
    """Posts events to an optional webhook destination."""

    def __init__(
        self,
        destination: WebhookDestination | None,
        http: HttpClient | None = None,
        *,
        timeout: float = 10.0,
    ) -> None:
        self._destination = destination
        self._http = http or HttpClient(
            timeout=timeout,
            default_headers={"Content-Type": "application/json"},
        )

    @property
    def enabled(self) -> bool:
        return bool(self._destination and self._destination.url)

    async def notify(self, event: Event) -> bool:
        """Send ``event``; ``False`` when disabled or when the post failed."""
        if not self._destination or not self._destination.url:
            return False

        payload = self._destination.render(event)
        log.info("Sending webhook notification ({tag})", tag=event.tag)
        try:
            await self._post(self._destination.url, payload)
        except NotificationError as e:
            if e.status:
                log.error(
                    "Error sending webhook notification: status={status} body={body}",
                    status=e.status, body=e.body[:500],
                )
            else:
                log.error("Error sending webhook notification: {err}", err=e)
            return False

        log.info("Webhook notification sent successfully")
        return True

    async def _post(self, url: str, payload: dict[str, Any]) -> None:
        try:
            await self._http.post(url, json=payload, expect="text")
        except HttpError as e:
            raise NotificationError(str(e), status=e.status, body=e.body) from e

    async def close(self) -> None:
        await self._http.close()

    async def __aenter__(self) -> Notifier:
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


__all__ = [
    "CHAT_HOSTS",
    "NotificationError",
    "Notifier",
    "WebhookDestination",
    "WebhookFormat",
]
