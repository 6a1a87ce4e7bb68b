from __future__ import annotations

import sys
from dataclasses import dataclass, field
from typing import Any

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer
from loguru import logger

from sluggrab.events import Event
from sluggrab.providers.digitalocean import (
    DigitalOcean,
    DropletCreateParams,
    DropletResponse,
    ProviderCreateError,
    ProviderListError,
)

TOKEN = "test-token"


@pytest.fixture(autouse=True)
def _reset_logging():
    """Undo sinks installed by ``setup_logging`` so they don't outlive pytest's capture."""
    yield
    logger.remove()
    logger.add(lambda message: sys.stderr.write(message), level="DEBUG")


def make_droplet(droplet_id: int, name: str, size: str, region: str) -> DropletResponse:
    return {
        "id": droplet_id,
        "name": name,
        "size_slug": size,
        "region": {"slug": region, "name": region.upper()},
        "status": "active",
        "tags": [size],
    }


# ─── In-memory fakes ─────────────────────────────────────────────────


@dataclass
class FakeSource:
    """Paged droplet listing; ``failing_pages`` raise ``ProviderListError``."""

    droplets: list[DropletResponse] = field(default_factory=list)
    page_size: int = 100
    failing_pages: set[int] = field(default_factory=set)
    fail_all: bool = False
    pages_requested: list[int] = field(default_factory=list)

    def add(self, size: str, region: str, count: int = 1) -> None:
        for _ in range(count):
            n = len(self.droplets) + 1
            self.droplets.append(make_droplet(n, f"{size}-{region}-{n}", size, region))

    async def list_droplets(self, page: int, per_page: int | None = None) -> list[DropletResponse]:
        self.pages_requested.append(page)
        if self.fail_all or page in self.failing_pages:
            raise ProviderListError(f"page {page} unavailable", status=503, body="busy")
        per_page = per_page or self.page_size
        start = (page - 1) * per_page
        return self.droplets[start:start + per_page]


@dataclass
class FakeCreator:
    """Records create requests; names in ``failing_names`` are rejected."""

    timeline: list[tuple[str, Any]]
    failing_names: set[str] = field(default_factory=set)
    failing_regions: set[str] = field(default_factory=set)
    anonymous_names: set[str] = field(default_factory=set)
    requests: list[DropletCreateParams] = field(default_factory=list)
    next_id: int = 5000

    async def create_droplet(self, params: DropletCreateParams) -> DropletResponse:
        self.requests.append(params)
        if params["name"] in self.failing_names or params["region"] in self.failing_regions:
            self.timeline.append(("create_failed", params["name"]))
            raise ProviderCreateError("no capacity", status=422, body='{"id":"unprocessable_entity"}')
        self.next_id += 1
        droplet = make_droplet(self.next_id, params["name"], params["size"], params["region"])
        if params["name"] in self.anonymous_names:
            del droplet["id"]  # type: ignore[misc]
        self.timeline.append(("created", params["name"]))
        return droplet


@dataclass
class RecordingNotifier:
    timeline: list[tuple[str, Any]]
    events: list[Event] = field(default_factory=list)

    async def notify(self, event: Event) -> bool:
        self.events.append(event)
        self.timeline.append(("notified", event))
        return True


@pytest.fixture
def timeline() -> list[tuple[str, Any]]:
    return []


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def creator(timeline: list[tuple[str, Any]]) -> FakeCreator:
    return FakeCreator(timeline=timeline)


@pytest.fixture
def notifier(timeline: list[tuple[str, Any]]) -> RecordingNotifier:
    return RecordingNotifier(timeline=timeline)


# ─── Fake DigitalOcean API ───────────────────────────────────────────


@dataclass
class FakeDigitalOcean:
    droplets: list[DropletResponse] = field(default_factory=list)
    failing_pages: set[int] = field(default_factory=set)
    failing_names: set[str] = field(default_factory=set)
    raw_list_body: str | None = None
    raw_create_bodies: dict[str, str] = field(default_factory=dict)
    list_queries: list[dict[str, str]] = field(default_factory=list)
    create_bodies: list[dict[str, Any]] = field(default_factory=list)
    next_id: int = 1000

    def add(self, size: str, region: str, count: int = 1) -> None:
        for _ in range(count):
            self.next_id += 1
            self.droplets.append(
                make_droplet(self.next_id, f"existing-{self.next_id}", size, region)
            )

    def app(self) -> web.Application:
        app = web.Application()

        def authorized(request: web.Request) -> bool:
            return request.headers.get("Authorization") == f"Bearer {TOKEN}"

        async def list_droplets(request: web.Request) -> web.Response:
            if not authorized(request):
                return web.json_response({"id": "unauthorized"}, status=401)
            self.list_queries.append(dict(request.query))
            page = int(request.query.get("page", "1"))
            per_page = int(request.query.get("per_page", "20"))
            if page in self.failing_pages:
                return web.json_response({"id": "server_error"}, status=500)
            if self.raw_list_body is not None:
                return web.Response(status=200, text=self.raw_list_body, content_type="text/html")
            start = (page - 1) * per_page
            return web.json_response({"droplets": self.droplets[start:start + per_page]})

        async def create_droplet(request: web.Request) -> web.Response:
            if not authorized(request):
                return web.json_response({"id": "unauthorized"}, status=401)
            body = await request.json()
            self.create_bodies.append(body)
            if body["name"] in self.raw_create_bodies:
                return web.Response(status=202, text=self.raw_create_bodies[body["name"]])
            if body["name"] in self.failing_names:
                return web.json_response(
                    {"id": "unprocessable_entity", "message": "size unavailable"}, status=422,
                )
            self.next_id += 1
            droplet = make_droplet(self.next_id, body["name"], body["size"], body["region"])
            droplet["status"] = "new"
            self.droplets.append(droplet)
            return web.json_response({"droplet": droplet}, status=202)

        app.router.add_get("/v2/droplets", list_droplets)
        app.router.add_post("/v2/droplets", create_droplet)
        return app


@dataclass
class FakeWebhook:
    status: int = 200
    received: list[dict[str, Any]] = field(default_factory=list)
    content_types: list[str] = field(default_factory=list)

    def app(self) -> web.Application:
        app = web.Application()

        async def hook(request: web.Request) -> web.Response:
            self.content_types.append(request.headers.get("Content-Type", ""))
            self.received.append(await request.json())
            if self.status >= 400:
                return web.Response(status=self.status, text="invalid_payload")
            return web.Response(status=self.status, text="ok")

        app.router.add_post("/hook", hook)
        return app


@pytest.fixture
def fake_do() -> FakeDigitalOcean:
    return FakeDigitalOcean()


@pytest.fixture
async def do_server(fake_do: FakeDigitalOcean):
    srv = TestServer(fake_do.app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def do_config(do_server: TestServer) -> DigitalOcean:
    return DigitalOcean(token=TOKEN, api_url=f"http://{do_server.host}:{do_server.port}/v2")


@pytest.fixture
def webhook() -> FakeWebhook:
    return FakeWebhook()


@pytest.fixture
async def webhook_server(webhook: FakeWebhook):
    srv = TestServer(webhook.app())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def webhook_url(webhook_server: TestServer) -> str:
    return f"http://{webhook_server.host}:{webhook_server.port}/hook"
