from __future__ import annotations

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from sluggrab.infra.http import BearerAuth, HttpClient, HttpError

pytestmark = [pytest.mark.unit, pytest.mark.xdist_group("unit")]

TOKEN = "dop_v1_test"


def make_api() -> web.Application:
    """A DigitalOcean-shaped API next to a chat-style webhook."""
    app = web.Application()

    async def account(request: web.Request) -> web.Response:
        if request.headers.get("Authorization") != f"Bearer {TOKEN}":
            return web.json_response(
                {"id": "unauthorized", "message": "Unable to authenticate you"}, status=401,
            )
        return web.json_response({"query": dict(request.query)})

    async def maintenance(_: web.Request) -> web.Response:
        return web.Response(text="<html><h1>Down for maintenance</h1></html>", content_type="text/html")

    async def accepted(_: web.Request) -> web.Response:
        return web.Response(status=202, text="accepted")

    async def no_content(_: web.Request) -> web.Response:
        return web.Response(status=204)

    async def chat_hook(request: web.Request) -> web.Response:
        payload = await request.json()
        if "text" not in payload:
            return web.Response(status=400, text="invalid_payload")
        return web.Response(text="ok")

    app.router.add_get("/v2/account", account)
    app.router.add_get("/v2/maintenance", maintenance)
    app.router.add_post("/v2/accepted", accepted)
    app.router.add_get("/v2/empty", no_content)
    app.router.add_post("/services/hook", chat_hook)
    return app


@pytest.fixture
async def server():
    srv = TestServer(make_api())
    await srv.start_server()
    yield srv
    await srv.close()


@pytest.fixture
def root(server: TestServer) -> str:
    return f"http://{server.host}:{server.port}"


def test_bearer_auth_repr_hides_token():
    auth = BearerAuth(TOKEN)
    assert TOKEN not in repr(auth)
    assert auth.headers()["Authorization"] == f"Bearer {TOKEN}"


class TestApiCalls:
    async def test_token_and_query_reach_api(self, root: str):
        async with HttpClient(f"{root}/v2", BearerAuth(TOKEN)) as http:
            result = await http.get("/account", params={"page": 3, "per_page": 100})
        assert result == {"query": {"page": "3", "per_page": "100"}}

    async def test_wrong_token_keeps_status_and_body(self, root: str):
        async with HttpClient(f"{root}/v2", BearerAuth("revoked")) as http:
            with pytest.raises(HttpError) as exc_info:
                await http.get("/account")
        assert exc_info.value.status == 401
        assert "Unable to authenticate" in exc_info.value.body
        assert str(exc_info.value).startswith("HTTP 401")

    async def test_empty_success_body_is_none(self, root: str):
        async with HttpClient(f"{root}/v2") as http:
            assert await http.get("/empty") is None


class TestUndecodableBodies:
    async def test_html_page_with_200_raises(self, root: str):
        async with HttpClient(f"{root}/v2") as http:
            with pytest.raises(HttpError) as exc_info:
                await http.get("/maintenance")
        assert exc_info.value.status == 200
        assert "Down for maintenance" in exc_info.value.body
        assert "undecodable" in str(exc_info.value)

    async def test_plain_text_202_raises_when_json_expected(self, root: str):
        async with HttpClient(f"{root}/v2") as http:
            with pytest.raises(HttpError) as exc_info:
                await http.post("/accepted", json={"name": "gpu-tor1-1"})
        assert exc_info.value.status == 202
        assert exc_info.value.body == "accepted"

    async def test_text_expectation_returns_raw_body(self, root: str):
        async with HttpClient(f"{root}/v2") as http:
            assert await http.post("/accepted", json={}, expect="text") == "accepted"


class TestWebhookUrls:
    async def test_absolute_url_ignores_base(self, root: str):
        async with HttpClient(f"{root}/v2", BearerAuth(TOKEN)) as http:
            reply = await http.post(f"{root}/services/hook", json={"text": "hi"}, expect="text")
        assert reply == "ok"

    async def test_rejected_payload(self, root: str):
        async with HttpClient() as http:
            with pytest.raises(HttpError) as exc_info:
                await http.post(f"{root}/services/hook", json={"event": "x"}, expect="text")
        assert exc_info.value.status == 400
        assert exc_info.value.body == "invalid_payload"

    async def test_unreachable_host_is_status_zero(self):
        async with HttpClient(timeout=2) as http:
            with pytest.raises(HttpError) as exc_info:
                await http.post("http://127.0.0.1:9/hook", json={"text": "hi"})
        assert exc_info.value.status == 0
        assert "transport error" in str(exc_info.value)
