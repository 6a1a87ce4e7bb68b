"""aiohttp transport shared by the DigitalOcean client and the webhook notifier.

Every failure leaves this module as ``HttpError``:

- an error status carries the status and the raw body;
- a connection failure or timeout carries status 0;
- a success status whose body is not valid JSON carries that status and the
  raw body, so a proxy's HTML page never reaches the caller as data.
"""

from __future__ import annotations

from dataclasses import dataclass
from json import loads
from typing import Any, Literal

import aiohttp
from loguru import logger

type Expect = Literal["json", "text"]


@dataclass(frozen=True, slots=True)
class HttpError(Exception):
    status: int
    body: str

    def __str__(self) -> str:
        if self.status == 0:
            return f"HTTP transport error: {self.body}"
        if self.status < 400:
            return f"HTTP {self.status} with undecodable body: {self.body[:200]}"
        return f"HTTP {self.status}: {self.body}"


class BearerAuth:
    """``Authorization: Bearer`` credentials; the token never shows in reprs."""

    def __init__(self, token: str) -> None:
        self._token = token

    def headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}", "Accept": "application/json"}

    def __repr__(self) -> str:
        return "BearerAuth(token=***)"


class HttpClient:
    """One lazily-opened ``aiohttp.ClientSession`` plus status/body decoding.

    Relative paths are joined to ``base_url``; absolute ``http(s)://`` URLs are
    used as given, which is how the notifier reaches arbitrary webhooks.
    """

    def __init__(
        self,
        base_url: str = "",
        auth: BearerAuth | None = None,
        *,
        timeout: float = 30,
        default_headers: dict[str, str] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._headers = {**(default_headers or {}), **(auth.headers() if auth else {})}
        self._session: aiohttp.ClientSession | None = None
        self._log = logger.bind(component="http")

    def _resolve(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        return f"{self._base_url}{path}"

    async def _open(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout, headers=self._headers)
        return self._session

    async def _call(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
        expect: Expect = "json",
    ) -> Any:
        url = self._resolve(path)
        session = await self._open()
        self._log.debug("{method} {url}", method=method, url=url)
        try:
            async with session.request(method, url, json=json, params=params) as resp:
                status = resp.status
                text = await resp.text(errors="replace")
        except aiohttp.ClientError as e:
            raise HttpError(status=0, body=str(e) or type(e).__name__) from e
        except TimeoutError as e:
            raise HttpError(status=0, body=f"timed out after {self._timeout.total}s") from e
        return self._decode(status, text, expect)

    def _decode(self, status: int, text: str, expect: Expect) -> Any:
        if status >= 400:
            self._log.debug("HTTP {status}: {body}", status=status, body=text[:500])
            raise HttpError(status=status, body=text)
        if expect == "text":
            return text
        if not text.strip():
            return None
        try:
            return loads(text)
        except ValueError as e:
            self._log.debug("HTTP {status} body is not JSON: {body}", status=status, body=text[:200])
            raise HttpError(status=status, body=text) from e

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self._call("GET", path, params=params)

    async def post(
        self, path: str, *, json: dict[str, Any] | None = None, expect: Expect = "json",
    ) -> Any:
        return await self._call("POST", path, json=json, expect=expect)

    async def close(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def __aenter__(self) -> HttpClient:
        await self._open()
        return self

    async def __aexit__(self, *_: object) -> None:
        await self.close()


__all__ = ["BearerAuth", "Expect", "HttpClient", "HttpError"]
