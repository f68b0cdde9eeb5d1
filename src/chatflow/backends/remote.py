"""Hosted browser rendering through the browserless HTTP API."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import urlencode

import aiohttp

from chatflow.config import DEFAULT_BROWSERLESS_URL
from chatflow.errors import BackendNotConfiguredError, RenderError

from .base import RenderBackend, SessionFactory

LOGGER = logging.getLogger(__name__)

UNBLOCK_MODE = "unblock"
CONTENT_MODE = "content"
MIN_CONTENT_CHARS = 1000


class RemoteBrowserBackend(RenderBackend):
    """POST the URL to a hosted browser and read back the rendered HTML.

    ``unblock`` mode asks the service to get past bot protection (optionally
    through a residential proxy) and answers with JSON; ``content`` mode
    answers with the HTML body directly.
    """

    def __init__(
        self,
        *,
        mode: str = UNBLOCK_MODE,
        base_url: str = DEFAULT_BROWSERLESS_URL,
        token: Optional[str] = None,
        proxy: Optional[str] = "residential",
        timeout: float = 60.0,
        nav_timeout: float = 30.0,
        settle_seconds: float = 3.0,
        min_content_chars: int = MIN_CONTENT_CHARS,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        if mode not in (UNBLOCK_MODE, CONTENT_MODE):
            raise ValueError(f"Unsupported remote browser mode: {mode}")
        self.mode = mode
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.proxy = proxy
        self.timeout = timeout
        self.nav_timeout = nav_timeout
        self.settle_seconds = settle_seconds
        self.min_content_chars = min_content_chars
        self._session_factory = session_factory

    @property
    def name(self) -> str:  # type: ignore[override]
        return "remote-unblock" if self.mode == UNBLOCK_MODE else "remote"

    @property
    def configured(self) -> bool:
        return bool(self.token)

    def endpoint(self) -> str:
        params: dict[str, str] = {"token": self.token or ""}
        if self.mode == UNBLOCK_MODE and self.proxy:
            params["proxy"] = self.proxy
        return f"{self.base_url}/{self.mode}?{urlencode(params)}"

    def request_body(self, url: str) -> dict[str, Any]:
        if self.mode == UNBLOCK_MODE:
            return {
                "url": url,
                "browserWSEndpoint": False,
                "cookies": False,
                "content": True,
                "screenshot": False,
            }
        return {
            "url": url,
            "gotoOptions": {"waitUntil": "domcontentloaded", "timeout": int(self.nav_timeout * 1000)},
            "waitForTimeout": int(self.settle_seconds * 1000),
        }

    def _open_session(self) -> aiohttp.ClientSession:
        if self._session_factory is not None:
            return self._session_factory()
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    def _html_from(self, body: str) -> str:
        if self.mode != UNBLOCK_MODE:
            return body
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            return body
        if isinstance(data, dict) and isinstance(data.get("content"), str):
            return data["content"]
        return ""

    async def render(self, url: str) -> str:
        if not self.token:
            raise BackendNotConfiguredError(self.name, "BROWSERLESS_TOKEN is not set")

        try:
            async with self._open_session() as session:
                async with session.post(
                    self.endpoint(),
                    json=self.request_body(url),
                    headers={"Content-Type": "application/json"},
                ) as response:
                    body = await response.text()
                    if not 200 <= response.status < 300:
                        raise RenderError(self.name, f"HTTP {response.status}: {body[:200]}")
        except RenderError:
            raise
        except asyncio.TimeoutError as error:
            raise RenderError(self.name, f"timed out after {self.timeout:g}s", cause=error) from error
        except aiohttp.ClientError as error:
            raise RenderError(self.name, f"request failed: {error}", cause=error) from error

        html = self._html_from(body)
        if len(html) < self.min_content_chars:
            raise RenderError(self.name, f"response too short ({len(html)} chars)")
        LOGGER.debug("Remote browser returned %s characters for %s", len(html), url)
        return html
