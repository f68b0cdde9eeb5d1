"""Single HTTP GET without script execution."""

from __future__ import annotations

import asyncio
import logging
from typing import Mapping, Optional

import aiohttp

from chatflow.errors import RenderError

from .base import DEFAULT_HEADERS, RenderBackend, SessionFactory

LOGGER = logging.getLogger(__name__)


class PlainFetchBackend(RenderBackend):
    """Fetch the raw server response with desktop browser headers."""

    name = "plain"

    def __init__(
        self,
        *,
        timeout: float = 15.0,
        headers: Optional[Mapping[str, str]] = None,
        session_factory: Optional[SessionFactory] = None,
    ) -> None:
        self.timeout = timeout
        self.headers = dict(headers or DEFAULT_HEADERS)
        self._session_factory = session_factory

    def _open_session(self) -> aiohttp.ClientSession:
        if self._session_factory is not None:
            return self._session_factory()
        return aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout))

    async def render(self, url: str) -> str:
        try:
            async with self._open_session() as session:
                async with session.get(url, headers=self.headers, allow_redirects=True) as response:
                    if not 200 <= response.status < 300:
                        raise RenderError(self.name, f"HTTP {response.status}")
                    html = await response.text()
        except RenderError:
            raise
        except asyncio.TimeoutError as error:
            raise RenderError(self.name, f"timed out after {self.timeout:g}s", cause=error) from error
        except aiohttp.ClientError as error:
            raise RenderError(self.name, f"request failed: {error}", cause=error) from error

        LOGGER.debug("Fetched %s characters from %s", len(html), url)
        return html
