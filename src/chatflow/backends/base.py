"""Common interface for render backends that turn a URL into HTML."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

__all__ = ["DEFAULT_HEADERS", "DESKTOP_USER_AGENT", "RenderBackend", "SessionFactory"]

DESKTOP_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/120.0.0.0 Safari/537.36"
)
DEFAULT_HEADERS: dict[str, str] = {
    "User-Agent": DESKTOP_USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9,ko;q=0.8",
}

# Returns an object usable as ``async with factory() as session`` (an aiohttp.ClientSession).
SessionFactory = Callable[[], Any]


class RenderBackend(ABC):
    """Abstract interface for fetching a share page as HTML.

    Backends hold configuration only; every network session or browser they
    open lives for a single :meth:`render` call.
    """

    name: str = "backend"

    @property
    def configured(self) -> bool:
        """Return ``False`` when the backend cannot run (missing token, etc.)."""

        return True

    @abstractmethod
    async def render(self, url: str) -> str:
        """Return the page HTML or raise :class:`chatflow.errors.RenderError`."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
