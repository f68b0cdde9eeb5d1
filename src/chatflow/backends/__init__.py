"""Render backends that fetch share pages as HTML."""
from __future__ import annotations

from .base import RenderBackend
from .headless import HeadlessBrowserBackend
from .plain import PlainFetchBackend
from .remote import RemoteBrowserBackend

__all__ = ["HeadlessBrowserBackend", "PlainFetchBackend", "RemoteBrowserBackend", "RenderBackend"]
