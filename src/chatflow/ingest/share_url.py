"""Recognise ChatGPT share links."""
from __future__ import annotations

from typing import Optional
from urllib.parse import urlsplit

SHARE_HOSTS = frozenset({"chatgpt.com", "www.chatgpt.com", "chat.openai.com"})
SHORT_LINK_HOSTS = frozenset({"shareg.pt"})
SHARE_PATH_PREFIX = "/share/"


def _split(url: str):
    if not isinstance(url, str):
        return None
    try:
        parts = urlsplit(url.strip())
        host = (parts.hostname or "").lower()
    except ValueError:
        return None
    if parts.scheme.lower() not in {"http", "https"} or not host:
        return None
    return host, parts.path


def is_chatgpt_share(url: str) -> bool:
    """Return ``True`` when ``url`` points at a public ChatGPT share page.

    Short-link hosts are accepted regardless of path. Malformed input never
    raises and simply returns ``False``.
    """

    split = _split(url)
    if split is None:
        return False
    host, path = split
    if host in SHORT_LINK_HOSTS:
        return True
    if host not in SHARE_HOSTS:
        return False
    return path.startswith(SHARE_PATH_PREFIX) and len(path) > len(SHARE_PATH_PREFIX)


def share_id(url: str) -> Optional[str]:
    """Return the trailing identifier of a share URL, used for log correlation."""

    if not is_chatgpt_share(url):
        return None
    _, path = _split(url)  # type: ignore[misc]
    segments = [segment for segment in path.split("/") if segment]
    return segments[-1] if segments else None
