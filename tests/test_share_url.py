"""Tests for share link recognition."""
from __future__ import annotations

import pytest

from chatflow.ingest.share_url import is_chatgpt_share, share_id


@pytest.mark.parametrize(
    "url",
    [
        "https://chatgpt.com/share/abc-123",
        "https://www.chatgpt.com/share/abc-123",
        "https://chat.openai.com/share/abc-123",
        "http://chatgpt.com/share/abc?x=1",
        "  https://CHATGPT.com/share/abc  ",
        "https://shareg.pt/XyZ",
    ],
)
def test_share_links_are_recognised(url: str) -> None:
    assert is_chatgpt_share(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://example.com/share/abc",
        "https://chatgpt.com/c/abc",
        "https://chatgpt.com/share/",
        "ftp://chatgpt.com/share/abc",
        "chatgpt.com/share/abc",
        "not a url",
        "",
        "http://[::1",
    ],
)
def test_other_urls_are_rejected(url: str) -> None:
    assert not is_chatgpt_share(url)


def test_non_string_input_returns_false() -> None:
    assert is_chatgpt_share(None) is False  # type: ignore[arg-type]


def test_share_id_returns_last_segment() -> None:
    assert share_id("https://chatgpt.com/share/abc-123") == "abc-123"
    assert share_id("https://example.com/share/abc") is None
