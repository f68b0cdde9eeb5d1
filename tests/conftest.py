"""Shared fixtures for service and API tests."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, List, Optional

import pytest

from chatflow.backends import RenderBackend
from chatflow.config import Settings
from chatflow.ingest.pipeline import FetchOrchestrator
from chatflow.providers import MockTextProvider
from chatflow.services.conversations import ConversationService

SHARE_URL = "https://chatgpt.com/share/6701-test"

CONVERSATION_HTML = """
<html><head><title>Debugging session | ChatGPT</title></head><body><main>
<div data-message-author-role="user">Can you fix this Python script error?</div>
<div data-message-author-role="assistant">The error comes from a missing import; add it at the top.</div>
<div data-message-author-role="user">Now write an email to my team about the fix</div>
<div data-message-author-role="assistant">Subject: Script fix deployed. Hi team, the import issue is resolved.</div>
</main></body></html>
"""


class PageBackend(RenderBackend):
    """Backend returning canned HTML (or raising) and recording every call."""

    def __init__(self, html: Optional[str] = None, error: Optional[BaseException] = None, name: str = "plain") -> None:
        self.name = name
        self.html = html
        self.error = error
        self.calls: List[str] = []

    async def render(self, url: str) -> str:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html or ""


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        render_backends=("plain",),
        llm_provider="mock",
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        dev_user_name="Test User",
        dev_user_email="test@example.com",
    )


@pytest.fixture()
def make_service(settings: Settings) -> Callable[..., ConversationService]:
    def factory(backend: Optional[RenderBackend] = None, **overrides: object) -> ConversationService:
        for key, value in overrides.items():
            setattr(settings, key, value)
        backend = backend or PageBackend(html=CONVERSATION_HTML)
        return ConversationService(
            settings=settings,
            orchestrator=FetchOrchestrator([backend]),
            provider=MockTextProvider(),
        )

    return factory
