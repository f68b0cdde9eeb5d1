"""Fetch orchestration: run render backends in order until one yields a conversation."""
from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple, TypeVar

from chatflow.backends import HeadlessBrowserBackend, PlainFetchBackend, RemoteBrowserBackend, RenderBackend
from chatflow.backends.remote import CONTENT_MODE, UNBLOCK_MODE
from chatflow.config import Settings
from chatflow.errors import (
    AttemptFailure,
    BackendNotConfiguredError,
    ExtractionInconclusiveError,
    NeedsManualInput,
    RenderError,
)
from chatflow.telemetry import emit_fetch_attempt, emit_fetch_exhausted

from .extractors import ConversationExtractor
from .models import DEFAULT_TITLE, SharePayload

LOGGER = logging.getLogger(__name__)

StepT = TypeVar("StepT")
ResultT = TypeVar("ResultT")


def describe_failure(error: BaseException) -> str:
    if isinstance(error, RenderError):
        return error.reason
    if isinstance(error, ExtractionInconclusiveError):
        return "no conversation messages found in page"
    return f"{type(error).__name__}: {error}"


def _step_name(step: object) -> str:
    return str(getattr(step, "name", type(step).__name__))


async def run_fallback(
    steps: Sequence[StepT],
    attempt: Callable[[StepT], Awaitable[ResultT]],
) -> Tuple[Optional[ResultT], List[AttemptFailure]]:
    """Try ``attempt`` on each step in order and return the first success.

    Every failure is recorded as an :class:`AttemptFailure`. Cancellation is
    not an ``Exception`` and therefore always propagates.
    """

    failures: List[AttemptFailure] = []
    for step in steps:
        try:
            return await attempt(step), failures
        except Exception as error:
            failures.append(AttemptFailure(backend=_step_name(step), reason=describe_failure(error)))
    return None, failures


@dataclass(slots=True)
class FetchOutcome:
    """A successful fetch and the attempts that failed before it."""

    payload: SharePayload
    backend: str
    strategy: Optional[str] = None
    failures: List[AttemptFailure] = field(default_factory=list)


class FetchOrchestrator:
    """Run the render backends sequentially and extract the first usable page."""

    def __init__(
        self,
        backends: Sequence[RenderBackend],
        extractor: Optional[ConversationExtractor] = None,
    ) -> None:
        self.backends = list(backends)
        self.extractor = extractor or ConversationExtractor()

    @property
    def backend_names(self) -> List[str]:
        return [backend.name for backend in self.backends]

    async def fetch_conversation(self, url: str, *, req_id: str | None = None) -> SharePayload:
        """Return the first usable payload or raise :class:`NeedsManualInput`."""

        return (await self.fetch(url, req_id=req_id)).payload

    async def fetch(self, url: str, *, req_id: str | None = None) -> FetchOutcome:
        last_title: Optional[str] = None

        async def attempt(backend: RenderBackend) -> FetchOutcome:
            nonlocal last_title
            started = time.perf_counter()
            html: Optional[str] = None
            try:
                if not backend.configured:
                    raise BackendNotConfiguredError(backend.name, "backend is not configured")
                html = await backend.render(url)
                extraction = await asyncio.to_thread(self.extractor.extract_with_details, html)
            except Exception as error:
                outcome = "skipped" if isinstance(error, BackendNotConfiguredError) else "error"
                LOGGER.warning("Backend %s failed for %s: %s", backend.name, url, describe_failure(error))
                emit_fetch_attempt(
                    req_id=req_id,
                    backend=backend.name,
                    outcome=outcome,
                    duration_ms=(time.perf_counter() - started) * 1000.0,
                    html_chars=len(html) if html is not None else None,
                    reason=describe_failure(error),
                )
                raise

            payload = extraction.payload
            duration_ms = (time.perf_counter() - started) * 1000.0
            if payload.title and payload.title != DEFAULT_TITLE:
                last_title = payload.title
            if not payload.has_messages:
                emit_fetch_attempt(
                    req_id=req_id,
                    backend=backend.name,
                    outcome="empty",
                    duration_ms=duration_ms,
                    html_chars=len(html),
                    messages=0,
                    reason="no conversation messages found in page",
                )
                raise ExtractionInconclusiveError(backend.name)

            emit_fetch_attempt(
                req_id=req_id,
                backend=backend.name,
                outcome="ok",
                duration_ms=duration_ms,
                html_chars=len(html),
                messages=len(payload.messages),
            )
            LOGGER.info(
                "Backend %s extracted %s messages via %s", backend.name, len(payload.messages), extraction.strategy
            )
            return FetchOutcome(payload=payload, backend=backend.name, strategy=extraction.strategy)

        outcome, failures = await run_fallback(self.backends, attempt)
        if outcome is None:
            emit_fetch_exhausted(req_id=req_id, url=url, reasons=[failure.describe() for failure in failures])
            raise NeedsManualInput(failures, title=last_title)
        outcome.failures = failures
        return outcome


def build_backends(settings: Settings) -> List[RenderBackend]:
    """Instantiate the backends named in ``settings.render_backends``, in order."""

    backends: List[RenderBackend] = []
    for name in settings.render_backends:
        if name == "plain":
            backends.append(PlainFetchBackend(timeout=settings.plain_fetch_timeout))
        elif name == "headless":
            backends.append(
                HeadlessBrowserBackend(
                    nav_timeout=settings.headless_nav_timeout,
                    selector_timeout=settings.headless_selector_timeout,
                    settle_seconds=settings.headless_settle_seconds,
                )
            )
        elif name in ("remote", "remote-unblock"):
            backends.append(
                RemoteBrowserBackend(
                    mode=UNBLOCK_MODE if name == "remote-unblock" else CONTENT_MODE,
                    base_url=settings.browserless_url,
                    token=settings.browserless_token,
                    proxy=settings.browserless_proxy,
                    timeout=settings.remote_timeout,
                    settle_seconds=settings.headless_settle_seconds,
                )
            )
        else:
            raise ValueError(f"Unknown render backend: {name}")
    return backends


def build_orchestrator(settings: Settings) -> FetchOrchestrator:
    return FetchOrchestrator(
        build_backends(settings),
        ConversationExtractor(max_messages=settings.max_messages),
    )
