from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from functools import lru_cache
from typing import Any, Iterable, List, Optional, Sequence

from chatflow.config import Settings, get_settings
from chatflow.errors import AttemptFailure, InvalidInputError, NeedsManualInput
from chatflow.ingest.manual import manual_payload
from chatflow.ingest.models import ChangeSegment, ClassifiedPair, SharePayload
from chatflow.ingest.pairs import to_pairs
from chatflow.ingest.pipeline import FetchOrchestrator, build_orchestrator
from chatflow.ingest.segmentation import FlowSegmenter
from chatflow.ingest.share_url import is_chatgpt_share, share_id
from chatflow.ingest.titles import FlowTitleGenerator
from chatflow.logging_config import AUDIT_LOGGER_NAME
from chatflow.providers import TextProvider, build_text_provider
from chatflow.storage import BlockStore
from chatflow.telemetry import emit_exception, traced_duration

LOGGER = logging.getLogger(__name__)
AUDIT_LOGGER = logging.getLogger(AUDIT_LOGGER_NAME)

MISSING_INPUT_MESSAGE = "Provide a URL or a transcript."
NOT_A_SHARE_MESSAGE = "Not a ChatGPT share link"
EMPTY_TRANSCRIPT_MESSAGE = "No messages could be read from the transcript."
NEEDS_MANUAL_MESSAGE = (
    "ChatGPT conversations load dynamically with JavaScript. "
    "Please copy and paste the conversation content manually."
)
NO_PAIRS_MESSAGE = "The conversation has no user requests that could be identified."
PREVIEW_FAILED_MESSAGE = "Preview failed"
MANUAL_INSTRUCTIONS: tuple[str, ...] = (
    "1. Open the ChatGPT share URL in your browser",
    "2. Copy the conversation text",
    "3. Paste it in the manual input field below",
    "4. The system will parse and analyze the conversation",
)
DEFAULT_BLOCK_TITLE = "ChatGPT Conversation"
MANUAL_URL = "manual://pasted-chat"
BLOCK_TYPE = "CHATGPT"
PROVIDER_TAG = "ChatGPT"


class PreviewStatus(str, Enum):
    OK = "ok"
    NEEDS_MANUAL = "needs_manual"
    ERROR = "error"


@dataclass(slots=True)
class PreviewResult:
    """Structured result returned from :meth:`ConversationService.preview_conversation`."""

    status: PreviewStatus
    mode: Optional[str] = None
    title: Optional[str] = None
    payload: Optional[SharePayload] = None
    pairs: List[ClassifiedPair] = field(default_factory=list)
    segments: List[ChangeSegment] = field(default_factory=list)
    error: Optional[str] = None
    reasons: List[AttemptFailure] = field(default_factory=list)
    instructions: List[str] = field(default_factory=list)
    extracted_title: Optional[str] = None
    added_by_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is PreviewStatus.OK


@dataclass(slots=True)
class CommitRequest:
    """Reviewed flows to store. Each flow is a JSON object in the wire format."""

    flows: List[dict[str, Any]]
    url: Optional[str] = None
    notes: Optional[str] = None
    title_override: Optional[str] = None


@dataclass(slots=True)
class CommitResult:
    block: dict[str, Any]
    flow_categories: List[str]
    flow_count: int
    turn_count: int


def raw_pairs_from_flows(flows: Iterable[dict[str, Any]], *, added_by: str, added_at: str) -> List[dict[str, Any]]:
    """Flatten reviewed flows back into per-turn records tagged with their flow category."""

    pairs: List[dict[str, Any]] = []
    for flow in flows:
        category = flow.get("category")
        turn_pairs = flow.get("turnPairs") or []
        if turn_pairs:
            for turn in turn_pairs:
                pairs.append(
                    {
                        "userText": turn.get("userText") or "",
                        "assistantTexts": list(turn.get("assistantTexts") or []),
                        "category": category,
                        "addedBy": added_by,
                        "addedAt": added_at,
                        "turnNumber": turn.get("turnNumber"),
                    }
                )
            continue
        assistant_texts = (
            flow.get("assistantTexts") or flow.get("availableResponses") or [flow.get("assistantPreview") or ""]
        )
        pairs.append(
            {
                "userText": flow.get("userText") or "",
                "assistantTexts": list(assistant_texts),
                "category": category,
                "addedBy": added_by,
                "addedAt": added_at,
                "turnNumber": int(flow.get("startPair") or 0) + 1,
            }
        )
    return pairs


def _unique(values: Iterable[str]) -> List[str]:
    seen: List[str] = []
    for value in values:
        if value and value not in seen:
            seen.append(value)
    return seen


class ConversationService:
    """High level orchestration for previewing and storing shared conversations."""

    def __init__(
        self,
        *,
        settings: Settings | None = None,
        orchestrator: FetchOrchestrator | None = None,
        provider: TextProvider | None = None,
        segmenter: FlowSegmenter | None = None,
        title_generator: FlowTitleGenerator | None = None,
        store: BlockStore | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or build_orchestrator(self.settings)
        provider = provider or build_text_provider(self.settings)
        self.segmenter = segmenter or FlowSegmenter(
            provider.classify,
            concurrency=self.settings.classify_concurrency,
            timeout=self.settings.classify_timeout,
        )
        self.title_generator = title_generator or FlowTitleGenerator(provider, timeout=self.settings.title_timeout)
        self.store = store or BlockStore(self.settings.data_dir)

    @property
    def added_by_name(self) -> str:
        return self.settings.dev_user_name or self.settings.dev_user_email

    async def preview_conversation(
        self,
        url: str | None = None,
        manual_transcript: str | None = None,
        *,
        req_id: str | None = None,
    ) -> PreviewResult:
        """Turn a share link or pasted transcript into classified pairs and flows.

        Never raises for pipeline failures: every outcome is reported through
        :class:`PreviewResult`.
        """

        req_id = req_id or uuid.uuid4().hex
        started = time.perf_counter()
        try:
            result = await self._preview(url, manual_transcript, req_id=req_id)
        except InvalidInputError as error:
            LOGGER.info("Rejected preview request %s: %s", req_id, error)
            result = PreviewResult(status=PreviewStatus.ERROR, error=str(error))
        except NeedsManualInput as error:
            LOGGER.warning("Preview %s needs manual input: %s", req_id, error)
            result = PreviewResult(
                status=PreviewStatus.NEEDS_MANUAL,
                error=NEEDS_MANUAL_MESSAGE,
                reasons=error.reasons,
                instructions=list(MANUAL_INSTRUCTIONS),
                extracted_title=error.title,
            )
        except Exception as error:
            LOGGER.exception("Preview %s failed unexpectedly", req_id)
            emit_exception(module=f"{__name__}.preview", error=error, req_id=req_id)
            result = PreviewResult(status=PreviewStatus.ERROR, error=PREVIEW_FAILED_MESSAGE)

        AUDIT_LOGGER.info(
            {
                "event": "preview",
                "req_id": req_id,
                "url": (url or "").strip() or None,
                "manual": bool(manual_transcript and manual_transcript.strip()),
                "status": result.status.value,
                "mode": result.mode,
                "pairs": len(result.pairs),
                "segments": len(result.segments),
                "duration_ms": round((time.perf_counter() - started) * 1000.0, 3),
            }
        )
        return result

    async def _preview(self, url: str | None, manual_transcript: str | None, *, req_id: str) -> PreviewResult:
        transcript = (manual_transcript or "").strip()
        link = (url or "").strip()

        if transcript:
            payload = manual_payload(transcript)
            if not payload.messages:
                raise InvalidInputError(EMPTY_TRANSCRIPT_MESSAGE)
            mode = "manual"
        elif not link:
            raise InvalidInputError(MISSING_INPUT_MESSAGE)
        elif not is_chatgpt_share(link):
            raise InvalidInputError(NOT_A_SHARE_MESSAGE)
        else:
            LOGGER.info("Fetching shared conversation %s (req %s)", share_id(link), req_id)
            outcome = await self.orchestrator.fetch(link, req_id=req_id)
            payload = outcome.payload
            mode = f"link_{outcome.backend}"

        pairs = to_pairs(payload.messages)
        if not pairs:
            if mode == "manual":
                raise InvalidInputError(NO_PAIRS_MESSAGE)
            raise NeedsManualInput([AttemptFailure(backend=mode, reason=NO_PAIRS_MESSAGE)], title=payload.title)

        with traced_duration("preview.segment", logger=LOGGER, req_id=req_id, pairs=len(pairs)):
            segmentation = await self.segmenter.segment(pairs)
        if self.settings.auto_title_flows:
            await self._title_segments(segmentation.pairs, segmentation.segments)

        LOGGER.info(
            "Preview %s produced %s pairs and %s flows in mode %s",
            req_id,
            len(segmentation.pairs),
            len(segmentation.segments),
            mode,
        )
        return PreviewResult(
            status=PreviewStatus.OK,
            mode=mode,
            title=payload.title,
            payload=payload,
            pairs=segmentation.pairs,
            segments=segmentation.segments,
            added_by_name=self.added_by_name,
        )

    async def _title_segments(self, pairs: Sequence[ClassifiedPair], segments: Sequence[ChangeSegment]) -> None:
        texts = [pairs[segment.start_pair].pair.user_text for segment in segments]
        titles = await self.title_generator.titles_for(texts)
        for segment, title in zip(segments, titles):
            segment.title = title or None

    async def generate_titles(self, texts: Sequence[str]) -> List[str]:
        """Return one title per text; failures produce empty strings."""

        return await self.title_generator.titles_for(texts)

    def commit_block(self, minute_id: str, request: CommitRequest) -> CommitResult:
        """Store reviewed flows as a conversation block attached to ``minute_id``."""

        if not request.flows:
            raise InvalidInputError("At least one flow must be provided")

        created_at = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")
        added_by = self.added_by_name
        block: dict[str, Any] = {
            "id": uuid.uuid4().hex,
            "minuteId": minute_id,
            "type": BLOCK_TYPE,
            "title": (request.title_override or "").strip() or DEFAULT_BLOCK_TITLE,
            "url": (request.url or "").strip() or MANUAL_URL,
            "providerTag": PROVIDER_TAG,
            "notes": request.notes or None,
            "createdBy": {"name": self.settings.dev_user_name, "email": self.settings.dev_user_email},
            "createdAt": created_at,
            "flows": list(request.flows),
            "raw": {"pairs": raw_pairs_from_flows(request.flows, added_by=added_by, added_at=created_at)},
        }
        self.store.save(block)

        flow_categories = _unique(str(flow.get("category") or "") for flow in request.flows)
        turn_count = sum(
            int(flow.get("endPair") or 0) - int(flow.get("startPair") or 0) + 1 for flow in request.flows
        )
        AUDIT_LOGGER.info(
            {
                "event": "commit",
                "minute_id": minute_id,
                "block_id": block["id"],
                "flow_count": len(request.flows),
                "turn_count": turn_count,
            }
        )
        return CommitResult(
            block=block,
            flow_categories=flow_categories,
            flow_count=len(request.flows),
            turn_count=turn_count,
        )

    def get_block(self, minute_id: str, block_id: str) -> Optional[dict[str, Any]]:
        return self.store.get(minute_id, block_id)


@lru_cache(maxsize=1)
def get_conversation_service() -> ConversationService:
    """FastAPI dependency returning the shared :class:`ConversationService` instance."""

    return ConversationService()
