"""API router exposing conversation preview, commit and titling endpoints."""
from __future__ import annotations

from typing import Any, Optional, Union

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from chatflow.errors import InvalidInputError
from chatflow.ingest.models import ChangeSegment, ClassifiedPair
from chatflow.ingest.segmentation import normalize_category
from chatflow.services.conversations import (
    CommitRequest,
    ConversationService,
    PreviewResult,
    PreviewStatus,
    get_conversation_service,
)

router = APIRouter(tags=["conversations"])


class CamelModel(BaseModel):
    """Wire models use camelCase keys and accept snake_case on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PreviewRequest(CamelModel):
    """Request body accepted by the preview endpoint."""

    url: Optional[str] = Field(None, description="ChatGPT share link to ingest.")
    manual_transcript: Optional[str] = Field(None, description="Conversation text pasted by the user.")


class PairModel(CamelModel):
    user_index: int
    user_text: str
    assistant_texts: list[str]
    category: str
    turn_number: int


class SegmentModel(CamelModel):
    category: str
    start_pair: int
    end_pair: int
    user_indices: list[int]
    assistant_preview: str
    available_responses: list[str]
    title: Optional[str] = None


class PreviewResponse(CamelModel):
    """Successful preview: classified pairs plus the flows built from them."""

    ok: bool = True
    mode: str
    title: str
    added_by_name: Optional[str] = None
    pairs: list[PairModel]
    segments: list[SegmentModel]


class NeedsManualResponse(CamelModel):
    ok: bool = False
    needs_manual: bool = True
    error: str
    reasons: list[str]
    instructions: list[str]
    extracted_title: Optional[str] = None


class ErrorResponse(CamelModel):
    ok: bool = False
    error: str


class TurnPairInput(CamelModel):
    user_text: str = ""
    assistant_texts: list[str] = Field(default_factory=list)
    turn_number: Optional[int] = None


class FlowInput(CamelModel):
    """A reviewed flow as sent back by the client."""

    category: str
    start_pair: int = Field(0, ge=0)
    end_pair: int = Field(0, ge=0)
    user_indices: list[int] = Field(default_factory=list)
    assistant_preview: str = ""
    available_responses: list[str] = Field(default_factory=list)
    title: Optional[str] = None
    user_text: Optional[str] = None
    assistant_texts: Optional[list[str]] = None
    turn_pairs: Optional[list[TurnPairInput]] = None

    @field_validator("category")
    @classmethod
    def _known_category(cls, value: str) -> str:
        return normalize_category(value).value


class CommitBody(CamelModel):
    url: Optional[str] = None
    notes: Optional[str] = None
    title_override: Optional[str] = None
    flows: list[FlowInput] = Field(
        default_factory=list,
        validation_alias=AliasChoices("flows", "flowsOverride", "flows_override"),
    )


class CommitResponse(BaseModel):
    ok: bool = True
    block: dict[str, Any]


class FlowTitleInput(CamelModel):
    user_text: Optional[str] = None
    turn_pairs: Optional[list[TurnPairInput]] = None

    def first_user_text(self) -> str:
        if self.user_text:
            return self.user_text
        if self.turn_pairs:
            return self.turn_pairs[0].user_text
        return ""


class FlowTitlesRequest(CamelModel):
    flows: list[FlowTitleInput] = Field(default_factory=list)


class FlowTitlesResponse(CamelModel):
    ok: bool = True
    titles: list[str]


def _serialise_pair(item: ClassifiedPair) -> PairModel:
    return PairModel(
        user_index=item.pair.user_index,
        user_text=item.pair.user_text,
        assistant_texts=list(item.pair.assistant_texts),
        category=item.category.value,
        turn_number=item.turn_number,
    )


def _serialise_segment(segment: ChangeSegment) -> SegmentModel:
    return SegmentModel(
        category=segment.category.value,
        start_pair=segment.start_pair,
        end_pair=segment.end_pair,
        user_indices=list(segment.user_indices),
        assistant_preview=segment.assistant_preview,
        available_responses=list(segment.available_responses),
        title=segment.title,
    )


def _error(status_code: int, model: BaseModel) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(by_alias=True))


def _preview_response(result: PreviewResult) -> Union[PreviewResponse, JSONResponse]:
    if result.status is PreviewStatus.OK:
        return PreviewResponse(
            mode=result.mode or "",
            title=result.title or "",
            added_by_name=result.added_by_name,
            pairs=[_serialise_pair(item) for item in result.pairs],
            segments=[_serialise_segment(segment) for segment in result.segments],
        )
    if result.status is PreviewStatus.NEEDS_MANUAL:
        return _error(
            422,
            NeedsManualResponse(
                error=result.error or "",
                reasons=[reason.describe() for reason in result.reasons],
                instructions=result.instructions,
                extracted_title=result.extracted_title,
            ),
        )
    return _error(400, ErrorResponse(error=result.error or "Preview failed"))


@router.post(
    "/minutes/{minute_id}/blocks/link/preview",
    response_model=PreviewResponse,
    responses={400: {"model": ErrorResponse}, 422: {"model": NeedsManualResponse}},
)
async def preview_link(
    minute_id: str,
    request: PreviewRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> Union[PreviewResponse, JSONResponse]:
    """Extract, pair and classify a shared conversation for review."""

    result = await service.preview_conversation(url=request.url, manual_transcript=request.manual_transcript)
    return _preview_response(result)


@router.post(
    "/minutes/{minute_id}/blocks/chatgpt",
    response_model=CommitResponse,
    responses={400: {"model": ErrorResponse}},
)
def commit_conversation_block(
    minute_id: str,
    request: CommitBody,
    service: ConversationService = Depends(get_conversation_service),
) -> Union[CommitResponse, JSONResponse]:
    """Store reviewed flows as a conversation block on the minute."""

    commit = CommitRequest(
        flows=[flow.model_dump(by_alias=True, exclude_none=True) for flow in request.flows],
        url=request.url,
        notes=request.notes,
        title_override=request.title_override,
    )
    try:
        result = service.commit_block(minute_id, commit)
    except InvalidInputError as exc:
        return _error(400, ErrorResponse(error=str(exc)))

    block = {key: value for key, value in result.block.items() if key not in {"flows", "raw"}}
    block.update(
        {
            "isRemix": False,
            "flowCategories": result.flow_categories,
            "flowCount": result.flow_count,
            "turnCount": result.turn_count,
        }
    )
    return CommitResponse(block=block)


@router.get("/minutes/{minute_id}/blocks/{block_id}")
def read_block(
    minute_id: str,
    block_id: str,
    service: ConversationService = Depends(get_conversation_service),
) -> dict[str, Any]:
    """Return a stored conversation block."""

    block = service.get_block(minute_id, block_id)
    if block is None:
        raise HTTPException(status_code=404, detail="Block not found")
    return block


@router.post(
    "/flows/titles",
    response_model=FlowTitlesResponse,
    responses={400: {"model": ErrorResponse}},
)
async def generate_flow_titles(
    request: FlowTitlesRequest,
    service: ConversationService = Depends(get_conversation_service),
) -> Union[FlowTitlesResponse, JSONResponse]:
    """Generate a short title for each flow; failures yield empty strings."""

    if not request.flows:
        return _error(400, ErrorResponse(error="No flows provided"))
    titles = await service.generate_titles([flow.first_user_text() for flow in request.flows])
    return FlowTitlesResponse(titles=titles)
