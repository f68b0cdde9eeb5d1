"""Parse conversations that users paste by hand from their own browser."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .models import ChatMessage, Role, SharePayload
from .normalization import normalize_text
from .roles import alternate_roles

LOGGER = logging.getLogger(__name__)

MANUAL_TITLE = "Manual Transcript"


@dataclass(slots=True, frozen=True)
class TranscriptLabels:
    """Role-label tokens that mark turn boundaries in a pasted transcript."""

    user: Tuple[str, ...]
    assistant: Tuple[str, ...]

    def merged(self, other: "TranscriptLabels") -> "TranscriptLabels":
        return TranscriptLabels(user=self.user + other.user, assistant=self.assistant + other.assistant)


KOREAN_LABELS = TranscriptLabels(user=("나의 말:",), assistant=("ChatGPT의 말:",))
ENGLISH_LABELS = TranscriptLabels(user=("You said:",), assistant=("ChatGPT said:",))
LABELS_BY_LOCALE: Dict[str, TranscriptLabels] = {"ko": KOREAN_LABELS, "en": ENGLISH_LABELS}
DEFAULT_LABELS = KOREAN_LABELS.merged(ENGLISH_LABELS)

# Notices the share page injects into copied text, removed wherever they appear.
CHROME_PHRASES: Tuple[str, ...] = (
    "ChatGPT는 실수를 할 수 있습니다. 중요한 정보는 재차 확인하세요.",
    "ChatGPT can make mistakes. Check important info.",
    "This conversation may reflect the link creator’s personalized data, which isn’t shared and can "
    "meaningfully change how the model responds.",
    "이 대화는 링크 작성자의 개인 맞춤 데이터가 반영되어 있을 수 있으며, 해당 데이터는 공유되지 않고 "
    "모델의 응답 방식을 크게 바꿀 수 있습니다.",
    "Report conversation",
    "대화 신고하기",
)
# Navigation labels, removed only when they occupy a whole line.
CHROME_LINES = frozenset(
    {
        "chatgpt",
        "log in",
        "sign up",
        "로그인",
        "회원 가입",
        "share",
        "공유하기",
        "copy code",
        "코드 복사",
        "skip to content",
        "본문으로 건너뛰기",
    }
)


def strip_chrome(text: str) -> str:
    """Remove known UI chrome from pasted text."""

    for phrase in CHROME_PHRASES:
        text = text.replace(phrase, "")
    kept = [line for line in text.splitlines() if line.strip().lower() not in CHROME_LINES]
    return "\n".join(kept)


def _label_pattern(labels: TranscriptLabels) -> re.Pattern[str]:
    tokens = sorted({*labels.user, *labels.assistant}, key=len, reverse=True)
    return re.compile("(" + "|".join(re.escape(token) for token in tokens) + ")")


def _alternating_lines(text: str) -> List[ChatMessage]:
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return [ChatMessage(role=role, content=line) for role, line in zip(alternate_roles(len(lines)), lines)]


def parse_manual_transcript(text: str, labels: TranscriptLabels = DEFAULT_LABELS) -> List[ChatMessage]:
    """Split a pasted transcript on role labels, preserving encounter order.

    Text before the first label cannot be attributed and is dropped. When the
    paste carries no label at all, non-empty lines alternate user/assistant.
    """

    if not text or not text.strip():
        return []

    cleaned = strip_chrome(text.replace("\r\n", "\n").replace("\r", "\n"))
    user_tokens = set(labels.user)
    pieces = _label_pattern(labels).split(cleaned)

    if len(pieces) == 1:
        LOGGER.info("Manual transcript has no role labels; falling back to line alternation")
        return _alternating_lines(cleaned)

    messages: List[ChatMessage] = []
    current: Optional[Role] = None
    buffer: List[str] = []

    def flush() -> None:
        content = normalize_text("".join(buffer))
        if current is not None and content:
            messages.append(ChatMessage(role=current, content=content))

    # re.split with a capturing group alternates text, label, text, label, ...
    for index, piece in enumerate(pieces):
        if index % 2 == 1:
            flush()
            current = Role.USER if piece in user_tokens else Role.ASSISTANT
            buffer = []
        else:
            buffer.append(piece)
    flush()

    LOGGER.debug("Parsed %s messages from manual transcript", len(messages))
    return messages


def manual_payload(text: str, title: Optional[str] = None, labels: TranscriptLabels = DEFAULT_LABELS) -> SharePayload:
    """Wrap :func:`parse_manual_transcript` into the shared payload shape."""

    return SharePayload(title=title or MANUAL_TITLE, messages=parse_manual_transcript(text, labels))
