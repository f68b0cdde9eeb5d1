"""Best-effort role detection for text without explicit author metadata.

Explicit role attributes always win over anything in this module; the
heuristics here only run when a page gives no other hint.
"""
from __future__ import annotations

import re
from typing import Optional, Sequence

from .models import Role

_USER_OPENERS_RE = re.compile(
    r"^(?:(?:hi|hello|hey|help|can you|could you|please|what|how|why|when|where|who)\b|"
    r"안녕|질문|문의|도움|요청|알아|알고|궁금|하고|싶어|해줘|해주|도와|설명|분석|제시|분류|추출)",
    re.IGNORECASE,
)
_ASSISTANT_OPENERS_RE = re.compile(
    r"^(?:(?:i'm|i am|i can|i will|i would|i should|i think|i believe|here's|here is|let me|i'll|sure|certainly)\b|"
    r"네|예|좋습니다|알겠습니다|도와드리겠습니다|제안해드리겠습니다|분석해보겠습니다|설명드리겠습니다)",
    re.IGNORECASE,
)
_KOREAN_INTERROGATIVES_RE = re.compile(r"^(무엇|어떤|어떻게|왜|언제|어디서|누가|어느|몇|얼마나)")
SHORT_TEXT_THRESHOLD = 100

_ROLE_ALIASES = {
    "user": Role.USER,
    "human": Role.USER,
    "assistant": Role.ASSISTANT,
    "ai": Role.ASSISTANT,
    "model": Role.ASSISTANT,
    "gpt": Role.ASSISTANT,
    "chatgpt": Role.ASSISTANT,
    "system": Role.SYSTEM,
}


def parse_role(value: object) -> Optional[Role]:
    """Map an explicit role marker (attribute or JSON field) onto :class:`Role`."""

    if not isinstance(value, str):
        return None
    return _ROLE_ALIASES.get(value.strip().lower())


def guess_role(text: str) -> Role:
    """Guess who wrote ``text`` from its wording alone."""

    stripped = text.strip()
    if _USER_OPENERS_RE.match(stripped):
        return Role.USER
    if _ASSISTANT_OPENERS_RE.match(stripped):
        return Role.ASSISTANT
    if "?" in stripped or _KOREAN_INTERROGATIVES_RE.match(stripped):
        return Role.USER
    return Role.USER if len(stripped) < SHORT_TEXT_THRESHOLD else Role.ASSISTANT


def alternate_roles(count: int, first: Role = Role.USER) -> Sequence[Role]:
    """Positional alternation, the last resort when nothing else distinguishes turns."""

    second = Role.ASSISTANT if first is Role.USER else Role.USER
    return [first if index % 2 == 0 else second for index in range(count)]
