"""Turn a flat message list into user/assistant pairs."""
from __future__ import annotations

from typing import Iterable, List, Optional

from .models import ChatMessage, Pair, Role


def to_pairs(messages: Iterable[ChatMessage]) -> List[Pair]:
    """Group each user message with the assistant replies that follow it.

    Assistant messages that precede the first user message cannot be
    attributed to a request and are dropped. System messages and blank user
    messages are ignored.
    """

    pairs: List[Pair] = []
    current: Optional[Pair] = None

    for index, message in enumerate(messages):
        if message.role is Role.USER:
            if not message.content.strip():
                continue
            if current is not None:
                pairs.append(current)
            current = Pair(user_index=index, user_text=message.content)
        elif message.role is Role.ASSISTANT and current is not None:
            current.assistant_texts.append(message.content)

    if current is not None:
        pairs.append(current)
    return pairs


def flatten_pairs(pairs: Iterable[Pair]) -> List[ChatMessage]:
    """Rebuild the flat message list represented by ``pairs``."""

    messages: List[ChatMessage] = []
    for pair in pairs:
        messages.append(ChatMessage(role=Role.USER, content=pair.user_text))
        messages.extend(ChatMessage(role=Role.ASSISTANT, content=text) for text in pair.assistant_texts)
    return messages
