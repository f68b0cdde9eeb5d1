"""Data models used by the conversation ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

DEFAULT_TITLE = "Shared Chat"


class Role(str, Enum):
    """Author of a single conversation message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Category(str, Enum):
    """Fixed taxonomy describing the purpose of a user request.

    The first member is the generic label used whenever classification fails
    or returns something outside the taxonomy.
    """

    INFORMATION_SEEKING = "Information Seeking & Summarization"
    IDEA_GENERATION = "Idea Generation / Brainstorming"
    IDEA_REFINEMENT = "Idea Refinement / Elaboration"
    DATA_ANALYSIS = "Data & Content Analysis"
    LEARNING = "Learning & Conceptual Understanding"
    WRITING = "Writing & Communication Assistance"
    PROBLEM_SOLVING = "Problem Solving & Decision Support"
    AUTOMATION = "Automation & Technical Support"
    ACCURACY_VERIFICATION = "Accuracy Verification & Source Checking"

    @classmethod
    def default(cls) -> "Category":
        return cls.INFORMATION_SEEKING


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """A single message; its position in a list defines conversation order."""

    role: Role
    content: str


@dataclass(slots=True)
class SharePayload:
    """Normalised result of every extraction path, automated or manual."""

    title: str = DEFAULT_TITLE
    messages: List[ChatMessage] = field(default_factory=list)

    @property
    def is_manual_sentinel(self) -> bool:
        """True when the payload is the single system message meaning "inconclusive"."""

        return len(self.messages) == 1 and self.messages[0].role is Role.SYSTEM

    @property
    def has_messages(self) -> bool:
        return bool(self.messages) and not self.is_manual_sentinel


@dataclass(slots=True)
class Pair:
    """One user request plus the assistant replies that follow it."""

    user_index: int
    user_text: str
    assistant_texts: List[str] = field(default_factory=list)

    @property
    def last_assistant_text(self) -> str:
        return self.assistant_texts[-1] if self.assistant_texts else ""


@dataclass(slots=True)
class ClassifiedPair:
    """A pair together with the category assigned to its user request."""

    pair: Pair
    category: Category
    turn_number: int


@dataclass(slots=True)
class ChangeSegment:
    """A maximal run of consecutive pairs sharing one category (a "flow")."""

    category: Category
    start_pair: int
    end_pair: int
    user_indices: List[int] = field(default_factory=list)
    assistant_preview: str = ""
    available_responses: List[str] = field(default_factory=list)
    title: Optional[str] = None

    @property
    def pair_count(self) -> int:
        return self.end_pair - self.start_pair + 1
