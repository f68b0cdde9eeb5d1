"""Exception taxonomy for the conversation ingestion pipeline."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence


class ChatflowError(RuntimeError):
    """Base class for every error raised by the service."""


class InvalidInputError(ChatflowError):
    """Raised when a request is rejected before any network activity."""


class RenderError(ChatflowError):
    """Raised when a render backend fails to return HTML for a URL."""

    def __init__(self, backend: str, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(f"{backend}: {message}")
        self.backend = backend
        self.reason = message
        self.__cause__ = cause


class BackendNotConfiguredError(RenderError):
    """Raised when a backend lacks the configuration it needs (e.g. a token)."""


class ExtractionInconclusiveError(ChatflowError):
    """Raised when HTML was obtained but no extraction strategy found messages."""

    def __init__(self, backend: str) -> None:
        super().__init__(f"{backend}: no conversation messages found in page")
        self.backend = backend


@dataclass(slots=True, frozen=True)
class AttemptFailure:
    """One failed step of the fetch cascade."""

    backend: str
    reason: str

    def describe(self) -> str:
        return f"{self.backend}: {self.reason}"


class NeedsManualInput(ChatflowError):
    """Raised when every backend and extraction strategy has been exhausted."""

    def __init__(self, reasons: Sequence[AttemptFailure], *, title: str | None = None) -> None:
        summary = "; ".join(item.describe() for item in reasons) or "no render backends configured"
        super().__init__(f"Could not extract the shared conversation ({summary})")
        self.reasons = list(reasons)
        self.title = title


class ClassificationError(ChatflowError):
    """Raised by a classifier when it cannot label a user request."""


class TitleGenerationError(ChatflowError):
    """Raised by a text generator when a flow title cannot be produced."""
