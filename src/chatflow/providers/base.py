"""Base provider interfaces for the text classification and generation capabilities."""

from __future__ import annotations

from abc import ABC, abstractmethod

__all__ = ["TextClassifier", "TextGenerator"]


class TextClassifier(ABC):
    """Abstract interface for labelling a user request with a category."""

    @abstractmethod
    async def classify(self, text: str) -> str:
        """Return a raw category label for ``text`` (may need normalisation)."""


class TextGenerator(ABC):
    """Abstract interface for short free-text generation."""

    @abstractmethod
    async def generate(self, prompt: str, max_tokens: int = 50) -> str:
        """Generate text from the given prompt."""
