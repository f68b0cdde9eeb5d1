"""Text classification and generation providers."""
from __future__ import annotations

import logging
from typing import Union

from chatflow.config import Settings

from .base import TextClassifier, TextGenerator
from .mock import MockTextProvider
from .openai_provider import OpenAIChatProvider

LOGGER = logging.getLogger(__name__)

TextProvider = Union[MockTextProvider, OpenAIChatProvider]

__all__ = [
    "MockTextProvider",
    "OpenAIChatProvider",
    "TextClassifier",
    "TextGenerator",
    "TextProvider",
    "build_text_provider",
]


def build_text_provider(settings: Settings) -> TextProvider:
    """Return the provider selected by ``LLM_PROVIDER``."""

    if settings.llm_provider == "openai":
        LOGGER.info("Using OpenAI provider with model %s", settings.openai_model)
        return OpenAIChatProvider(api_key=settings.openai_api_key, model=settings.openai_model)
    if settings.llm_provider != "mock":
        LOGGER.warning("Unknown LLM_PROVIDER %r; falling back to the mock provider", settings.llm_provider)
    return MockTextProvider()
