"""OpenAI chat-completions implementation of the text capabilities."""

from __future__ import annotations

import logging
from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from chatflow.errors import ClassificationError, TitleGenerationError
from chatflow.ingest.models import Category

from .base import TextClassifier, TextGenerator

LOGGER = logging.getLogger(__name__)

CLASSIFY_TEMPERATURE = 0.1
TITLE_TEMPERATURE = 0.3
CLASSIFY_MAX_TOKENS = 20


def build_classification_prompt(text: str) -> str:
    labels = "\n".join(f"{index}. {category.value}" for index, category in enumerate(Category, start=1))
    return (
        "Classify the purpose of the following user request into exactly one of these categories:\n"
        f"{labels}\n\n"
        f"User request:\n\"{text}\"\n\n"
        "Answer with the category name only, without numbering or explanation."
    )


class OpenAIChatProvider(TextClassifier, TextGenerator):
    """Classify requests and write titles with a chat model."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        model: str = "gpt-4o-mini",
        client: Optional[AsyncOpenAI] = None,
    ) -> None:
        if client is None and not api_key:
            raise ValueError("OpenAI API key is required. Set OPENAI_API_KEY or use LLM_PROVIDER=mock.")
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key)

    async def _complete(self, prompt: str, *, max_tokens: int, temperature: float) -> str:
        response = await self._client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=max_tokens,
            temperature=temperature,
        )
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()

    async def classify(self, text: str) -> str:
        try:
            return await self._complete(
                build_classification_prompt(text),
                max_tokens=CLASSIFY_MAX_TOKENS,
                temperature=CLASSIFY_TEMPERATURE,
            )
        except OpenAIError as error:
            raise ClassificationError(f"Classification request failed: {error}") from error

    async def generate(self, prompt: str, max_tokens: int = 50) -> str:
        try:
            return await self._complete(prompt, max_tokens=max_tokens, temperature=TITLE_TEMPERATURE)
        except OpenAIError as error:
            raise TitleGenerationError(f"Title request failed: {error}") from error
