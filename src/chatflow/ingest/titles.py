"""Short human-readable titles for flows."""
from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List, Optional

from chatflow.providers.base import TextGenerator

from .language import LanguageDetector

LOGGER = logging.getLogger(__name__)

DENSE_SCRIPT_BAND = "25-35"
DEFAULT_BAND = "15-20"
_QUOTES = "\"'`“”‘’"

TITLE_PROMPT = (
    "Generate a concise title ({band} characters, in the same language as the text) summarizing "
    "this user request. Match the sentence type: if it's a question, make it a question; if it's "
    "imperative, make it imperative; if it's declarative, make it declarative.\n\n"
    "User request:\n\"{text}\"\n\nReturn only the title, nothing else."
)


class FlowTitleGenerator:
    """Best-effort titles; any failure yields an empty string."""

    def __init__(
        self,
        generator: TextGenerator,
        *,
        language_detector: Optional[LanguageDetector] = None,
        timeout: float | None = 15.0,
        max_tokens: int = 50,
    ) -> None:
        self._generator = generator
        self._language_detector = language_detector or LanguageDetector()
        self._timeout = timeout
        self._max_tokens = max_tokens

    def length_band(self, text: str) -> str:
        return DENSE_SCRIPT_BAND if self._language_detector.is_dense_script(text) else DEFAULT_BAND

    def build_prompt(self, text: str) -> str:
        return TITLE_PROMPT.format(band=self.length_band(text), text=text)

    async def title_for(self, first_user_text: str) -> str:
        text = (first_user_text or "").strip()
        if not text:
            return ""
        try:
            call = self._generator.generate(self.build_prompt(text), max_tokens=self._max_tokens)
            raw = await asyncio.wait_for(call, timeout=self._timeout) if self._timeout else await call
        except asyncio.CancelledError:
            raise
        except Exception as error:
            LOGGER.warning("Title generation failed: %s", error)
            return ""
        if not isinstance(raw, str):
            return ""
        return raw.strip().strip(_QUOTES).strip()

    async def titles_for(self, texts: Iterable[str]) -> List[str]:
        return list(await asyncio.gather(*(self.title_for(text) for text in texts)))
