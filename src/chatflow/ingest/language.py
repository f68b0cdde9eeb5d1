"""Language and script detection helpers."""
from __future__ import annotations

import logging
import re
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect

LOGGER = logging.getLogger(__name__)
DetectorFactory.seed = 0

_HANGUL_RE = re.compile(r"[\u1100-\u11ff\u3130-\u318f\uac00-\ud7a3]")
_CJK_LANGUAGES = frozenset({"ko", "ja", "zh-cn", "zh-tw"})


def contains_hangul(text: str) -> bool:
    return bool(_HANGUL_RE.search(text))


class LanguageDetector:
    """Wraps langdetect providing a robust API."""

    def detect(self, text: str) -> Optional[str]:
        cleaned = text.strip()
        if not cleaned:
            return None
        try:
            language = detect(cleaned)
            LOGGER.debug("Detected language: %s", language)
            return language
        except LangDetectException:
            LOGGER.info("Unable to determine language for text of length %s", len(text))
            return None

    def is_dense_script(self, text: str) -> bool:
        """True for Korean/Japanese/Chinese text, where titles need more characters."""

        if contains_hangul(text):
            return True
        return self.detect(text) in _CJK_LANGUAGES
