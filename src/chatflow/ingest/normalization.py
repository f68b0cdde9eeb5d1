"""Text normalisation utilities."""
from __future__ import annotations

import re
import unicodedata

_WHITESPACE_RE = re.compile(r"[ \t\u00a0\u200b]+")
_MULTIPLE_NEWLINES_RE = re.compile(r"\n{3,}")
_TRAILING_SPACE_RE = re.compile(r"[ \t]+\n")
_LEADING_SPACE_RE = re.compile(r"\n[ \t]+")


def normalize_text(text: str) -> str:
    """Normalise whitespace and Unicode representation."""

    normalized = unicodedata.normalize("NFC", text)
    normalized = normalized.replace("\r\n", "\n").replace("\r", "\n")
    normalized = _WHITESPACE_RE.sub(" ", normalized)
    normalized = _TRAILING_SPACE_RE.sub("\n", normalized)
    normalized = _LEADING_SPACE_RE.sub("\n", normalized)
    normalized = _MULTIPLE_NEWLINES_RE.sub("\n\n", normalized)
    return normalized.strip()


def coerce_text(value: object) -> str:
    """Turn a raw JSON content value into trimmed text.

    Strings pass through, ``{"parts": [...]}`` objects and lists are joined
    with blank lines, anything else becomes an empty string.
    """

    if value is None:
        return ""
    if isinstance(value, str):
        return normalize_text(value)
    if isinstance(value, dict):
        for key in ("parts", "text", "content"):
            if key in value:
                return coerce_text(value[key])
        return ""
    if isinstance(value, (list, tuple)):
        parts = [coerce_text(item) for item in value]
        return "\n\n".join(part for part in parts if part)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""
