"""Classify pairs and group consecutive same-category pairs into flows."""
from __future__ import annotations

import asyncio
import inspect
import logging
import re
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from chatflow.telemetry import emit_classification_failure

from .models import Category, ChangeSegment, ClassifiedPair, Pair

LOGGER = logging.getLogger(__name__)

ClassifyFn = Callable[[str], Union[str, Category, Awaitable[Union[str, Category]]]]

_NUMBER_PREFIX_RE = re.compile(r"^\s*(?:category\s*)?\d+\s*[.):\-]\s*", re.IGNORECASE)
_QUOTES = "\"'`“”‘’«»"
_LOOKUP: Dict[str, Category] = {member.value.casefold(): member for member in Category}


def normalize_category(raw: object) -> Category:
    """Map raw classifier output onto the fixed taxonomy.

    Numbering (``3.``), surrounding quotes and a trailing period are removed
    before matching. Anything that still does not match falls back to the
    generic label.
    """

    if isinstance(raw, Category):
        return raw
    if not isinstance(raw, str):
        return Category.default()

    text = raw.strip().splitlines()[0] if raw.strip() else ""
    text = _NUMBER_PREFIX_RE.sub("", text)
    text = text.strip().strip(_QUOTES).strip()
    text = text.rstrip(".").strip().strip(_QUOTES).strip()
    text = re.sub(r"\s+", " ", text)
    return _LOOKUP.get(text.casefold(), Category.default())


def group_segments(classified: Sequence[ClassifiedPair]) -> List[ChangeSegment]:
    """Merge runs of consecutive equal categories, in the order given."""

    segments: List[ChangeSegment] = []
    current: Optional[ChangeSegment] = None

    for position, item in enumerate(classified):
        pair = item.pair
        if current is None or current.category is not item.category:
            current = ChangeSegment(category=item.category, start_pair=position, end_pair=position)
            segments.append(current)
        current.end_pair = position
        current.user_indices.append(pair.user_index)
        current.available_responses.extend(pair.assistant_texts)
        current.assistant_preview = pair.last_assistant_text
    return segments


@dataclass(slots=True)
class SegmentationResult:
    pairs: List[ClassifiedPair]
    segments: List[ChangeSegment]


class FlowSegmenter:
    """Classify every pair concurrently, then group them into flows.

    A failed or timed-out classification defaults that pair to the generic
    label without affecting its siblings.
    """

    def __init__(self, classify: ClassifyFn, *, concurrency: int = 8, timeout: float | None = 20.0) -> None:
        self._classify = classify
        self._concurrency = max(1, concurrency)
        self._timeout = timeout

    async def _call(self, text: str) -> Category:
        result = self._classify(text)
        if inspect.isawaitable(result):
            result = await result
        return normalize_category(result)

    async def _classify_one(self, semaphore: asyncio.Semaphore, text: str) -> Category:
        async with semaphore:
            if self._timeout:
                return await asyncio.wait_for(self._call(text), timeout=self._timeout)
            return await self._call(text)

    async def classify_pairs(self, pairs: Sequence[Pair]) -> List[ClassifiedPair]:
        semaphore = asyncio.Semaphore(self._concurrency)
        outcomes = await asyncio.gather(
            *(self._classify_one(semaphore, pair.user_text) for pair in pairs),
            return_exceptions=True,
        )

        classified: List[ClassifiedPair] = []
        for index, (pair, outcome) in enumerate(zip(pairs, outcomes)):
            if isinstance(outcome, Exception):
                emit_classification_failure(pair_index=index, error=outcome)
                category = Category.default()
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                category = outcome
            classified.append(ClassifiedPair(pair=pair, category=category, turn_number=index + 1))
        return classified

    async def segment(self, pairs: Sequence[Pair]) -> SegmentationResult:
        if not pairs:
            return SegmentationResult(pairs=[], segments=[])
        classified = await self.classify_pairs(pairs)
        segments = group_segments(classified)
        LOGGER.info("Grouped %s pairs into %s flows", len(classified), len(segments))
        return SegmentationResult(pairs=classified, segments=segments)
