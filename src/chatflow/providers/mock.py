"""Mock implementations of provider interfaces for testing."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List, Tuple

from chatflow.ingest.models import Category

from .base import TextClassifier, TextGenerator

_KEYWORD_RULES: Tuple[Tuple[Category, Tuple[str, ...]], ...] = (
    (Category.ACCURACY_VERIFICATION, ("verify", "fact-check", "source", "확인", "검증", "출처")),
    (Category.AUTOMATION, ("code", "script", "python", "error", "bug", "install", "코드", "에러", "오류")),
    (Category.DATA_ANALYSIS, ("analyze", "analyse", "data", "table", "chart", "분석", "데이터")),
    (Category.WRITING, ("write", "draft", "email", "translate", "proofread", "작성", "번역", "교정")),
    (Category.IDEA_GENERATION, ("idea", "brainstorm", "suggest", "아이디어", "브레인스토밍")),
    (Category.IDEA_REFINEMENT, ("refine", "improve", "elaborate", "expand", "다듬", "구체화", "발전")),
    (Category.LEARNING, ("explain", "teach", "understand", "concept", "설명", "개념", "이해")),
    (Category.PROBLEM_SOLVING, ("decide", "choose", "should i", "compare", "solve", "결정", "비교", "해결")),
)
_WORD_RE = re.compile(r"\w+", re.UNICODE)


@dataclass
class MockTextProvider(TextClassifier, TextGenerator):
    """Deterministic classifier and title generator used offline and in tests."""

    prompts: List[str] = field(default_factory=list)

    async def classify(self, text: str) -> str:
        lowered = text.lower()
        for category, keywords in _KEYWORD_RULES:
            if any(keyword in lowered for keyword in keywords):
                return category.value
        return Category.default().value

    async def generate(self, prompt: str, max_tokens: int = 50) -> str:
        """Return the first few words of the quoted request as a title."""

        self.prompts.append(prompt)
        match = re.search(r'"(.*?)"', prompt, re.DOTALL)
        source = match.group(1) if match else prompt
        words = _WORD_RE.findall(source)[: max(1, min(max_tokens, 6))]
        return " ".join(words)
