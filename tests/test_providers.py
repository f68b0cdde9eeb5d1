"""Tests for the text capability providers."""
from __future__ import annotations

import asyncio
from abc import ABC
from types import SimpleNamespace
from typing import Any, List

import pytest

from chatflow.config import Settings
from chatflow.errors import ClassificationError
from chatflow.ingest.models import Category
from chatflow.ingest.segmentation import normalize_category
from chatflow.providers import MockTextProvider, OpenAIChatProvider, build_text_provider
from chatflow.providers.base import TextClassifier, TextGenerator
from chatflow.providers.openai_provider import build_classification_prompt


def test_provider_interfaces_are_abstract() -> None:
    assert issubclass(TextClassifier, ABC)
    assert issubclass(TextGenerator, ABC)


def test_mock_classifier_is_deterministic_and_in_taxonomy() -> None:
    provider = MockTextProvider()

    first = asyncio.run(provider.classify("Can you fix this Python script error?"))
    second = asyncio.run(provider.classify("Can you fix this Python script error?"))

    assert first == second == Category.AUTOMATION.value
    assert asyncio.run(provider.classify("hmm")) == Category.INFORMATION_SEEKING.value


def test_mock_generator_titles_quoted_request() -> None:
    provider = MockTextProvider()

    title = asyncio.run(provider.generate('Title this:\n"Plan a trip to the coast next month please"', max_tokens=50))

    assert title == "Plan a trip to the coast"
    assert provider.prompts


def test_classification_prompt_lists_every_category() -> None:
    prompt = build_classification_prompt("hello")

    for index, category in enumerate(Category, start=1):
        assert f"{index}. {category.value}" in prompt


class _FakeCompletions:
    def __init__(self, content: str | None, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: List[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _client(completions: _FakeCompletions) -> Any:
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def test_openai_provider_classifies_with_low_temperature() -> None:
    completions = _FakeCompletions('3. "Idea Refinement / Elaboration"')
    provider = OpenAIChatProvider(client=_client(completions), model="gpt-4o-mini")

    raw = asyncio.run(provider.classify("make this paragraph better"))

    assert normalize_category(raw) is Category.IDEA_REFINEMENT
    assert completions.calls[0]["temperature"] == 0.1
    assert completions.calls[0]["model"] == "gpt-4o-mini"


def test_openai_provider_generates_titles() -> None:
    completions = _FakeCompletions("  Weekend hiking plan ")
    provider = OpenAIChatProvider(client=_client(completions))

    assert asyncio.run(provider.generate("prompt", max_tokens=50)) == "Weekend hiking plan"
    assert completions.calls[0]["max_tokens"] == 50
    assert completions.calls[0]["temperature"] == 0.3


def test_openai_errors_are_wrapped() -> None:
    from openai import OpenAIError

    provider = OpenAIChatProvider(client=_client(_FakeCompletions(None, error=OpenAIError("rate limited"))))

    with pytest.raises(ClassificationError):
        asyncio.run(provider.classify("hello"))


def test_openai_provider_requires_credentials() -> None:
    with pytest.raises(ValueError):
        OpenAIChatProvider(api_key=None)


def test_build_text_provider_defaults_to_mock() -> None:
    assert isinstance(build_text_provider(Settings(llm_provider="mock")), MockTextProvider)
    assert isinstance(build_text_provider(Settings(llm_provider="unknown")), MockTextProvider)
    provider = build_text_provider(Settings(llm_provider="openai", openai_api_key="sk-test"))
    assert isinstance(provider, OpenAIChatProvider)
