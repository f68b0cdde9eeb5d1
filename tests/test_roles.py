"""Tests for role parsing and the wording-based role heuristics."""
from __future__ import annotations

import pytest

from chatflow.ingest.models import Role
from chatflow.ingest.roles import alternate_roles, guess_role, parse_role


@pytest.mark.parametrize(
    ("value", "expected"),
    [("user", Role.USER), (" Assistant ", Role.ASSISTANT), ("human", Role.USER), ("system", Role.SYSTEM), ("tool", None), (3, None)],
)
def test_parse_role(value: object, expected: Role | None) -> None:
    assert parse_role(value) is expected


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Can you summarise this article for me", Role.USER),
        ("이 문서를 분석해줘", Role.USER),
        ("Sure, here is a summary of the article.", Role.ASSISTANT),
        ("알겠습니다. 요약해 드릴게요.", Role.ASSISTANT),
        ("The weather in Seoul tomorrow?", Role.USER),
        ("어떻게 설치하나요", Role.USER),
        ("Short note", Role.USER),
        ("The report covers quarterly revenue, churn and hiring plans in considerable detail across every region we serve today.", Role.ASSISTANT),
    ],
)
def test_guess_role(text: str, expected: Role) -> None:
    assert guess_role(text) is expected


def test_alternate_roles_starts_with_the_given_role() -> None:
    assert alternate_roles(3) == [Role.USER, Role.ASSISTANT, Role.USER]
    assert alternate_roles(2, first=Role.ASSISTANT) == [Role.ASSISTANT, Role.USER]
    assert alternate_roles(0) == []


LONG_TAIL = " the answer depends on how the data was collected, which sources were trusted and what the original question asked for."


@pytest.mark.parametrize("opener", ["However,", "Whatever,", "History,", "Helpful,", "Whenever", "Surely"])
def test_openers_only_match_whole_words(opener: str) -> None:
    text = opener + LONG_TAIL

    assert len(text) > 100
    assert guess_role(text) is Role.ASSISTANT


def test_whole_word_openers_still_mark_requests() -> None:
    assert guess_role("How" + LONG_TAIL) is Role.USER
    assert guess_role("Hi," + LONG_TAIL) is Role.USER
