"""Tests for recovering conversations from share-page HTML."""
from __future__ import annotations

import json

from bs4 import BeautifulSoup

from chatflow.ingest.extractors import (
    ConversationExtractor,
    DomAttributeStrategy,
    EmbeddedDataStrategy,
    GenericPatternStrategy,
    dedupe_messages,
)
from chatflow.ingest.models import DEFAULT_TITLE, ChatMessage, Role


def _next_data_page(data: dict, title: str = "Ignored | ChatGPT") -> str:
    return (
        f"<html><head><title>{title}</title>"
        f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script>'
        "</head><body><main></main></body></html>"
    )


def test_embedded_linear_conversation_is_read() -> None:
    data = {
        "props": {
            "pageProps": {
                "serverResponse": {
                    "data": {
                        "title": "Trip planning",
                        "linear_conversation": [
                            {"id": "root"},
                            {"message": {"author": {"role": "system"}, "content": {"parts": ["hidden"]}}},
                            {"message": {"author": {"role": "user"}, "content": {"parts": ["Plan a trip to Seoul"]}}},
                            {
                                "message": {
                                    "author": {"role": "assistant"},
                                    "content": {"parts": ["Day 1: Gyeongbokgung", "Day 2: Bukchon"]},
                                }
                            },
                            {"message": {"author": {"role": "tool"}, "content": {"parts": ["search results"]}}},
                        ],
                    }
                }
            }
        }
    }

    result = ConversationExtractor().extract_with_details(_next_data_page(data))

    assert result.strategy == EmbeddedDataStrategy.name
    assert result.payload.title == "Trip planning"
    assert result.payload.messages == [
        ChatMessage(role=Role.USER, content="Plan a trip to Seoul"),
        ChatMessage(role=Role.ASSISTANT, content="Day 1: Gyeongbokgung\n\nDay 2: Bukchon"),
    ]


def test_embedded_key_paths_are_tried_in_order() -> None:
    data = {
        "props": {
            "pageProps": {
                "messages": [
                    {"role": "user", "text": "First question here"},
                    {"author_role": "assistant", "content": "First answer here"},
                    {"role": "mystery", "content": "Unknown roles default to assistant"},
                ]
            }
        }
    }

    payload = ConversationExtractor().extract(_next_data_page(data, title="Travel tips | ChatGPT"))

    assert [m.role for m in payload.messages] == [Role.USER, Role.ASSISTANT, Role.ASSISTANT]
    assert payload.title == "Travel tips"


def test_malformed_embedded_json_falls_through_to_dom() -> None:
    html = (
        '<script id="__NEXT_DATA__">{not json</script>'
        '<div data-message-author-role="user">What is the capital of France?</div>'
        '<div data-message-author-role="assistant">The capital of France is Paris.</div>'
    )

    result = ConversationExtractor().extract_with_details(html)

    assert result.strategy == DomAttributeStrategy.name
    assert [m.role for m in result.payload.messages] == [Role.USER, Role.ASSISTANT]


def test_same_turn_rendered_twice_is_kept_once_at_first_position() -> None:
    html = """
    <main>
      <div data-message-author-role="user" class="message">How do plants make food from sunlight?</div>
      <div data-message-author-role="assistant"><div class="markdown">Plants use photosynthesis to turn light into sugar.</div></div>
      <div data-message-author-role="user" class="message sticky-copy">How do plants make food from sunlight?</div>
      <div data-message-author-role="user">Does that happen at night too?</div>
    </main>
    """

    payload = ConversationExtractor().extract(html)

    assert [m.content for m in payload.messages] == [
        "How do plants make food from sunlight?",
        "Plants use photosynthesis to turn light into sugar.",
        "Does that happen at night too?",
    ]


def test_role_attribute_on_ancestor_is_used() -> None:
    html = """
    <article data-message-author-role="user"><div class="message">Please summarise this article for me</div></article>
    <article data-message-author-role="assistant"><div class="message">Here is a short summary of the article.</div></article>
    """

    messages = DomAttributeStrategy([".message"]).extract(BeautifulSoup(html, "html.parser")).messages

    assert [m.role for m in messages] == [Role.USER, Role.ASSISTANT]


def test_boilerplate_and_tiny_fragments_are_filtered() -> None:
    html = """
    <div class="conversation-turn">Log in to continue this conversation</div>
    <div class="conversation-turn">Copy</div>
    <div class="conversation-turn">How do I bake bread at home?</div>
    <div class="conversation-turn">Sure, here's a simple recipe: mix flour, water, yeast and salt, then knead and bake.</div>
    """

    payload = ConversationExtractor().extract(html)

    assert [m.role for m in payload.messages] == [Role.USER, Role.ASSISTANT]
    assert payload.messages[0].content == "How do I bake bread at home?"


def test_alternation_only_when_heuristics_are_degenerate() -> None:
    html = """
    <div class="conversation-turn">Tell me a joke please</div>
    <div class="conversation-turn">Another short reply</div>
    <div class="conversation-turn">Make it funnier now</div>
    """

    payload = ConversationExtractor().extract(html)

    assert [m.role for m in payload.messages] == [Role.USER, Role.ASSISTANT, Role.USER]


def test_inline_script_json_with_messages() -> None:
    html = """
    <html><body>
    <script>window.__STATE = {"conversation": {"id": 7}, "payload": {"title": "Inline chat",
      "messages": [{"role": "user", "content": "Q text"}, {"role": "assistant", "content": "A text"}]}};</script>
    </body></html>
    """

    result = ConversationExtractor().extract_with_details(html)

    assert result.strategy == GenericPatternStrategy.name
    assert result.payload.title == "Inline chat"
    assert [(m.role, m.content) for m in result.payload.messages] == [
        (Role.USER, "Q text"),
        (Role.ASSISTANT, "A text"),
    ]


def test_loose_transcript_markers_in_page_text() -> None:
    html = "<html><body><main><p>You said:</p><p>What is 2+2?</p><p>ChatGPT said:</p><p>4</p></main></body></html>"

    payload = ConversationExtractor().extract(html)

    assert [(m.role, m.content) for m in payload.messages] == [(Role.USER, "What is 2+2?"), (Role.ASSISTANT, "4")]


def test_title_fallbacks() -> None:
    extractor = ConversationExtractor()
    turns = '<div data-message-author-role="user">Hello there, how are you?</div>'

    assert extractor.extract(f"<title>Recipes - ChatGPT</title>{turns}").title == "Recipes"
    assert extractor.extract(f"<title>ChatGPT</title><h1>Heading title</h1>{turns}").title == "Heading title"
    assert extractor.extract(turns).title == DEFAULT_TITLE


def test_message_cap_is_applied() -> None:
    turns = "".join(
        f'<div data-message-author-role="{"user" if i % 2 == 0 else "assistant"}">Message number {i}</div>'
        for i in range(10)
    )

    payload = ConversationExtractor(max_messages=4).extract(turns)

    assert len(payload.messages) == 4
    assert payload.messages[-1].content == "Message number 3"


def test_page_without_conversation_yields_empty_payload() -> None:
    payload = ConversationExtractor().extract("<html><head><title>Oops</title></head><body>Nothing</body></html>")

    assert payload.messages == []
    assert not payload.has_messages
    assert payload.title == "Oops"


def test_dedupe_compares_trimmed_content() -> None:
    messages = [
        ChatMessage(role=Role.USER, content=" same "),
        ChatMessage(role=Role.ASSISTANT, content="same"),
        ChatMessage(role=Role.ASSISTANT, content="other"),
    ]

    assert dedupe_messages(messages) == [
        ChatMessage(role=Role.USER, content="same"),
        ChatMessage(role=Role.ASSISTANT, content="other"),
    ]
