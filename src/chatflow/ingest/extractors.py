"""Recover a structured conversation from rendered share-page HTML.

Strategies run in a fixed priority order and the first one that yields at
least one message wins:

1. :class:`EmbeddedDataStrategy` reads the ``__NEXT_DATA__`` JSON payload.
2. :class:`DomAttributeStrategy` walks ranked CSS selectors for message turns.
3. :class:`GenericPatternStrategy` scans inline scripts and loose page text.

Whatever strategy succeeds, messages are deduplicated by exact trimmed
content before being returned.
"""
from __future__ import annotations

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Sequence, Tuple

from bs4 import BeautifulSoup, Tag

from .manual import parse_manual_transcript
from .models import DEFAULT_TITLE, ChatMessage, Role, SharePayload
from .normalization import coerce_text, normalize_text
from .roles import alternate_roles, guess_role, parse_role

LOGGER = logging.getLogger(__name__)

KeyPath = Tuple[str, ...]

# Shapes the share page has shipped over time, newest first.
MESSAGE_KEY_PATHS: Tuple[KeyPath, ...] = (
    ("props", "pageProps", "serverResponse", "data", "linear_conversation"),
    ("props", "pageProps", "serverResponse", "messages"),
    ("props", "pageProps", "messages"),
    ("props", "messages"),
    ("messages",),
)
TITLE_KEY_PATHS: Tuple[KeyPath, ...] = (
    ("props", "pageProps", "serverResponse", "data", "title"),
    ("props", "pageProps", "meta", "title"),
    ("props", "pageProps", "title"),
    ("title",),
)

MESSAGE_SELECTORS: Tuple[str, ...] = (
    "[data-message-author-role]",
    '[data-testid*="conversation-turn"]',
    '[data-testid*="message"]',
    "[data-message-id]",
    '[class~="group/conversation-turn"]',
    ".conversation-turn",
    ".message",
    '[class*="message"]',
    '[class*="turn"]',
)
SKIPPED_ROLES = frozenset({"system", "tool"})
ROLE_ATTRIBUTES: Tuple[str, ...] = ("data-message-author-role", "data-author-role", "data-role")

BOILERPLATE_SUBSTRINGS: Tuple[str, ...] = (
    "continue this conversation",
    "log in",
    "sign up",
    "copy link",
    "share link",
    "regenerate",
    "skip to content",
    "by messaging chatgpt",
    "terms of use",
    "privacy policy",
    "report conversation",
    "try again",
    "window.__oai",
    "requestanimationframe",
    "__oai_loghtml",
    "__oai_ssr_html",
    "__oai_logtti",
    "__oai_ssr_tti",
)
MIN_UNLABELLED_CHARS = 10
MAX_ELEMENT_CHARS = 5000

TRANSCRIPT_MARKERS: Tuple[str, ...] = ("You said:", "ChatGPT said:", "나의 말:", "ChatGPT의 말:")
_SCRIPT_KEYWORDS_RE = re.compile(r"conversation", re.IGNORECASE)
_MESSAGES_KEY_RE = re.compile(r'"messages"\s*:\s*\[')
_MAX_JSON_CANDIDATES = 50
_TITLE_SUFFIX_RE = re.compile(r"\s*[|\-–—]\s*ChatGPT\s*$", re.IGNORECASE)


@dataclass(slots=True)
class StrategyResult:
    """Messages found by one strategy plus what it learned about the title."""

    messages: List[ChatMessage] = field(default_factory=list)
    title: Optional[str] = None
    explicit_roles: bool = True


class ExtractionStrategy(ABC):
    """A single way of recovering messages from a parsed page."""

    name: str = "strategy"

    @abstractmethod
    def extract(self, soup: BeautifulSoup) -> StrategyResult:
        """Return the messages this strategy can find (possibly none)."""


def resolve_path(data: Any, path: KeyPath) -> Any:
    current = data
    for key in path:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def first_list(data: Any, paths: Iterable[KeyPath]) -> Optional[list]:
    """Return the first candidate path that resolves to a list."""

    for path in paths:
        value = resolve_path(data, path)
        if isinstance(value, list):
            LOGGER.debug("Messages found under %s", ".".join(path))
            return value
    return None


def first_string(data: Any, paths: Iterable[KeyPath]) -> Optional[str]:
    for path in paths:
        value = resolve_path(data, path)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def message_from_item(item: Any) -> Optional[ChatMessage]:
    """Normalise one raw JSON message object; ``None`` when it carries no text."""

    if not isinstance(item, dict):
        return None
    message = item.get("message") if isinstance(item.get("message"), dict) else item

    author = message.get("author")
    raw_role = message.get("role") or message.get("author_role")
    if raw_role is None and isinstance(author, dict):
        raw_role = author.get("role")
    role = parse_role(raw_role)
    if role is Role.SYSTEM or (isinstance(raw_role, str) and raw_role.strip().lower() in SKIPPED_ROLES):
        return None
    if role is None:
        role = Role.ASSISTANT

    content = ""
    for key in ("content", "text", "message"):
        value = message.get(key)
        if value is None or (key == "message" and isinstance(value, dict)):
            continue
        content = coerce_text(value)
        if content:
            break
    if not content:
        return None
    return ChatMessage(role=role, content=content)


def messages_from_items(items: Iterable[Any]) -> List[ChatMessage]:
    messages: List[ChatMessage] = []
    for item in items:
        message = message_from_item(item)
        if message is not None:
            messages.append(message)
    return messages


class EmbeddedDataStrategy(ExtractionStrategy):
    """Read messages from the JSON blob embedded by the page framework."""

    name = "embedded-data"
    script_id = "__NEXT_DATA__"

    def extract(self, soup: BeautifulSoup) -> StrategyResult:
        script = soup.find("script", id=self.script_id)
        if script is None:
            LOGGER.debug("No %s script tag found", self.script_id)
            return StrategyResult()
        try:
            data = json.loads(script.string or script.get_text() or "")
        except json.JSONDecodeError as error:
            LOGGER.info("Failed to parse %s payload: %s", self.script_id, error)
            return StrategyResult()

        items = first_list(data, MESSAGE_KEY_PATHS) or []
        return StrategyResult(messages=messages_from_items(items), title=first_string(data, TITLE_KEY_PATHS))


def is_boilerplate(text: str) -> bool:
    lowered = text.lower()
    return any(fragment in lowered for fragment in BOILERPLATE_SUBSTRINGS)


def explicit_role(element: Tag) -> Optional[Role]:
    """Role from the element's own attributes, a descendant, or the nearest ancestor."""

    for attribute in ROLE_ATTRIBUTES:
        role = parse_role(element.get(attribute))
        if role is not None:
            return role
    for attribute in ROLE_ATTRIBUTES:
        child = element.find(attrs={attribute: True})
        if child is not None and parse_role(child.get(attribute)) is not None:
            return parse_role(child.get(attribute))
        parent = element.find_parent(attrs={attribute: True})
        if parent is not None and parse_role(parent.get(attribute)) is not None:
            return parse_role(parent.get(attribute))
    return None


class DomAttributeStrategy(ExtractionStrategy):
    """Match rendered conversation turns with ranked CSS selectors."""

    name = "dom-attribute"

    def __init__(self, selectors: Sequence[str] = MESSAGE_SELECTORS) -> None:
        self.selectors = tuple(selectors)

    def extract(self, soup: BeautifulSoup) -> StrategyResult:
        for selector in self.selectors:
            result = self._extract_with(soup, selector)
            if result.messages:
                LOGGER.debug("Selector %s produced %s messages", selector, len(result.messages))
                return result
        return StrategyResult()

    def _extract_with(self, soup: BeautifulSoup, selector: str) -> StrategyResult:
        messages: List[ChatMessage] = []
        any_explicit = False
        for element in soup.select(selector):
            text = normalize_text(element.get_text(" ", strip=True))
            if not text or len(text) >= MAX_ELEMENT_CHARS or is_boilerplate(text):
                continue
            role = explicit_role(element)
            if role is Role.SYSTEM:
                continue
            if role is None:
                if len(text) <= MIN_UNLABELLED_CHARS:
                    continue
                role = guess_role(text)
            else:
                any_explicit = True
            messages.append(ChatMessage(role=role, content=text))
        return StrategyResult(messages=messages, explicit_roles=any_explicit)


def find_json_with_messages(text: str) -> Optional[dict]:
    """Locate an inline JSON object whose top level carries a ``messages`` list."""

    decoder = json.JSONDecoder()
    for match in _MESSAGES_KEY_RE.finditer(text):
        tried = 0
        start = text.rfind("{", 0, match.start())
        while start != -1 and tried < _MAX_JSON_CANDIDATES:
            tried += 1
            try:
                value, _ = decoder.raw_decode(text, start)
            except json.JSONDecodeError:
                value = None
            if isinstance(value, dict) and isinstance(value.get("messages"), list):
                return value
            start = text.rfind("{", 0, start)
    return None


class GenericPatternStrategy(ExtractionStrategy):
    """Last resort: inline script JSON, then labelled loose page text."""

    name = "generic-pattern"

    def extract(self, soup: BeautifulSoup) -> StrategyResult:
        for script in soup.find_all("script"):
            text = script.string or script.get_text() or ""
            if "messages" not in text or not _SCRIPT_KEYWORDS_RE.search(text):
                continue
            data = find_json_with_messages(text)
            if data is None:
                continue
            messages = messages_from_items(data["messages"])
            if messages:
                title = data.get("title") if isinstance(data.get("title"), str) else None
                return StrategyResult(messages=messages, title=title)

        container = soup.find("main") or soup.body or soup
        loose_text = container.get_text("\n")
        if any(marker in loose_text for marker in TRANSCRIPT_MARKERS):
            return StrategyResult(messages=parse_manual_transcript(loose_text))
        return StrategyResult()


DEFAULT_STRATEGIES: Tuple[ExtractionStrategy, ...] = (
    EmbeddedDataStrategy(),
    DomAttributeStrategy(),
    GenericPatternStrategy(),
)


def dedupe_messages(messages: Iterable[ChatMessage]) -> List[ChatMessage]:
    """Drop repeated turns by exact trimmed content, keeping the first occurrence."""

    seen: set[str] = set()
    unique: List[ChatMessage] = []
    for message in messages:
        key = message.content.strip()
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(message if key == message.content else ChatMessage(role=message.role, content=key))
    return unique


def page_title(soup: BeautifulSoup) -> Optional[str]:
    if soup.title is not None:
        title = _TITLE_SUFFIX_RE.sub("", normalize_text(soup.title.get_text()))
        if title and title.lower() != "chatgpt":
            return title
    heading = soup.find("h1")
    if heading is not None:
        text = normalize_text(heading.get_text(" ", strip=True))
        if text:
            return text
    return None


@dataclass(slots=True)
class ExtractionResult:
    payload: SharePayload
    strategy: Optional[str] = None


class ConversationExtractor:
    """Pure HTML to :class:`SharePayload` conversion over an ordered strategy list."""

    def __init__(
        self,
        strategies: Optional[Sequence[ExtractionStrategy]] = None,
        *,
        max_messages: int = 60,
    ) -> None:
        self.strategies = tuple(strategies) if strategies is not None else DEFAULT_STRATEGIES
        self.max_messages = max_messages

    def extract(self, html: str) -> SharePayload:
        return self.extract_with_details(html).payload

    def extract_with_details(self, html: str) -> ExtractionResult:
        soup = BeautifulSoup(html or "", "html.parser")
        json_title: Optional[str] = None

        for strategy in self.strategies:
            try:
                result = strategy.extract(soup)
            except Exception as error:
                LOGGER.warning("Extraction strategy %s failed: %s", strategy.name, error)
                continue
            json_title = json_title or result.title
            messages = dedupe_messages(result.messages)
            if not messages:
                continue

            if not result.explicit_roles and len(messages) > 1 and len({m.role for m in messages}) == 1:
                LOGGER.info("Role heuristics were inconclusive; applying positional alternation")
                messages = [
                    ChatMessage(role=role, content=message.content)
                    for role, message in zip(alternate_roles(len(messages)), messages)
                ]
            if self.max_messages:
                messages = messages[: self.max_messages]

            title = json_title or page_title(soup) or DEFAULT_TITLE
            LOGGER.info("Strategy %s extracted %s messages", strategy.name, len(messages))
            return ExtractionResult(payload=SharePayload(title=title, messages=messages), strategy=strategy.name)

        return ExtractionResult(payload=SharePayload(title=json_title or page_title(soup) or DEFAULT_TITLE))
