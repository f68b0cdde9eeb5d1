"""Environment driven configuration for the ingestion service."""
from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Optional

LOGGER = logging.getLogger(__name__)

KNOWN_BACKENDS: tuple[str, ...] = ("remote-unblock", "remote", "headless", "plain")
DEFAULT_BACKEND_ORDER: tuple[str, ...] = ("remote-unblock", "headless", "plain")
DEFAULT_BROWSERLESS_URL = "https://production-sfo.browserless.io"


def _env_str(name: str, default: str = "") -> str:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip()


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        LOGGER.warning("Invalid integer for %s: %s; using default %s", name, value, default)
        return default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return float(value)
    except ValueError:
        LOGGER.warning("Invalid float for %s: %s; using default %s", name, value, default)
        return default


def parse_backend_order(raw: str | None) -> tuple[str, ...]:
    """Parse a comma separated backend list, rejecting unknown names."""

    if raw is None or not raw.strip():
        return DEFAULT_BACKEND_ORDER

    order: list[str] = []
    for item in raw.split(","):
        name = item.strip().lower()
        if not name:
            continue
        if name not in KNOWN_BACKENDS:
            raise ValueError(
                f"Unknown render backend {name!r}; expected one of {', '.join(KNOWN_BACKENDS)}"
            )
        if name not in order:
            order.append(name)
    return tuple(order) or DEFAULT_BACKEND_ORDER


@dataclass(slots=True)
class Settings:
    """Runtime settings. Every value has a usable default for local development."""

    render_backends: tuple[str, ...] = DEFAULT_BACKEND_ORDER
    plain_fetch_timeout: float = 15.0
    headless_nav_timeout: float = 45.0
    headless_selector_timeout: float = 15.0
    headless_settle_seconds: float = 3.0
    browserless_url: str = DEFAULT_BROWSERLESS_URL
    browserless_token: Optional[str] = None
    browserless_proxy: Optional[str] = "residential"
    remote_timeout: float = 60.0
    max_messages: int = 60
    llm_provider: str = "mock"
    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    classify_concurrency: int = 8
    classify_timeout: float = 20.0
    title_timeout: float = 15.0
    auto_title_flows: bool = False
    data_dir: Path = field(default_factory=lambda: Path("data"))
    log_dir: Path = field(default_factory=lambda: Path("logs"))
    dev_user_name: str = "Dev User"
    dev_user_email: str = "dev@example.com"


def load_settings() -> Settings:
    """Build :class:`Settings` from the process environment."""

    openai_api_key = _env_str("OPENAI_API_KEY") or None
    default_provider = "openai" if openai_api_key else "mock"

    return Settings(
        render_backends=parse_backend_order(os.getenv("RENDER_BACKENDS")),
        plain_fetch_timeout=_env_float("PLAIN_FETCH_TIMEOUT", 15.0),
        headless_nav_timeout=_env_float("HEADLESS_NAV_TIMEOUT", 45.0),
        headless_selector_timeout=_env_float("HEADLESS_SELECTOR_TIMEOUT", 15.0),
        headless_settle_seconds=_env_float("HEADLESS_SETTLE_SECONDS", 3.0),
        browserless_url=_env_str("BROWSERLESS_URL", DEFAULT_BROWSERLESS_URL).rstrip("/"),
        browserless_token=_env_str("BROWSERLESS_TOKEN") or None,
        browserless_proxy=_env_str("BROWSERLESS_PROXY", "residential") or None,
        remote_timeout=_env_float("REMOTE_TIMEOUT", 60.0),
        max_messages=max(0, _env_int("MAX_MESSAGES", 60)),
        llm_provider=_env_str("LLM_PROVIDER", default_provider).lower(),
        openai_api_key=openai_api_key,
        openai_model=_env_str("OPENAI_MODEL", "gpt-4o-mini"),
        classify_concurrency=max(1, _env_int("CLASSIFY_CONCURRENCY", 8)),
        classify_timeout=_env_float("CLASSIFY_TIMEOUT", 20.0),
        title_timeout=_env_float("TITLE_TIMEOUT", 15.0),
        auto_title_flows=_env_flag("AUTO_TITLE_FLOWS", False),
        data_dir=Path(_env_str("DATA_DIR", "data")),
        log_dir=Path(_env_str("LOG_DIR", "logs")),
        dev_user_name=_env_str("DEV_USER_NAME", "Dev User"),
        dev_user_email=_env_str("DEV_USER_EMAIL", "dev@example.com"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the process-wide settings, loaded once."""

    return load_settings()
