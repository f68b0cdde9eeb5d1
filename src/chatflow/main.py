import logging
from typing import Any, Callable, TypeVar

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from chatflow.api.conversations import router as conversations_router
from chatflow.config import get_settings
from chatflow.logging_config import configure_logging
from chatflow.services.conversations import ConversationService, get_conversation_service

configure_logging(get_settings().log_dir)

LOGGER = logging.getLogger(__name__)

app = FastAPI(title="Chatflow API")
app.include_router(conversations_router)


T = TypeVar("T")


def _resolve_dependency(factory: Callable[[], T]) -> T:
    """Resolve a dependency while respecting FastAPI overrides."""

    override: Any | None = app.dependency_overrides.get(factory)
    resolved: Any = override if override is not None else factory
    return resolved() if callable(resolved) else resolved


@app.get("/", response_class=PlainTextResponse)
def read_root() -> str:
    """Healthcheck endpoint for the service."""
    return "ok"


@app.get("/healthz", response_class=PlainTextResponse)
def healthcheck() -> str:
    """Liveness probe used by container orchestrators."""
    return "ok"


@app.get("/readyz")
def readiness_probe() -> JSONResponse:
    """Report which render backends can run with the current configuration."""

    service: ConversationService = _resolve_dependency(get_conversation_service)
    backends = {backend.name: backend.configured for backend in service.orchestrator.backends}
    ready = any(backends.values())
    if not ready:
        LOGGER.warning("No render backend is configured: %s", backends)
    return JSONResponse(
        status_code=200 if ready else 503,
        content={"status": "ok" if ready else "unavailable", "backends": backends},
    )
