"""Structured lifecycle events for the ingestion pipeline."""

from __future__ import annotations

import logging
import time
import traceback
from contextlib import contextmanager
from typing import Any, Iterator, Optional

LOGGER = logging.getLogger("chatflow.telemetry")


def _format_exception(error: BaseException) -> str:
    return "".join(traceback.format_exception(error.__class__, error, error.__traceback__))


def log_event(
    logger: Optional[logging.Logger],
    step: str,
    *,
    level: str = "info",
    req_id: str | None = None,
    duration_ms: float | None = None,
    exc: BaseException | str | None = None,
    details: dict[str, Any] | None = None,
    **payload: Any,
) -> None:
    """Emit a structured log event with the agreed-upon schema."""

    logger = logger or LOGGER
    event: dict[str, Any] = {"step": step, "module": logger.name}
    if req_id:
        event["req_id"] = req_id
    if duration_ms is not None:
        event["duration_ms"] = round(duration_ms, 3)
    if details is not None:
        event["details"] = details
    event.update(payload)

    exc_info = None
    if exc is not None:
        if isinstance(exc, BaseException):
            event["exc"] = _format_exception(exc)
            exc_info = (exc.__class__, exc, exc.__traceback__)
        else:
            event["exc"] = str(exc)

    log_method = getattr(logger, level.lower(), logger.info)
    log_method(event, exc_info=exc_info)


def emit_fetch_attempt(
    *,
    req_id: str | None,
    backend: str,
    outcome: str,
    duration_ms: float,
    html_chars: int | None = None,
    messages: int | None = None,
    reason: str | None = None,
) -> None:
    details = {
        "backend": backend,
        "outcome": outcome,
        "html_chars": html_chars,
        "messages": messages,
    }
    if reason:
        details["reason"] = reason
    log_event(
        LOGGER,
        "fetch.attempt",
        level="info" if outcome == "ok" else "warning",
        req_id=req_id,
        duration_ms=duration_ms,
        details=details,
    )


def emit_fetch_exhausted(*, req_id: str | None, url: str, reasons: list[str]) -> None:
    log_event(LOGGER, "fetch.exhausted", level="warning", req_id=req_id, details={"url": url, "reasons": reasons})


def emit_classification_failure(*, pair_index: int, error: BaseException) -> None:
    log_event(
        LOGGER,
        "classify.failure",
        level="warning",
        details={"pair_index": pair_index, "error": f"{type(error).__name__}: {error}"},
    )


def emit_exception(*, module: str, error: BaseException, req_id: str | None = None) -> None:
    log_event(
        LOGGER,
        "exception",
        level="error",
        req_id=req_id,
        details={"module": module},
        exc=error,
    )


@contextmanager
def traced_duration(step: str, *, logger: Optional[logging.Logger] = None, **fields: Any) -> Iterator[None]:
    start = time.perf_counter()
    log_event(logger or LOGGER, f"{step}.start", details=fields)
    try:
        yield
    except Exception as error:
        log_event(logger or LOGGER, f"{step}.error", level="error", details=fields, exc=error)
        raise
    finally:
        end = time.perf_counter()
        log_event(
            logger or LOGGER,
            f"{step}.complete",
            duration_ms=(end - start) * 1000.0,
            details=fields,
        )
