"""Tests for the JSON log formatter and the ingest audit trail."""
from __future__ import annotations

import json
import logging
import sys
from pathlib import Path

from chatflow.logging_config import AUDIT_LOGGER_NAME, MinimalJSONFormatter, configure_logging


def _record(msg: object) -> logging.LogRecord:
    return logging.LogRecord("chatflow.test", logging.INFO, __file__, 1, msg, None, None)


def test_formatter_merges_dict_messages() -> None:
    payload = json.loads(MinimalJSONFormatter().format(_record({"event": "preview", "pairs": 2})))

    assert payload["event"] == "preview"
    assert payload["pairs"] == 2
    assert payload["level"] == "INFO"
    assert payload["module"] == "chatflow.test"
    assert payload["ts"].endswith("Z")
    assert "message" not in payload


def test_formatter_keeps_plain_messages_and_exceptions() -> None:
    try:
        raise ValueError("bad page")
    except ValueError:
        record = _record("fetch failed")
        record.exc_info = sys.exc_info()

    payload = json.loads(MinimalJSONFormatter().format(record))

    assert payload["message"] == "fetch failed"
    assert "ValueError: bad page" in payload["exc_info"]


def test_audit_logger_writes_to_its_own_file(tmp_path: Path) -> None:
    configure_logging(tmp_path)
    audit_logger = logging.getLogger(AUDIT_LOGGER_NAME)

    audit_logger.info({"event": "commit", "block_id": "b1"})
    for handler in audit_logger.handlers:
        handler.flush()

    lines = (tmp_path / "ingest_audit.log").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["block_id"] == "b1"
    assert audit_logger.propagate is False
