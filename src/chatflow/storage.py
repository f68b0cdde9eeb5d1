"""Persist conversation blocks attached to minutes as JSON documents on disk."""
from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Final, Optional

LOGGER = logging.getLogger(__name__)

_ID_SAFE_CHARS_RE: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]+")


def _sanitize_id(value: str, fallback: str = "unnamed") -> str:
    """Return a filesystem-safe identifier with no path components."""
    sanitized = _ID_SAFE_CHARS_RE.sub("_", Path(value or "").name)
    return sanitized.strip("._") or fallback


class BlockStore:
    """One JSON file per block under ``{root}/minutes/{minute_id}/{block_id}.json``."""

    def __init__(self, root: Path | str = Path("data")) -> None:
        self.root = Path(root)

    def block_path(self, minute_id: str, block_id: str) -> Path:
        return self.root / "minutes" / _sanitize_id(minute_id, "minute") / f"{_sanitize_id(block_id, 'block')}.json"

    def save(self, block: dict[str, Any]) -> Path:
        destination = self.block_path(str(block["minuteId"]), str(block["id"]))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(json.dumps(block, ensure_ascii=False, indent=2), encoding="utf-8")
        LOGGER.info("Stored block %s for minute %s", block["id"], block["minuteId"])
        return destination

    def get(self, minute_id: str, block_id: str) -> Optional[dict[str, Any]]:
        path = self.block_path(minute_id, block_id)
        if not path.exists():
            return None
        return json.loads(path.read_text(encoding="utf-8"))
