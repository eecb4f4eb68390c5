"""Persistence backends for the match cache blob."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Protocol

from .atomic_io import write_json_atomic

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    """Load and save one keyed cache blob scoped to a comparison context."""

    def load(self) -> dict[str, Any] | None: ...

    def save(self, blob: dict[str, Any]) -> None: ...


class FileCacheStore:
    """Store the cache blob as a JSON file (restorable by CI cache steps)."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> dict[str, Any] | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("Failed to read match cache %s: %s", self.path, exc)
            return None
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed match cache %s", self.path)
            return None
        return payload if isinstance(payload, dict) else None

    def save(self, blob: dict[str, Any]) -> None:
        write_json_atomic(self.path, blob)

