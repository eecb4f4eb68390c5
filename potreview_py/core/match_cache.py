"""Persistent (query, model) -> answer cache for semantic match lookups."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

import xxhash

from .cache_store import CacheStore

logger = logging.getLogger(__name__)

ORIGIN_DIRECT = "direct"
ORIGIN_REPORT = "report"
FALLBACK_PREFIX_CHARS = 40
TRUNCATION_MARKERS = ("...", "…")


@dataclass(frozen=True, slots=True)
class CacheEntry:
    """One definitive oracle answer; `match` is None for an explicit no-match."""

    query: str
    model: str
    match: str | None
    timestamp: str = ""
    origin: str = ORIGIN_DIRECT

    def to_payload(self) -> dict[str, Any]:
        return {
            "query": self.query,
            "model": self.model,
            "result": {"match": self.match},
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class CacheStats:
    entries: int
    seeds: int
    dirty: bool


def cache_key(query: str, model: str) -> str:
    """Return deterministic hash key for one query/model pair."""
    return xxhash.xxh3_128_hexdigest(f"{query}:{model}".encode("utf-8"))


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def strip_truncation(text: str) -> tuple[str, bool]:
    """Return `(prefix, truncated)` with a trailing ellipsis marker removed."""
    for marker in TRUNCATION_MARKERS:
        if text.endswith(marker):
            return text[: -len(marker)], True
    return text, False


def normalize_blob(payload: object) -> dict[str, CacheEntry]:
    """Normalize a stored blob, dropping malformed rows and non-definitive answers."""
    if not isinstance(payload, Mapping):
        return {}
    out: dict[str, CacheEntry] = {}
    for row in payload.values():
        if not isinstance(row, Mapping):
            continue
        query = row.get("query")
        model = row.get("model")
        result = row.get("result")
        if not isinstance(query, str) or not query or not isinstance(model, str):
            continue
        if not isinstance(result, Mapping) or "match" not in result:
            continue
        match = result.get("match")
        if match is not None and not isinstance(match, str):
            continue
        out[cache_key(query, model)] = CacheEntry(
            query=query,
            model=model,
            match=match or None,
            timestamp=str(row.get("timestamp") or ""),
        )
    return out


def _seed_matches(stored: str, query: str) -> bool:
    prefix, truncated = strip_truncation(stored)
    if not prefix:
        return False
    if truncated and query.startswith(prefix):
        return True
    if prefix == query:
        return True
    if len(stored) < FALLBACK_PREFIX_CHARS:
        return False
    return stored[:FALLBACK_PREFIX_CHARS] == query[:FALLBACK_PREFIX_CHARS]


class MatchCache:
    """Own the cached oracle answers for one comparison run.

    Direct entries are authoritative and persisted through the store.
    Seeds recovered from a previously rendered report only serve as a
    fallback for exact-key misses and are never written back.
    """

    def __init__(self, store: CacheStore | None = None) -> None:
        self._store = store
        self._entries: dict[str, CacheEntry] = {}
        self._seeds: list[CacheEntry] = []
        self._dirty = False

    @property
    def dirty(self) -> bool:
        return self._dirty

    def load(self) -> None:
        if self._store is None:
            return
        self._entries = normalize_blob(self._store.load())
        self._dirty = False
        if self._entries:
            logger.info("Loaded %d cached match results", len(self._entries))

    def save(self) -> bool:
        """Persist entries when modified; return whether a write happened."""
        if not self._dirty or self._store is None:
            return False
        blob = {key: entry.to_payload() for key, entry in sorted(self._entries.items())}
        self._store.save(blob)
        self._dirty = False
        logger.info("Saved %d match results to cache", len(blob))
        return True

    def get(self, query: str, model: str) -> CacheEntry | None:
        entry = self._entries.get(cache_key(query, model))
        if entry is not None:
            return entry
        for seed in self._seeds:
            if seed.model == model and _seed_matches(seed.query, query):
                logger.debug("Report fallback hit for %r", query[:FALLBACK_PREFIX_CHARS])
                return seed
        return None

    def set(self, query: str, model: str, match: str | None) -> CacheEntry:
        entry = CacheEntry(query=query, model=model, match=match, timestamp=_utc_now())
        self._entries[cache_key(query, model)] = entry
        self._dirty = True
        return entry

    def seed(self, seeds: Iterable[tuple[str, str | None]], *, model: str) -> int:
        """Register report-derived `(stored query, match)` fallbacks for a model."""
        added = 0
        for stored, match in seeds:
            if not stored or not strip_truncation(stored)[0]:
                continue
            self._seeds.append(
                CacheEntry(query=stored, model=model, match=match, origin=ORIGIN_REPORT)
            )
            added += 1
        return added

    def stats(self) -> CacheStats:
        return CacheStats(
            entries=len(self._entries), seeds=len(self._seeds), dirty=self._dirty
        )

    def __len__(self) -> int:
        return len(self._entries)
