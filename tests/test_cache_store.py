"""Test module for cache blob persistence."""

from __future__ import annotations

import json
from pathlib import Path

from potreview_py.core.cache_store import FileCacheStore
from potreview_py.core.match_cache import MatchCache


def test_file_store_round_trip(tmp_path: Path) -> None:
    """Verify the file store persists and reloads the cache blob."""
    path = tmp_path / "cache" / "match_cache.json"
    cache = MatchCache(FileCacheStore(path))
    cache.set("Email", "m", "E-mail")
    cache.save()

    payload = json.loads(path.read_text(encoding="utf-8"))
    (row,) = payload.values()
    assert row["query"] == "Email"
    assert row["result"] == {"match": "E-mail"}
    assert row["timestamp"]

    reloaded = MatchCache(FileCacheStore(path))
    reloaded.load()
    assert reloaded.get("Email", "m").match == "E-mail"  # type: ignore[union-attr]


def test_file_store_missing_or_malformed_file_loads_empty(tmp_path: Path) -> None:
    """Verify absent and corrupt files are treated as an empty cache."""
    path = tmp_path / "match_cache.json"
    assert FileCacheStore(path).load() is None
    path.write_text("{broken", encoding="utf-8")
    assert FileCacheStore(path).load() is None
    path.write_text("[1, 2]", encoding="utf-8")
    assert FileCacheStore(path).load() is None

    cache = MatchCache(FileCacheStore(path))
    cache.load()
    assert len(cache) == 0
