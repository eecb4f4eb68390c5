"""Backend-core public surface – re-export runtime API."""

from __future__ import annotations

from .catalog_index import CatalogIndex, build
from .diff_service import ChangedEntry, DiffResult, compare
from .match_cache import CacheEntry, MatchCache
from .matcher import MatchAbortedError, MatchResult, MatchStatus, SemanticMatcher
from .model import CatalogEntry, EntryComments, is_content_changed, make_key
from .parser import CatalogReadError, load_catalog

__all__ = [
    "CacheEntry",
    "CatalogEntry",
    "CatalogIndex",
    "CatalogReadError",
    "ChangedEntry",
    "DiffResult",
    "EntryComments",
    "MatchAbortedError",
    "MatchCache",
    "MatchResult",
    "MatchStatus",
    "SemanticMatcher",
    "build",
    "compare",
    "is_content_changed",
    "load_catalog",
    "make_key",
]
