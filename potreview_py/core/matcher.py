"""Batched semantic matching of new strings against already-translated text."""

from __future__ import annotations

import enum
import logging
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass

from .catalog_index import CatalogIndex
from .match_cache import ORIGIN_REPORT, MatchCache
from .model import CatalogEntry
from .oracle import Oracle, OracleError, OracleRequestError, is_valid_key_format

logger = logging.getLogger(__name__)

INVALID_KEY_ERROR = "Invalid key format"


class MatchStatus(enum.Enum):
    MATCH = "match"
    NO_MATCH = "no_match"
    ERROR = "error"


class MatchAbortedError(RuntimeError):
    """Raised when an oracle failure must abort report generation."""

    def __init__(self, query: str, result: MatchResult) -> None:
        super().__init__(f"Semantic matching failed for {query!r}: {result.error}")
        self.query = query
        self.result = result


@dataclass(frozen=True, slots=True)
class MatchResult:
    """Outcome of one lookup: a match, an explicit no-match, or an error."""

    status: MatchStatus
    match: str | None = None
    error: str = ""
    http_status: int | None = None
    fatal: bool = False
    cached: bool = False

    @classmethod
    def found(cls, match: str, *, cached: bool = False) -> MatchResult:
        return cls(status=MatchStatus.MATCH, match=match, cached=cached)

    @classmethod
    def no_match(cls, *, cached: bool = False) -> MatchResult:
        return cls(status=MatchStatus.NO_MATCH, cached=cached)

    @classmethod
    def failed(
        cls, error: str, *, fatal: bool, http_status: int | None = None
    ) -> MatchResult:
        return cls(
            status=MatchStatus.ERROR,
            error=error,
            http_status=http_status,
            fatal=fatal,
        )

    @property
    def is_match(self) -> bool:
        return self.status is MatchStatus.MATCH

    @property
    def is_error(self) -> bool:
        return self.status is MatchStatus.ERROR

    def raise_for_error(self, query: str) -> None:
        """Raise `MatchAbortedError` for fatal oracle failures."""
        if self.is_error and self.fatal:
            raise MatchAbortedError(query, self)


def candidate_pool(
    base: CatalogIndex, removed: Iterable[CatalogEntry] = ()
) -> list[str]:
    """Collect reusable strings: base catalog texts plus removed (translated) texts."""
    pool = base.msgids()
    pool.extend(entry.msgid for entry in removed)
    return pool


def filter_candidates(candidates: Iterable[str], *, max_length: int) -> list[str]:
    """Drop blank and overlong candidates and repeated strings, keeping first order."""
    seen: set[str] = set()
    out: list[str] = []
    for candidate in candidates:
        if not candidate or not candidate.strip():
            continue
        if len(candidate) >= max_length or candidate in seen:
            continue
        seen.add(candidate)
        out.append(candidate)
    return out


def split_batches(
    candidates: Sequence[str], *, size: int, max_batches: int
) -> list[list[str]]:
    """Chunk candidates into at most `max_batches` batches of `size`."""
    size = max(1, size)
    limit = min(len(candidates), size * max(1, max_batches))
    return [list(candidates[start : start + size]) for start in range(0, limit, size)]


def is_plausible_match(match: str, batch: Iterable[str]) -> bool:
    """Return whether the answer equals, contains or is contained in a shown candidate."""
    needle = match.casefold()
    for candidate in batch:
        folded = candidate.casefold()
        if needle == folded or needle in folded or folded in needle:
            return True
    return False


class SemanticMatcher:
    """Resolve suggestions through the cache first, then bounded oracle batches."""

    def __init__(
        self,
        cache: MatchCache,
        oracle: Oracle,
        *,
        batch_size: int = 1000,
        max_batches: int = 10,
        max_candidate_length: int = 200,
        batch_delay_s: float = 0.5,
        query_delay_s: float = 0.5,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.cache = cache
        self.oracle = oracle
        self.batch_size = batch_size
        self.max_batches = max_batches
        self.max_candidate_length = max_candidate_length
        self.batch_delay_s = batch_delay_s
        self.query_delay_s = query_delay_s
        self._sleep = sleep
        self._oracle_consulted = False

    def find_best_match(
        self,
        query: str,
        candidates: Sequence[str],
        api_key: str,
        model: str,
    ) -> MatchResult:
        """Find one reusable existing string for `query`.

        Oracle failures are returned as fatal error results and never cached.
        """
        if not api_key:
            return MatchResult.no_match()
        if not is_valid_key_format(api_key):
            return MatchResult.failed(INVALID_KEY_ERROR, fatal=False)
        if not query or not query.strip() or not candidates:
            return MatchResult.no_match()

        hit = self.cache.get(query, model)
        if hit is not None:
            if hit.origin == ORIGIN_REPORT:
                self.cache.set(query, model, hit.match)
            if hit.match is None:
                return MatchResult.no_match(cached=True)
            return MatchResult.found(hit.match, cached=True)

        pool = filter_candidates(candidates, max_length=self.max_candidate_length)
        if not pool:
            return MatchResult.no_match()
        batches = split_batches(
            pool, size=self.batch_size, max_batches=self.max_batches
        )
        if self._oracle_consulted and self.query_delay_s > 0:
            self._sleep(self.query_delay_s)
        self._oracle_consulted = True
        for number, batch in enumerate(batches, start=1):
            logger.debug(
                "Querying batch %d/%d (%d candidates) for %r",
                number,
                len(batches),
                len(batch),
                query,
            )
            try:
                match = self.oracle.query(
                    api_key=api_key, model=model, subject=query, candidates=batch
                )
            except OracleError as exc:
                code = exc.code if isinstance(exc, OracleRequestError) else None
                logger.error("Oracle failure on batch %d for %r: %s", number, query, exc)
                return MatchResult.failed(str(exc), fatal=True, http_status=code)
            if match is not None:
                if not is_plausible_match(match, batch):
                    logger.warning(
                        "Oracle proposed %r for %r, which matches no candidate shown",
                        match,
                        query,
                    )
                self.cache.set(query, model, match)
                return MatchResult.found(match)
            if number < len(batches) and self.batch_delay_s > 0:
                self._sleep(self.batch_delay_s)

        self.cache.set(query, model, None)
        return MatchResult.no_match()
