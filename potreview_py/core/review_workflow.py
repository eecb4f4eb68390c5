"""One comparison run: load catalogs, diff, match, render, persist."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from . import catalog_index, diff_service, parser, reporter
from .app_config import AppConfig
from .catalog_index import CatalogIndex
from .diff_service import DiffResult
from .match_cache import MatchCache
from .matcher import MatchResult, SemanticMatcher, candidate_pool
from .oracle import OpenRouterOracle, Oracle
from .report_seeds import parse_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReviewRequest:
    """Inputs of one run; an empty `api_key` disables matching."""

    base_path: Path
    target_path: Path
    api_key: str = ""
    model: str = ""
    previous_report: str = ""


@dataclass(frozen=True, slots=True)
class ReviewOutcome:
    result: DiffResult
    report: dict[str, Any]
    markdown: str
    suggestions: Mapping[str, MatchResult] | None


def load_indexes(base_path: Path, target_path: Path) -> tuple[CatalogIndex, CatalogIndex]:
    """Parse both snapshots; read failures raise before any comparison."""
    base = catalog_index.build(parser.load_catalog(base_path))
    target = catalog_index.build(parser.load_catalog(target_path))
    return base, target


def build_matcher(
    cache: MatchCache,
    cfg: AppConfig,
    *,
    oracle: Oracle | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> SemanticMatcher:
    return SemanticMatcher(
        cache,
        oracle or OpenRouterOracle(timeout_ms=cfg.timeout_ms),
        batch_size=cfg.batch_size,
        max_batches=cfg.max_batches,
        max_candidate_length=cfg.max_candidate_length,
        batch_delay_s=cfg.batch_delay_ms / 1000.0,
        query_delay_s=cfg.query_delay_ms / 1000.0,
        sleep=sleep,
    )


def seed_from_report(cache: MatchCache, markdown: str, *, model: str) -> int:
    """Feed rows of a previous report to the cache fallback when the model matches."""
    if not markdown:
        return 0
    parsed = parse_report(markdown)
    if parsed.model != model:
        logger.debug(
            "Previous report model %r differs from %r; not seeding", parsed.model, model
        )
        return 0
    count = cache.seed(parsed.seeds, model=model)
    if count:
        logger.info("Seeded %d fallback matches from previous report", count)
    return count


def collect_suggestions(
    result: DiffResult,
    base: CatalogIndex,
    matcher: SemanticMatcher,
    *,
    api_key: str,
    model: str,
    row_limit: int,
) -> dict[str, MatchResult]:
    """Look up suggestions for reported added/changed strings.

    A fatal oracle failure raises `MatchAbortedError` and stops the run.
    """
    pool = candidate_pool(base, result.removed)
    if result.removed:
        logger.info(
            "Including %d removed strings as potential matches", result.removed_count
        )
    queries = [entry.msgid for entry in result.added[:row_limit]]
    queries.extend(item.target.msgid for item in result.changed[:row_limit])
    suggestions: dict[str, MatchResult] = {}
    for query in dict.fromkeys(queries):
        match = matcher.find_best_match(query, pool, api_key, model)
        match.raise_for_error(query)
        suggestions[query] = match
    hits = sum(1 for item in suggestions.values() if item.cached)
    logger.info("Resolved %d suggestions (%d from cache)", len(suggestions), hits)
    return suggestions


def _save_cache(cache: MatchCache) -> None:
    try:
        cache.save()
    except OSError as exc:
        logger.warning("Failed to save match cache: %s", exc)


def run_review(
    request: ReviewRequest,
    cfg: AppConfig,
    *,
    cache: MatchCache,
    matcher: SemanticMatcher | None = None,
) -> ReviewOutcome:
    """Run one review; the cache is saved even when matching aborts."""
    base, target = load_indexes(request.base_path, request.target_path)
    result = diff_service.compare(base, target)
    model = request.model or cfg.model

    suggestions: dict[str, MatchResult] | None = None
    if request.api_key and not result.is_clean:
        logger.info("LLM matching enabled (%s)", model)
        cache.load()
        seed_from_report(cache, request.previous_report, model=model)
        active = matcher or build_matcher(cache, cfg)
        try:
            suggestions = collect_suggestions(
                result,
                base,
                active,
                api_key=request.api_key,
                model=model,
                row_limit=cfg.row_limit,
            )
        finally:
            _save_cache(cache)

    markdown = reporter.markdown_report(
        result,
        suggestions=suggestions,
        model=model,
        row_limit=cfg.row_limit,
        width=cfg.truncate_width,
    )
    return ReviewOutcome(
        result=result,
        report=reporter.json_report(result),
        markdown=markdown,
        suggestions=suggestions,
    )


def action_outputs(outcome: ReviewOutcome) -> str:
    """Format `GITHUB_OUTPUT` lines, using a heredoc delimiter for the report."""
    result = outcome.result
    delimiter = f"EOF_{uuid.uuid4().hex}"
    lines = [
        f"added-count={result.added_count}",
        f"removed-count={result.removed_count}",
        f"changed-count={result.changed_count}",
        f"total-changes={result.total_changes}",
        f"report<<{delimiter}",
        outcome.markdown,
        delimiter,
    ]
    return "\n".join(lines) + "\n"


def append_text(path: Path, text: str) -> None:
    with open(path, "a", encoding="utf-8") as handle:
        handle.write(text)
