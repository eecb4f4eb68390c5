"""Recover fallback cache seeds from a previously rendered Markdown report.

The JSON cache blob is authoritative. This adapter exists for runs where
only the published report survived (for example a PR comment from an
earlier run); its rows carry truncated query text, so the seeds can only
feed `MatchCache.seed` and its prefix fallback.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .reporter import ADDED_LABEL, CHANGED_LABEL, ERROR_PREFIX, LINE_BREAK, NO_CLOSE_MATCH

_MODEL_RE = re.compile(r"<!--\s*potreview-model:\s*(?P<model>.+?)\s*-->")
_CELL_SPLIT_RE = re.compile(r"(?<!\\)\|")
_UNESCAPE_RE = re.compile(r"\\(.)|" + re.escape(LINE_BREAK))
_SKIP_QUERIES = {"", "...", "String", "**Total**"}
# Suggested Match column index per section table.
_SUGGESTION_COLUMN = {ADDED_LABEL: 3, CHANGED_LABEL: 4}


@dataclass(frozen=True, slots=True)
class ReportSeeds:
    model: str
    seeds: tuple[tuple[str, str | None], ...]


def unescape_markdown(text: str) -> str:
    return _UNESCAPE_RE.sub(lambda m: "\n" if m.group(1) is None else m.group(1), text)


def _odd_backslashes(text: str) -> bool:
    return (len(text) - len(text.rstrip("\\"))) % 2 == 1


def _trim_cut_sequence(body: str) -> str:
    # Truncation can cut an escape or a line break in half.
    for size in range(len(LINE_BREAK) - 1, 0, -1):
        partial = LINE_BREAK[:size]
        if body.endswith(partial) and not _odd_backslashes(body[:-size]):
            body = body[:-size]
            break
    if _odd_backslashes(body):
        body = body[:-1]
    return body


def _split_row(line: str) -> list[str]:
    inner = line.strip()
    if inner.startswith("|"):
        inner = inner[1:]
    if inner.endswith("|") and not inner.endswith("\\|"):
        inner = inner[:-1]
    return [cell.strip() for cell in _CELL_SPLIT_RE.split(inner)]


def _is_separator(cells: list[str]) -> bool:
    return all(cell and set(cell) <= {"-", ":"} for cell in cells)


def _section_for(line: str, current: str | None) -> str | None:
    if "<summary>" in line:
        for label in _SUGGESTION_COLUMN:
            if label in line:
                return label
        return None
    if "</details>" in line:
        return None
    return current


def _seed_from_cells(cells: list[str], column: int) -> tuple[str, str | None] | None:
    if len(cells) <= column:
        return None
    raw_query = cells[0]
    if raw_query in _SKIP_QUERIES:
        return None
    suggestion = cells[column]
    if not suggestion or suggestion == "-" or suggestion.startswith(ERROR_PREFIX):
        return None
    if raw_query.endswith("..."):
        query = unescape_markdown(_trim_cut_sequence(raw_query[:-3])) + "..."
    else:
        query = unescape_markdown(raw_query)
    if suggestion == NO_CLOSE_MATCH:
        return query, None
    return query, unescape_markdown(suggestion)


def parse_report(markdown: str) -> ReportSeeds:
    """Extract `(stored query, match)` rows from the Added and Changed tables."""
    model_match = _MODEL_RE.search(markdown or "")
    model = model_match.group("model") if model_match else ""
    seeds: list[tuple[str, str | None]] = []
    section: str | None = None
    for line in (markdown or "").splitlines():
        section = _section_for(line, section)
        if section is None or not line.lstrip().startswith("|"):
            continue
        cells = _split_row(line)
        if _is_separator(cells):
            continue
        seed = _seed_from_cells(cells, _SUGGESTION_COLUMN[section])
        if seed is not None:
            seeds.append(seed)
    return ReportSeeds(model=model, seeds=tuple(seeds))
