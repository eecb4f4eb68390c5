"""JSON and Markdown rendering of diff results and match suggestions."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .diff_service import ChangedEntry, DiffResult
from .matcher import MatchResult
from .model import CatalogEntry, parse_references

REPORT_TITLE = "## 🌍 i18n String Review Report"
ADDED_LABEL = "Added Strings"
REMOVED_LABEL = "Removed Strings"
CHANGED_LABEL = "Changed Strings"
NO_CLOSE_MATCH = "*No close match*"
ERROR_PREFIX = "LLM Error: "
MODEL_MARKER = "<!-- potreview-model: {model} -->"
OCCURRENCE_LIMIT = 3

_MARKDOWN_SPECIALS = "\\`*_{}[]()#+-.!|<"
LINE_BREAK = "<br>"
_DELTA_LABELS = {
    "msgid_plural": "Plural",
    "translator_comment": "Comment",
    "extracted_comment": "Extracted",
}


def escape_markdown(text: str) -> str:
    """Escape table-breaking characters; line breaks become `<br>`."""
    if not text:
        return ""
    escaped = "".join(f"\\{ch}" if ch in _MARKDOWN_SPECIALS else ch for ch in text)
    return escaped.replace("\r\n", "\n").replace("\r", "\n").replace("\n", LINE_BREAK)


def truncate(text: str, width: int) -> str:
    """Escape and shorten text to `width` characters with a `...` marker."""
    escaped = escape_markdown(text)
    if len(escaped) <= width:
        return escaped
    return escaped[: width - 3] + "..."


def count_words(text: str) -> int:
    return len(text.split()) if text else 0


def entry_words(entry: CatalogEntry) -> int:
    return count_words(entry.msgid) + count_words(entry.msgid_plural)


def _entry_row(entry: CatalogEntry) -> dict[str, Any]:
    return {
        "msgid": entry.msgid,
        "msgid_plural": entry.msgid_plural,
        "msgctxt": entry.msgctxt,
        "occurrences": list(parse_references(entry.comments.reference)[:OCCURRENCE_LIMIT]),
    }


def json_report(result: DiffResult) -> dict[str, Any]:
    """Build the machine-readable report payload."""
    return {
        "added_count": result.added_count,
        "removed_count": result.removed_count,
        "changed_count": result.changed_count,
        "total_changes": result.total_changes,
        "added": [_entry_row(entry) for entry in result.added],
        "removed": [_entry_row(entry) for entry in result.removed],
        "changed": [
            {
                "msgid": item.base.msgid,
                "msgctxt": item.base.msgctxt,
                "changes": [
                    {"field": delta.field, "old": delta.old, "new": delta.new}
                    for delta in item.deltas
                ],
            }
            for item in result.changed
        ],
    }


def suggestion_cell(result: MatchResult | None) -> str:
    """Render the Suggested Match column for one lookup result."""
    if result is None:
        return "-"
    if result.is_error:
        return f"{ERROR_PREFIX}{result.error}"
    if result.is_match and result.match:
        return escape_markdown(result.match)
    return NO_CLOSE_MATCH


def _location(entry: CatalogEntry) -> str:
    references = parse_references(entry.comments.reference)
    return truncate(references[0], 30) if references else "-"


def _delta_cell(item: ChangedEntry, *, new: bool) -> str:
    deltas = item.deltas
    if not deltas:
        return "-"
    delta = deltas[0]
    value = delta.new if new else delta.old
    return f"{_DELTA_LABELS[delta.field]}: {truncate(value or '(none)', 30)}"


def _ordered(rows: list[tuple[bool, list[str]]]) -> list[list[str]]:
    # Stable sort: rows with a suggestion first.
    return [cells for _, cells in sorted(rows, key=lambda row: not row[0])]


def _lookup(
    suggestions: Mapping[str, MatchResult] | None, msgid: str
) -> MatchResult | None:
    if suggestions is None:
        return None
    return suggestions.get(msgid, MatchResult.no_match())


def _table(header: list[str], rows: list[list[str]]) -> list[str]:
    lines = ["| " + " | ".join(header) + " |"]
    lines.append("|" + "|".join("-" * (len(col) + 2) for col in header) + "|")
    lines.extend("| " + " | ".join(cells) + " |" for cells in rows)
    return lines


def _details_open(label: str, count: int) -> list[str]:
    return [
        "<details>",
        f"<summary><strong>{label} ({count})</strong> - Click to expand</summary>\n",
    ]


def _added_section(
    result: DiffResult,
    suggestions: Mapping[str, MatchResult] | None,
    *,
    row_limit: int,
    width: int,
) -> list[str]:
    rows: list[tuple[bool, list[str]]] = []
    for entry in result.added[:row_limit]:
        match = _lookup(suggestions, entry.msgid)
        rows.append(
            (
                bool(match and match.is_match),
                [
                    truncate(entry.msgid, width),
                    _location(entry),
                    str(entry_words(entry)),
                    suggestion_cell(match),
                ],
            )
        )
    body = _ordered(rows)
    total_words = sum(entry_words(entry) for entry in result.added)
    hidden = result.added_count - row_limit
    if hidden > 0:
        body.append(["...", "...", f"*and {hidden} more*", "..."])
    body.append(["**Total**", "", f"**{total_words}**", ""])
    lines = _details_open(f"➕ {ADDED_LABEL}", result.added_count)
    lines.extend(_table(["String", "Location", "Words", "Suggested Match"], body))
    lines.append("\n</details>\n")
    return lines


def _removed_section(result: DiffResult, *, row_limit: int, width: int) -> list[str]:
    body = [
        [truncate(entry.msgid, width), _location(entry)]
        for entry in result.removed[:row_limit]
    ]
    hidden = result.removed_count - row_limit
    if hidden > 0:
        body.append(["...", f"*and {hidden} more*"])
    lines = _details_open(f"➖ {REMOVED_LABEL}", result.removed_count)
    lines.extend(_table(["String", "Location"], body))
    lines.append("\n</details>\n")
    return lines


def _changed_section(
    result: DiffResult,
    suggestions: Mapping[str, MatchResult] | None,
    *,
    row_limit: int,
    width: int,
) -> list[str]:
    rows: list[tuple[bool, list[str]]] = []
    for item in result.changed[:row_limit]:
        match = _lookup(suggestions, item.target.msgid)
        rows.append(
            (
                bool(match and match.is_match),
                [
                    truncate(item.base.msgid, max(10, width - 10)),
                    _delta_cell(item, new=False),
                    _delta_cell(item, new=True),
                    str(entry_words(item.target)),
                    suggestion_cell(match),
                ],
            )
        )
    body = _ordered(rows)
    total_words = sum(entry_words(item.target) for item in result.changed)
    hidden = result.changed_count - row_limit
    if hidden > 0:
        body.append(["...", "...", "...", f"*and {hidden} more*", "..."])
    body.append(["**Total**", "", "", f"**{total_words}**", ""])
    lines = _details_open(f"🔄 {CHANGED_LABEL}", result.changed_count)
    lines.extend(
        _table(["String", "Existing", "Changed", "Words", "Suggested Match"], body)
    )
    lines.append("\n</details>\n")
    return lines


def markdown_report(
    result: DiffResult,
    *,
    suggestions: Mapping[str, MatchResult] | None = None,
    model: str = "",
    row_limit: int = 100,
    width: int = 50,
) -> str:
    """Render the human-readable report.

    `suggestions` maps a query string to its lookup result; pass None when
    matching is disabled so the suggestion column shows `-`.
    """
    lines = [REPORT_TITLE + "\n"]
    if result.is_clean:
        lines.append("### ✅ No changes detected\n")
        lines.append("The POT files are identical.")
        return "\n".join(lines)

    lines.append("### 📊 Summary\n")
    lines.extend(
        _table(
            ["Category", "Count"],
            [
                ["➕ Added", str(result.added_count)],
                ["➖ Removed", str(result.removed_count)],
                ["🔄 Changed", str(result.changed_count)],
                ["**Total**", f"**{result.total_changes}**"],
            ],
        )
    )
    lines.append("")
    if result.added:
        lines.extend(
            _added_section(result, suggestions, row_limit=row_limit, width=width)
        )
    if result.removed:
        lines.extend(_removed_section(result, row_limit=row_limit, width=width))
    if result.changed:
        lines.extend(
            _changed_section(result, suggestions, row_limit=row_limit, width=width)
        )
    if suggestions is not None and model:
        lines.append(MODEL_MARKER.format(model=model))
    return "\n".join(lines)
