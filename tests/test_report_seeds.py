"""Test module for recovering cache seeds from rendered reports."""

from __future__ import annotations

from potreview_py.core import reporter
from potreview_py.core.diff_service import ChangedEntry, DiffResult
from potreview_py.core.match_cache import MatchCache
from potreview_py.core.matcher import MatchResult
from potreview_py.core.model import CatalogEntry
from potreview_py.core.report_seeds import parse_report, unescape_markdown


def _rendered() -> str:
    result = DiffResult(
        added=(
            CatalogEntry(msgid="Please sign in to continue to your dashboard now"),
            CatalogEntry(msgid="Save (draft)"),
            CatalogEntry(msgid="Broken"),
        ),
        removed=(CatalogEntry(msgid="Log in to continue"),),
        changed=(
            ChangedEntry(
                base=CatalogEntry(msgid="%d file", msgid_plural="%d files"),
                target=CatalogEntry(msgid="%d file", msgid_plural="%d files uploaded"),
            ),
        ),
    )
    suggestions = {
        "Please sign in to continue to your dashboard now": MatchResult.found(
            "Log in to continue"
        ),
        "Save (draft)": MatchResult.no_match(),
        "Broken": MatchResult.failed("Invalid key format", fatal=False),
        "%d file": MatchResult.found("%d files"),
    }
    return reporter.markdown_report(result, suggestions=suggestions, model="m/x", width=30)


def test_parse_report_extracts_added_and_changed_rows() -> None:
    """Verify matches and no-matches are recovered and errors skipped."""
    parsed = parse_report(_rendered())
    assert parsed.model == "m/x"
    seeds = dict(parsed.seeds)
    assert seeds["Please sign in to continue ..."] == "Log in to continue"
    assert seeds["Save (draft)"] is None
    assert seeds["%d file"] == "%d files"
    assert "Broken" not in seeds
    assert "Log in to continue" not in seeds


def test_parsed_seeds_resolve_full_queries_through_cache() -> None:
    """Verify truncated report rows hit the cache fallback for full strings."""
    parsed = parse_report(_rendered())
    cache = MatchCache()
    cache.seed(parsed.seeds, model=parsed.model)
    hit = cache.get("Please sign in to continue to your dashboard now", "m/x")
    assert hit is not None
    assert hit.match == "Log in to continue"
    assert cache.get("Save (draft)", "m/x").match is None  # type: ignore[union-attr]


def test_parse_report_without_tables_or_marker() -> None:
    """Verify unrelated or clean reports yield no seeds."""
    assert parse_report("").seeds == ()
    clean = parse_report(reporter.markdown_report(DiffResult()))
    assert clean.model == ""
    assert clean.seeds == ()


def test_parse_report_disabled_matching_rows_are_skipped() -> None:
    """Verify `-` suggestion cells carry no cache information."""
    text = reporter.markdown_report(DiffResult(added=(CatalogEntry(msgid="Hello"),)))
    assert parse_report(text).seeds == ()


def test_unescape_markdown_and_cut_escape_sequences() -> None:
    """Verify escaped characters are restored and a cut escape is dropped."""
    assert unescape_markdown("a\\*b\\|c") == "a*b|c"
    text = "\n".join(
        [
            "<details>",
            "<summary><strong>➕ Added Strings (1)</strong></summary>",
            "| String | Location | Words | Suggested Match |",
            "|--------|----------|-------|-----------------|",
            "| Version 2\\... | - | 2 | Version two |",
            "</details>",
        ]
    )
    assert parse_report(text).seeds == (("Version 2...", "Version two"),)


def test_line_breaks_and_literal_tags_survive_the_report() -> None:
    """Verify multi-line and tag-bearing strings are recovered as seeds."""
    queries = [
        "Line one\nLine two",
        "Use <br> tags",
        "Welcome back to the store\nSign in now",
    ]
    text = reporter.markdown_report(
        DiffResult(added=tuple(CatalogEntry(msgid=query) for query in queries)),
        suggestions={query: MatchResult.found("Hello") for query in queries},
        model="m/x",
        width=30,
    )
    seeds = dict(parse_report(text).seeds)
    assert seeds["Line one\nLine two"] == "Hello"
    assert seeds["Use <br> tags"] == "Hello"
    assert seeds["Welcome back to the store..."] == "Hello"

    cache = MatchCache()
    cache.seed(parse_report(text).seeds, model="m/x")
    for query in queries:
        assert cache.get(query, "m/x") is not None


def test_unescape_markdown_restores_line_breaks_only_when_unescaped() -> None:
    """Verify `<br>` means a newline while an escaped `\\<br>` stays literal."""
    assert unescape_markdown("a<br>b") == "a\nb"
    assert unescape_markdown("a\\<br>b") == "a<br>b"
