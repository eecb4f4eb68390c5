"""CLI entry-point for potreview-py."""
from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from collections.abc import Mapping
from pathlib import Path

from potreview_py import __version__
from potreview_py.core import app_config, pr_comment
from potreview_py.core.atomic_io import write_json_atomic, write_text_atomic
from potreview_py.core.cache_store import FileCacheStore
from potreview_py.core.log_setup import setup_logging
from potreview_py.core.match_cache import MatchCache
from potreview_py.core.matcher import MatchAbortedError
from potreview_py.core.parser import CatalogReadError
from potreview_py.core.review_workflow import (
    ReviewOutcome,
    ReviewRequest,
    action_outputs,
    append_text,
    run_review,
)

EXIT_OK = 0
EXIT_CHANGES = 1
EXIT_FATAL = 2

logger = logging.getLogger("potreview_py")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="potreview-py",
        description=(
            "Compare two POT catalogs and report added, removed and changed strings."
        ),
    )
    parser.add_argument("base", type=Path, help="base (previous) POT file")
    parser.add_argument("target", type=Path, help="target (new) POT file")
    parser.add_argument(
        "--fail-on-changes",
        action="store_true",
        help="Exit with status 1 when any change is detected.",
    )
    parser.add_argument("--json-output", type=Path, help="write the JSON report here")
    parser.add_argument(
        "--markdown-output", type=Path, help="write the Markdown report here"
    )
    parser.add_argument(
        "--openrouter-key",
        default="",
        help="OpenRouter API key (defaults to $OPENROUTER_API_KEY; empty disables matching).",
    )
    parser.add_argument("--model", default="", help="OpenRouter model identifier")
    parser.add_argument("--cache-file", type=Path, help="match cache JSON path")
    parser.add_argument(
        "--previous-report",
        type=Path,
        help="previously rendered Markdown report used as a cache fallback",
    )
    parser.add_argument(
        "--comment-on-pr",
        action="store_true",
        help="Create or update the report comment on the pull request.",
    )
    parser.add_argument(
        "--delete-comment-when-clean",
        action="store_true",
        help="Delete the report comment instead of updating it when nothing changed.",
    )
    parser.add_argument("--repo", default="", help="owner/name (defaults to $GITHUB_REPOSITORY)")
    parser.add_argument("--pr-number", type=int, default=0, help="pull request number")
    parser.add_argument(
        "--root",
        type=Path,
        default=None,
        help="project root holding config/potreview.toml (defaults to cwd)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    return parser


def _pr_number_from_event(env: Mapping[str, str]) -> int:
    event_path = env.get("GITHUB_EVENT_PATH", "")
    if not event_path:
        return 0
    try:
        payload = json.loads(Path(event_path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return 0
    pull_request = payload.get("pull_request") if isinstance(payload, dict) else None
    if not isinstance(pull_request, dict):
        return 0
    try:
        return int(pull_request.get("number") or 0)
    except (TypeError, ValueError):
        return 0


def _comment_client(
    args: argparse.Namespace, env: Mapping[str, str]
) -> tuple[pr_comment.GitHubCommentClient, int] | None:
    token = env.get("GITHUB_TOKEN", "")
    repo = args.repo or env.get("GITHUB_REPOSITORY", "")
    number = args.pr_number or _pr_number_from_event(env)
    if not token or not repo or not number:
        logger.warning("PR comment requested but token, repository or PR number is missing")
        return None
    try:
        client = pr_comment.GitHubCommentClient(
            token=token,
            repo=repo,
            api_url=env.get("GITHUB_API_URL", pr_comment.DEFAULT_API_URL),
        )
    except ValueError as exc:
        logger.warning("PR comment disabled: %s", exc)
        return None
    return client, number


def _strip_marker(body: str) -> str:
    return body.replace(pr_comment.REPORT_MARKER, "", 1).lstrip("\n")


def _write_outputs(
    args: argparse.Namespace, outcome: ReviewOutcome, env: Mapping[str, str]
) -> None:
    if args.json_output:
        write_json_atomic(args.json_output, outcome.report)
    if args.markdown_output:
        write_text_atomic(args.markdown_output, outcome.markdown + "\n")
    if env.get("GITHUB_OUTPUT"):
        append_text(Path(env["GITHUB_OUTPUT"]), action_outputs(outcome))
    if env.get("GITHUB_STEP_SUMMARY"):
        append_text(Path(env["GITHUB_STEP_SUMMARY"]), outcome.markdown + "\n")


def main(argv: list[str] | None = None, env: Mapping[str, str] | None = None) -> int:
    env = os.environ if env is None else env
    args = _build_parser().parse_args(argv)
    api_key = (args.openrouter_key or env.get("OPENROUTER_API_KEY", "")).strip()
    setup_logging(verbose=args.verbose, secrets=(api_key, env.get("GITHUB_TOKEN", "")))

    cfg = app_config.load(args.root)
    root = args.root or Path.cwd()
    cache = MatchCache(FileCacheStore(args.cache_file or cfg.cache_path(root)))

    previous_report = ""
    if args.previous_report:
        try:
            previous_report = args.previous_report.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Cannot read previous report %s: %s", args.previous_report, exc)

    comment_target = _comment_client(args, env) if args.comment_on_pr else None
    existing: pr_comment.IssueComment | None = None
    if comment_target is not None:
        client, number = comment_target
        try:
            existing = client.find(number)
        except pr_comment.CommentTransportError as exc:
            logger.warning("Failed to look up PR comments: %s", exc)
        if existing is not None and not previous_report:
            previous_report = _strip_marker(existing.body)

    request = ReviewRequest(
        base_path=args.base,
        target_path=args.target,
        api_key=api_key,
        model=args.model,
        previous_report=previous_report,
    )
    logger.info("Base POT file: %s", args.base)
    logger.info("Target POT file: %s", args.target)
    try:
        outcome = run_review(request, cfg, cache=cache)
    except CatalogReadError as exc:
        logger.error("%s", exc)
        return EXIT_FATAL
    except MatchAbortedError as exc:
        logger.error("Aborting report generation: %s", exc)
        return EXIT_FATAL

    print(outcome.markdown)
    try:
        _write_outputs(args, outcome, env)
    except OSError as exc:
        logger.error("Failed to write outputs: %s", exc)
        return EXIT_FATAL

    if comment_target is not None:
        client, number = comment_target
        try:
            pr_comment.publish_report(
                client,
                number,
                outcome.markdown,
                existing=existing,
                clean=outcome.result.is_clean,
                delete_when_clean=args.delete_comment_when_clean,
            )
        except pr_comment.CommentTransportError as exc:
            logger.warning("Failed to comment on PR: %s", exc)

    total = outcome.result.total_changes
    if args.fail_on_changes and total > 0:
        logger.error(
            "Changes detected in POT file (%d total changes). Failing as requested.",
            total,
        )
        return EXIT_CHANGES
    if total == 0:
        logger.info("No changes detected")
    else:
        logger.info("%d change(s) detected", total)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
