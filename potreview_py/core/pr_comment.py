"""GitHub pull-request comment transport for published review reports."""

from __future__ import annotations

import contextlib
import http.client
import json
import logging
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

REPORT_MARKER = "<!-- i18n-string-reviewer-report -->"
DEFAULT_API_URL = "https://api.github.com"
_PAGE_SIZE = 100
_MAX_PAGES = 20

ACTION_CREATED = "created"
ACTION_UPDATED = "updated"
ACTION_DELETED = "deleted"
ACTION_SKIPPED = "skipped"


class CommentTransportError(RuntimeError):
    """Represent GitHub API failures with optional HTTP status."""

    def __init__(self, message: str, *, code: int | None = None) -> None:
        super().__init__(message)
        self.code = code


@dataclass(frozen=True, slots=True)
class IssueComment:
    id: int
    body: str


@dataclass(frozen=True, slots=True)
class PublishOutcome:
    action: str
    comment_id: int | None = None


def _parse_comment(item: object) -> IssueComment | None:
    if not isinstance(item, dict):
        return None
    try:
        comment_id = int(item.get("id"))  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    return IssueComment(id=comment_id, body=str(item.get("body") or ""))


class GitHubCommentClient:
    """Minimal issue-comment client for one repository."""

    def __init__(
        self,
        *,
        token: str,
        repo: str,
        api_url: str = DEFAULT_API_URL,
        timeout_ms: int = 15_000,
    ) -> None:
        owner, _, name = repo.strip().partition("/")
        if not owner or not name:
            raise ValueError(f"Repository must look like owner/name, got {repo!r}.")
        if not token:
            raise ValueError("GitHub token is empty.")
        self.token = token
        self.repo = f"{owner}/{name}"
        self.api_url = api_url.rstrip("/")
        self.timeout_ms = timeout_ms

    def _request(
        self, method: str, path: str, payload: dict[str, Any] | None = None
    ) -> Any:
        data = json.dumps(payload).encode("utf-8") if payload is not None else None
        request = urllib.request.Request(
            url=f"{self.api_url}{path}",
            data=data,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {self.token}",
                "Content-Type": "application/json",
                "User-Agent": "potreview-py",
                "X-GitHub-Api-Version": "2022-11-28",
            },
            method=method,
        )
        try:
            with urllib.request.urlopen(
                request, timeout=self.timeout_ms / 1000.0
            ) as response:  # nosec B310
                raw = response.read().decode("utf-8", errors="replace")
        except urllib.error.HTTPError as exc:
            with contextlib.suppress(Exception):
                exc.close()
            raise CommentTransportError(
                f"GitHub API error ({exc.code}) for {method} {path}", code=int(exc.code)
            ) from exc
        except urllib.error.URLError as exc:
            raise CommentTransportError(f"GitHub API unreachable: {exc.reason}") from exc
        except TimeoutError as exc:
            raise CommentTransportError("GitHub API request timed out.") from exc
        except (http.client.HTTPException, OSError) as exc:
            raise CommentTransportError(f"GitHub API connection failed: {exc!r}") from exc
        if not raw.strip():
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            raise CommentTransportError("GitHub API response is not valid JSON.") from exc

    def list_comments(self, issue_number: int) -> list[IssueComment]:
        out: list[IssueComment] = []
        for page in range(1, _MAX_PAGES + 1):
            payload = self._request(
                "GET",
                f"/repos/{self.repo}/issues/{issue_number}/comments"
                f"?per_page={_PAGE_SIZE}&page={page}",
            )
            if not isinstance(payload, list):
                break
            out.extend(c for c in map(_parse_comment, payload) if c is not None)
            if len(payload) < _PAGE_SIZE:
                break
        return out

    def find(self, issue_number: int, marker: str = REPORT_MARKER) -> IssueComment | None:
        """Return the first comment carrying `marker`, if any."""
        for comment in self.list_comments(issue_number):
            if marker in comment.body:
                return comment
        return None

    def create(self, issue_number: int, body: str) -> IssueComment:
        payload = self._request(
            "POST", f"/repos/{self.repo}/issues/{issue_number}/comments", {"body": body}
        )
        comment = _parse_comment(payload)
        if comment is None:
            raise CommentTransportError("GitHub API returned no comment payload.")
        return comment

    def update(self, comment_id: int, body: str) -> None:
        self._request(
            "PATCH", f"/repos/{self.repo}/issues/comments/{comment_id}", {"body": body}
        )

    def delete(self, comment_id: int) -> None:
        self._request("DELETE", f"/repos/{self.repo}/issues/comments/{comment_id}")


def comment_body(report: str, marker: str = REPORT_MARKER) -> str:
    return f"{marker}\n{report}"


def publish_report(
    client: GitHubCommentClient,
    issue_number: int,
    report: str,
    *,
    existing: IssueComment | None,
    clean: bool,
    delete_when_clean: bool = False,
    marker: str = REPORT_MARKER,
) -> PublishOutcome:
    """Create, update or delete the marker comment for this pull request."""
    if clean and delete_when_clean:
        if existing is None:
            return PublishOutcome(action=ACTION_SKIPPED)
        client.delete(existing.id)
        logger.info("Deleted PR comment %d (no changes)", existing.id)
        return PublishOutcome(action=ACTION_DELETED, comment_id=existing.id)
    body = comment_body(report, marker)
    if existing is not None:
        client.update(existing.id, body)
        logger.info("Updated existing PR comment %d", existing.id)
        return PublishOutcome(action=ACTION_UPDATED, comment_id=existing.id)
    created = client.create(issue_number, body)
    logger.info("Posted new PR comment %d", created.id)
    return PublishOutcome(action=ACTION_CREATED, comment_id=created.id)
