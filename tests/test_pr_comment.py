"""Test module for the pull-request comment transport."""

from __future__ import annotations

import http.client
import io
import json
import urllib.error
from typing import Any

import pytest

from potreview_py.core import pr_comment
from potreview_py.core.pr_comment import (
    REPORT_MARKER,
    CommentTransportError,
    GitHubCommentClient,
    IssueComment,
    publish_report,
)


class _Response(io.BytesIO):
    def __enter__(self) -> _Response:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()


class _RecordingClient(GitHubCommentClient):
    def __init__(self, pages: list[Any] | None = None) -> None:
        super().__init__(token="t0ken", repo="acme/app")
        self.pages = list(pages or [])
        self.calls: list[tuple[str, str, dict[str, Any] | None]] = []

    def _request(self, method: str, path: str, payload: dict[str, Any] | None = None) -> Any:
        self.calls.append((method, path, payload))
        if method == "GET":
            return self.pages.pop(0) if self.pages else []
        if method == "POST":
            return {"id": 77, "body": payload["body"] if payload else ""}
        return None


def test_client_rejects_bad_repository_and_empty_token() -> None:
    """Verify constructor validation of repo slug and token."""
    with pytest.raises(ValueError):
        GitHubCommentClient(token="x", repo="no-slash")
    with pytest.raises(ValueError):
        GitHubCommentClient(token="", repo="acme/app")


def test_find_scans_pages_for_marker() -> None:
    """Verify pagination continues until a short page and marker is matched."""
    first = [{"id": i, "body": "noise"} for i in range(100)]
    second = [{"id": 500, "body": f"{REPORT_MARKER}\nold"}, {"id": "bad"}]
    client = _RecordingClient([first, second])
    found = client.find(12)
    assert found == IssueComment(id=500, body=f"{REPORT_MARKER}\nold")
    assert len(client.calls) == 2
    assert client.calls[1][1].endswith("page=2")


def test_publish_report_creates_updates_and_deletes() -> None:
    """Verify each publish branch issues the expected request."""
    client = _RecordingClient()
    created = publish_report(client, 3, "report", existing=None, clean=False)
    assert created.action == pr_comment.ACTION_CREATED
    assert created.comment_id == 77
    assert client.calls[-1] == (
        "POST",
        "/repos/acme/app/issues/3/comments",
        {"body": f"{REPORT_MARKER}\nreport"},
    )

    existing = IssueComment(id=9, body=REPORT_MARKER)
    updated = publish_report(client, 3, "new", existing=existing, clean=True)
    assert updated.action == pr_comment.ACTION_UPDATED
    assert client.calls[-1][0] == "PATCH"

    deleted = publish_report(
        client, 3, "x", existing=existing, clean=True, delete_when_clean=True
    )
    assert deleted.action == pr_comment.ACTION_DELETED
    assert client.calls[-1] == ("DELETE", "/repos/acme/app/issues/comments/9", None)

    calls_before = len(client.calls)
    skipped = publish_report(client, 3, "x", existing=None, clean=True, delete_when_clean=True)
    assert skipped.action == pr_comment.ACTION_SKIPPED
    assert len(client.calls) == calls_before


def test_request_sends_auth_and_decodes_json(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify urllib request construction and JSON decoding."""
    seen: dict[str, Any] = {}

    def _fake_urlopen(request, timeout):  # noqa: ANN001
        seen["url"] = request.full_url
        seen["auth"] = request.get_header("Authorization")
        seen["method"] = request.get_method()
        seen["data"] = request.data
        seen["timeout"] = timeout
        return _Response(json.dumps({"id": 5, "body": "b"}).encode("utf-8"))

    monkeypatch.setattr(pr_comment.urllib.request, "urlopen", _fake_urlopen)
    client = GitHubCommentClient(token="t0ken", repo="acme/app", api_url="https://gh.local/")
    comment = client.create(4, "hello")
    assert comment == IssueComment(id=5, body="b")
    assert seen["url"] == "https://gh.local/repos/acme/app/issues/4/comments"
    assert seen["auth"] == "Bearer t0ken"
    assert seen["method"] == "POST"
    assert json.loads(seen["data"]) == {"body": "hello"}
    assert seen["timeout"] == 15.0


def test_request_maps_http_and_network_errors(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify transport failures surface as CommentTransportError."""
    http_error = urllib.error.HTTPError(
        "https://api.github.com/x", 403, "Forbidden", {}, io.BytesIO(b"{}")
    )
    monkeypatch.setattr(
        pr_comment.urllib.request,
        "urlopen",
        lambda *_a, **_k: (_ for _ in ()).throw(http_error),
    )
    client = GitHubCommentClient(token="t", repo="acme/app")
    with pytest.raises(CommentTransportError) as excinfo:
        client.update(1, "x")
    assert excinfo.value.code == 403

    monkeypatch.setattr(
        pr_comment.urllib.request,
        "urlopen",
        lambda *_a, **_k: (_ for _ in ()).throw(urllib.error.URLError("down")),
    )
    with pytest.raises(CommentTransportError) as excinfo:
        client.delete(1)
    assert excinfo.value.code is None
    assert "down" in str(excinfo.value)


def test_request_rejects_invalid_json(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify non-JSON bodies raise while empty bodies decode to None."""
    bodies = [b"<html>", b""]
    monkeypatch.setattr(
        pr_comment.urllib.request,
        "urlopen",
        lambda *_a, **_k: _Response(bodies.pop(0)),
    )
    client = GitHubCommentClient(token="t", repo="acme/app")
    with pytest.raises(CommentTransportError):
        client.list_comments(1)
    client.delete(1)


def test_request_maps_body_read_failures(monkeypatch: pytest.MonkeyPatch) -> None:
    """Verify a dropped response body surfaces as CommentTransportError."""

    class _Dropped(_Response):
        def read(self, *_args: object) -> bytes:
            raise http.client.IncompleteRead(b"[")

    monkeypatch.setattr(pr_comment.urllib.request, "urlopen", lambda *_a, **_k: _Dropped())
    client = GitHubCommentClient(token="t", repo="acme/app")
    with pytest.raises(CommentTransportError, match="connection failed"):
        client.list_comments(1)
