"""OpenRouter chat-completions client used as the semantic match oracle."""

from __future__ import annotations

import contextlib
import http.client
import json
import re
import urllib.error
import urllib.request
from collections.abc import Sequence
from typing import Any, Protocol

NO_MATCH_TOKEN = "NO_MATCH"
DEFAULT_ENDPOINT = "https://openrouter.ai/api/v1/chat/completions"
_DEFAULT_TIMEOUT_MS = 30_000
_MAX_TIMEOUT_MS = 120_000
_KEY_RE = re.compile(r"^sk-or-[A-Za-z0-9_-]{16,}$")
_QUOTE_RE = re.compile(r"^[\"']|[\"']$")
_TOKEN_NOISE = " \t\r\n\"'`.!,;:"

_PROMPT_TEMPLATE = """You are helping to avoid duplicate translation strings. \
Given a new string and a list of existing strings, find the single best semantic \
match from the existing strings that could be used instead.

New string: "{subject}"

Existing strings:
{candidates}

Instructions:
- If you find a semantically similar existing string that could reasonably replace \
the new string, respond with ONLY that exact string (nothing else).
- If no existing string is similar enough to be a good replacement, respond with \
exactly: {no_match}
- Consider: similar meaning, same context, same tone, similar purpose
- Be strict - only suggest matches that are truly interchangeable

Your response:"""


class OracleError(RuntimeError):
    """Base class for oracle transport and protocol failures."""


class OracleOfflineError(OracleError):
    """Represent network-level failures and timeouts."""


class OracleRequestError(OracleError):
    """Represent HTTP/protocol failures with optional response metadata."""

    def __init__(
        self,
        message: str,
        *,
        code: int | None = None,
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.code = code
        self.body = body


class Oracle(Protocol):
    """Answer one comparison query: a candidate string, or None for no match."""

    def query(
        self,
        *,
        api_key: str,
        model: str,
        subject: str,
        candidates: Sequence[str],
    ) -> str | None: ...


def is_valid_key_format(api_key: str) -> bool:
    """Cheap shape check for OpenRouter API keys."""
    return bool(_KEY_RE.match(api_key.strip()))


def normalize_timeout_ms(value: object, *, default: int = _DEFAULT_TIMEOUT_MS) -> int:
    """Normalize timeout value to allowed integer milliseconds range."""
    try:
        normalized = int(str(value).strip())
    except (TypeError, ValueError):
        normalized = int(default)
    return max(1000, min(_MAX_TIMEOUT_MS, normalized))


def build_prompt(subject: str, candidates: Sequence[str]) -> str:
    """Render the comparison prompt with an enumerated candidate list."""
    listing = "\n".join(
        f'{index}. "{candidate}"' for index, candidate in enumerate(candidates, start=1)
    )
    return _PROMPT_TEMPLATE.format(
        subject=subject, candidates=listing, no_match=NO_MATCH_TOKEN
    )


def _encode_request_payload(*, model: str, prompt: str) -> bytes:
    payload = {
        "model": model,
        "messages": [{"role": "user", "content": prompt}],
        "temperature": 0.1,
        "max_tokens": 200,
    }
    return json.dumps(payload).encode("utf-8")


def _decode_http_error_body(exc: urllib.error.HTTPError) -> str:
    try:
        return exc.read().decode("utf-8", errors="replace")
    except Exception:
        return ""
    finally:
        with contextlib.suppress(Exception):
            exc.close()


def _perform_completion_request(
    *,
    endpoint: str,
    api_key: str,
    model: str,
    prompt: str,
    timeout_ms: int,
) -> dict[str, Any]:
    """Perform one chat-completions request and parse the JSON payload."""
    request = urllib.request.Request(
        url=endpoint,
        data=_encode_request_payload(model=model, prompt=prompt),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
            "X-Title": "potreview-py",
        },
        method="POST",
    )
    timeout_sec = max(1.0, float(timeout_ms) / 1000.0)
    try:
        with urllib.request.urlopen(request, timeout=timeout_sec) as response:  # nosec B310
            raw = response.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        body = _decode_http_error_body(exc)
        raise OracleRequestError(
            f"API Error {exc.code}", code=int(exc.code), body=body
        ) from exc
    except urllib.error.URLError as exc:
        if isinstance(exc.reason, TimeoutError):
            raise OracleOfflineError("Timeout") from exc
        raise OracleOfflineError(f"Network error: {exc.reason}") from exc
    except TimeoutError as exc:
        raise OracleOfflineError("Timeout") from exc
    except (http.client.HTTPException, OSError) as exc:
        raise OracleOfflineError(f"Network error: {exc!r}") from exc

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise OracleRequestError("Parse error") from exc
    if not isinstance(payload, dict):
        raise OracleRequestError("Parse error: payload must be a JSON object")
    return payload


def parse_answer(payload: dict[str, Any]) -> str | None:
    """Extract the proposed match from a completion payload; None means no match."""
    choices = payload.get("choices")
    content: object = None
    if isinstance(choices, list) and choices and isinstance(choices[0], dict):
        message = choices[0].get("message")
        if isinstance(message, dict):
            content = message.get("content")
    text = str(content or "").strip()
    if not text:
        raise OracleRequestError("Empty response")
    if text.strip(_TOKEN_NOISE) == NO_MATCH_TOKEN:
        return None
    cleaned = _QUOTE_RE.sub("", text).strip()
    return cleaned or None


class OpenRouterOracle:
    """Send match queries to OpenRouter; failures raise `OracleError`."""

    def __init__(
        self,
        *,
        endpoint: str = DEFAULT_ENDPOINT,
        timeout_ms: int = _DEFAULT_TIMEOUT_MS,
    ) -> None:
        self.endpoint = endpoint
        self.timeout_ms = normalize_timeout_ms(timeout_ms)

    def query(
        self,
        *,
        api_key: str,
        model: str,
        subject: str,
        candidates: Sequence[str],
    ) -> str | None:
        payload = _perform_completion_request(
            endpoint=self.endpoint,
            api_key=api_key,
            model=model,
            prompt=build_prompt(subject, candidates),
            timeout_ms=self.timeout_ms,
        )
        return parse_answer(payload)
