from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest

from potreview_py.core import app_config

VALID_KEY = "sk-or-v1-" + "0123456789abcdef" * 4
MODEL = "test/model"


class MemoryCacheStore:
    """In-memory cache store that counts saves."""

    def __init__(self, blob: dict[str, Any] | None = None) -> None:
        self.blob = blob
        self.saves = 0

    def load(self) -> dict[str, Any] | None:
        return None if self.blob is None else dict(self.blob)

    def save(self, blob: dict[str, Any]) -> None:
        self.blob = dict(blob)
        self.saves += 1


class FakeOracle:
    """Scripted oracle: each call pops one answer (a string, None, or an exception)."""

    def __init__(self, answers: Sequence[object] = ()) -> None:
        self.answers = list(answers)
        self.calls: list[tuple[str, list[str]]] = []

    def query(self, *, api_key, model, subject, candidates):  # type: ignore[no-untyped-def]
        self.calls.append((subject, list(candidates)))
        answer = self.answers.pop(0) if self.answers else None
        if isinstance(answer, BaseException):
            raise answer
        return answer


def pot_text(*entries: str) -> str:
    header = 'msgid ""\nmsgstr ""\n"Content-Type: text/plain; charset=UTF-8\\n"\n\n'
    return header + "\n".join(entries)


def pot_entry(
    msgid: str,
    *,
    plural: str = "",
    context: str = "",
    reference: str = "",
    translator: str = "",
    extracted: str = "",
) -> str:
    lines: list[str] = []
    if translator:
        lines.append(f"# {translator}")
    if extracted:
        lines.append(f"#. {extracted}")
    if reference:
        lines.append(f"#: {reference}")
    if context:
        lines.append(f'msgctxt "{context}"')
    lines.append(f'msgid "{msgid}"')
    if plural:
        lines.append(f'msgid_plural "{plural}"')
        lines.append('msgstr[0] ""')
        lines.append('msgstr[1] ""')
    else:
        lines.append('msgstr ""')
    return "\n".join(lines) + "\n"


@pytest.fixture(autouse=True)
def _clear_config_cache() -> None:
    app_config.load.cache_clear()


@pytest.fixture()
def write_pot(tmp_path: Path) -> Callable[..., Path]:
    def _write(name: str, *entries: str) -> Path:
        path = tmp_path / name
        path.write_text(pot_text(*entries), encoding="utf-8")
        return path

    return _write


@pytest.fixture()
def fake_oracle() -> FakeOracle:
    return FakeOracle()
