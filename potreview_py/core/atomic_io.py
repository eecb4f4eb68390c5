"""Atomic write helpers for cache blobs and report files."""

from __future__ import annotations

import contextlib
import json
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any


def write_text_atomic(path: Path, text: str, *, encoding: str = "utf-8") -> None:
    """Write text through a sibling temp file and replace the target in one step."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    try:
        with open(tmp, "w", encoding=encoding, newline="\n") as handle:
            handle.write(text)
            handle.flush()
            with contextlib.suppress(OSError):
                os.fsync(handle.fileno())
        os.replace(tmp, path)
    except Exception:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


def dump_json(payload: Mapping[str, Any]) -> str:
    """Serialize a mapping as stable, human-diffable JSON."""
    return json.dumps(payload, ensure_ascii=False, sort_keys=True, indent=2) + "\n"


def write_json_atomic(path: Path, payload: Mapping[str, Any]) -> None:
    """Persist a JSON mapping atomically."""
    write_text_atomic(path, dump_json(payload))
