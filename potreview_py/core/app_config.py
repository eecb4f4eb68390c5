"""Repository-local configuration for diff, matching and report settings."""

from __future__ import annotations

import importlib
from dataclasses import dataclass, replace
from functools import lru_cache
from pathlib import Path
from types import ModuleType
from typing import Any

tomllib: ModuleType | None
try:  # Python 3.11+
    tomllib = importlib.import_module("tomllib")
except ModuleNotFoundError:  # pragma: no cover
    tomllib = None

CONFIG_RELPATH = Path("config") / "potreview.toml"
DEFAULT_MODEL = "anthropic/claude-3.5-sonnet"


@dataclass(frozen=True, slots=True)
class AppConfig:
    """Store effective cache paths, matcher limits and report layout."""

    cache_dir: str = ".potreview/cache"
    cache_filename: str = "match_cache.json"
    model: str = DEFAULT_MODEL
    batch_size: int = 1000
    max_batches: int = 10
    max_candidate_length: int = 200
    batch_delay_ms: int = 500
    query_delay_ms: int = 500
    timeout_ms: int = 30_000
    row_limit: int = 100
    truncate_width: int = 50

    def cache_path(self, root: Path) -> Path:
        return root / self.cache_dir / self.cache_filename


def _candidate_roots(root: Path | None) -> list[Path]:
    roots = [Path.cwd()]
    if root is not None:
        roots.append(root)
    seen: set[Path] = set()
    out: list[Path] = []
    for entry in roots:
        entry = entry.resolve()
        if entry in seen:
            continue
        seen.add(entry)
        out.append(entry)
    return out


def _load_toml(path: Path) -> dict[str, Any]:
    if tomllib is None or not path.exists():
        return {}
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def _clamp_int(value: Any, *, default: int, low: int, high: int) -> int:
    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(low, min(high, parsed))


def _text(value: Any, *, default: str) -> str:
    if not isinstance(value, str):
        return default
    return value.strip() or default


def _apply(cfg: AppConfig, data: dict[str, Any]) -> AppConfig:
    paths = data.get("paths", {})
    if isinstance(paths, dict):
        cfg = replace(cfg, cache_dir=_text(paths.get("cache_dir"), default=cfg.cache_dir))
    cache = data.get("cache", {})
    if isinstance(cache, dict):
        cfg = replace(
            cfg,
            cache_filename=_text(cache.get("filename"), default=cfg.cache_filename),
        )
    matching = data.get("matching", {})
    if isinstance(matching, dict):
        cfg = replace(
            cfg,
            model=_text(matching.get("model"), default=cfg.model),
            batch_size=_clamp_int(
                matching.get("batch_size"), default=cfg.batch_size, low=1, high=5000
            ),
            max_batches=_clamp_int(
                matching.get("max_batches"), default=cfg.max_batches, low=1, high=50
            ),
            max_candidate_length=_clamp_int(
                matching.get("max_candidate_length"),
                default=cfg.max_candidate_length,
                low=10,
                high=2000,
            ),
            batch_delay_ms=_clamp_int(
                matching.get("batch_delay_ms"),
                default=cfg.batch_delay_ms,
                low=0,
                high=60_000,
            ),
            query_delay_ms=_clamp_int(
                matching.get("query_delay_ms"),
                default=cfg.query_delay_ms,
                low=0,
                high=60_000,
            ),
            timeout_ms=_clamp_int(
                matching.get("timeout_ms"),
                default=cfg.timeout_ms,
                low=1000,
                high=120_000,
            ),
        )
    report = data.get("report", {})
    if isinstance(report, dict):
        cfg = replace(
            cfg,
            row_limit=_clamp_int(
                report.get("row_limit"), default=cfg.row_limit, low=1, high=1000
            ),
            truncate_width=_clamp_int(
                report.get("truncate_width"), default=cfg.truncate_width, low=10, high=200
            ),
        )
    return cfg


@lru_cache(maxsize=8)
def load(root: Path | None = None) -> AppConfig:
    """Load and merge `config/potreview.toml` from the working directory and root."""
    cfg = AppConfig()
    for base in _candidate_roots(root):
        cfg = _apply(cfg, _load_toml(base / CONFIG_RELPATH))
    return cfg
