"""POT catalog loading on top of polib."""

from __future__ import annotations

import logging
from pathlib import Path

import polib

from .model import CatalogEntry

logger = logging.getLogger(__name__)


class CatalogReadError(RuntimeError):
    """Represent a missing, unreadable or malformed catalog file."""


def _format_occurrences(occurrences: list[tuple[str, str]]) -> str:
    lines: list[str] = []
    for path, line in occurrences:
        path = str(path).strip()
        if not path:
            continue
        line = str(line or "").strip()
        lines.append(f"{path}:{line}" if line else path)
    return "\n".join(lines)


def _to_entry(record: polib.POEntry) -> CatalogEntry:
    return CatalogEntry.from_fields(
        record.msgid,
        msgid_plural=record.msgid_plural,
        msgctxt=record.msgctxt,
        translator=record.tcomment,
        extracted=record.comment,
        reference=_format_occurrences(record.occurrences),
        flag=", ".join(record.flags),
    )


def load_catalog_text(text: str, *, source: str = "<string>") -> list[CatalogEntry]:
    """Parse POT content into entries in file order, skipping header and obsolete records."""
    try:
        catalog = polib.pofile(text)
    except (OSError, ValueError) as exc:
        raise CatalogReadError(f"Malformed catalog {source}: {exc}") from exc
    entries: list[CatalogEntry] = []
    for record in catalog:
        if record.obsolete or not record.msgid.strip():
            continue
        entries.append(_to_entry(record))
    return entries


def load_catalog(path: Path) -> list[CatalogEntry]:
    """Read and parse one POT file."""
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise CatalogReadError(f"Catalog file not found: {path}") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise CatalogReadError(f"Cannot read catalog {path}: {exc}") from exc
    entries = load_catalog_text(text, source=str(path))
    logger.info("Loaded %d entries from %s", len(entries), path)
    return entries
