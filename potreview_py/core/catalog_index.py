"""Keyed, read-only catalog snapshot built from parsed records."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from types import MappingProxyType

from .model import CatalogEntry, make_key


class CatalogIndex(Mapping[str, CatalogEntry]):
    """Map identity keys to entries for one snapshot (base or target)."""

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, CatalogEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, key: str) -> CatalogEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"CatalogIndex({len(self._entries)} entries)"

    def msgids(self) -> list[str]:
        """Return primary texts in key order."""
        return [entry.msgid for entry in self._entries.values()]


def build(records: Iterable[CatalogEntry]) -> CatalogIndex:
    """Build an index; a later record with a duplicate key replaces the earlier one."""
    entries: dict[str, CatalogEntry] = {}
    for record in records:
        entries[make_key(record)] = record
    return CatalogIndex(entries)
