"""Catalog diff classification helpers."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .catalog_index import CatalogIndex
from .model import CatalogEntry, MetadataDelta, is_content_changed, metadata_deltas

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChangedEntry:
    """Pair of same-keyed entries whose content differs."""

    base: CatalogEntry
    target: CatalogEntry

    @property
    def deltas(self) -> tuple[MetadataDelta, ...]:
        return metadata_deltas(self.base, self.target)


@dataclass(frozen=True, slots=True)
class DiffResult:
    """Represent the classification of one base/target comparison."""

    added: tuple[CatalogEntry, ...] = ()
    removed: tuple[CatalogEntry, ...] = ()
    changed: tuple[ChangedEntry, ...] = ()

    @property
    def added_count(self) -> int:
        return len(self.added)

    @property
    def removed_count(self) -> int:
        return len(self.removed)

    @property
    def changed_count(self) -> int:
        return len(self.changed)

    @property
    def total_changes(self) -> int:
        return self.added_count + self.removed_count + self.changed_count

    @property
    def is_clean(self) -> bool:
        return self.total_changes == 0


def partition_keys(
    base: CatalogIndex, target: CatalogIndex
) -> tuple[tuple[str, ...], tuple[str, ...], tuple[str, ...]]:
    """Split keys into (added, removed, common), each in its snapshot order."""
    added = tuple(key for key in target if key not in base)
    removed = tuple(key for key in base if key not in target)
    common = tuple(key for key in base if key in target)
    return added, removed, common


def compare(base: CatalogIndex, target: CatalogIndex) -> DiffResult:
    """Classify target entries against base entries."""
    added_keys, removed_keys, common_keys = partition_keys(base, target)
    changed = tuple(
        ChangedEntry(base=base[key], target=target[key])
        for key in common_keys
        if is_content_changed(base[key], target[key])
    )
    result = DiffResult(
        added=tuple(target[key] for key in added_keys),
        removed=tuple(base[key] for key in removed_keys),
        changed=changed,
    )
    logger.info(
        "Comparison results: added=%d removed=%d changed=%d total=%d",
        result.added_count,
        result.removed_count,
        result.changed_count,
        result.total_changes,
    )
    return result
