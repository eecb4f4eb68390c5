"""Test module for catalog index building."""

from __future__ import annotations

import pytest

from potreview_py.core import catalog_index
from potreview_py.core.model import CatalogEntry


def test_build_last_duplicate_key_wins() -> None:
    """Verify a later record with the same key replaces the earlier one."""
    index = catalog_index.build(
        [
            CatalogEntry(msgid="A", msgid_plural="v1"),
            CatalogEntry(msgid="A", msgid_plural="v2"),
        ]
    )
    assert len(index) == 1
    assert index["A"].msgid_plural == "v2"


def test_build_keeps_context_variants_apart() -> None:
    """Verify the same msgid under different contexts yields distinct keys."""
    index = catalog_index.build(
        [
            CatalogEntry(msgid="Open"),
            CatalogEntry(msgid="Open", msgctxt="menu"),
        ]
    )
    assert list(index) == ["Open", "menu||Open"]
    assert index.msgids() == ["Open", "Open"]


def test_index_is_read_only() -> None:
    """Verify the built index exposes no mutation API."""
    index = catalog_index.build([CatalogEntry(msgid="A")])
    with pytest.raises(TypeError):
        index["B"] = CatalogEntry(msgid="B")  # type: ignore[index]
    assert "A" in index
    assert repr(index) == "CatalogIndex(1 entries)"
