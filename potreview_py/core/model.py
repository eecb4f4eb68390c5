"""Catalog entry model with identity and content-equality rules."""

from __future__ import annotations

from dataclasses import dataclass

KEY_SEPARATOR = "||"


@dataclass(frozen=True, slots=True)
class EntryComments:
    """Fixed-shape comment bundle attached to one catalog entry."""

    translator: str = ""
    extracted: str = ""
    reference: str = ""  # newline-delimited `file:line` lines
    flag: str = ""


@dataclass(frozen=True, slots=True)
class CatalogEntry:
    """Represent one translatable unit from a POT catalog."""

    msgid: str
    msgid_plural: str = ""
    msgctxt: str = ""
    comments: EntryComments = EntryComments()

    def __post_init__(self) -> None:
        if not self.msgid.strip():
            raise ValueError("CatalogEntry.msgid must be a non-empty string.")

    @classmethod
    def from_fields(
        cls,
        msgid: str,
        *,
        msgid_plural: str | None = None,
        msgctxt: str | None = None,
        translator: str | None = None,
        extracted: str | None = None,
        reference: str | None = None,
        flag: str | None = None,
    ) -> CatalogEntry:
        """Build an entry, treating absent optional fields as empty strings."""
        return cls(
            msgid=msgid,
            msgid_plural=msgid_plural or "",
            msgctxt=msgctxt or "",
            comments=EntryComments(
                translator=translator or "",
                extracted=extracted or "",
                reference=reference or "",
                flag=flag or "",
            ),
        )

    @property
    def key(self) -> str:
        return make_key(self)


@dataclass(frozen=True, slots=True)
class MetadataDelta:
    """One field-level difference between two same-keyed entries."""

    field: str
    old: str
    new: str


def make_key(entry: CatalogEntry) -> str:
    """Return the identity key shared by one logical string across snapshots."""
    if entry.msgctxt:
        return f"{entry.msgctxt}{KEY_SEPARATOR}{entry.msgid}"
    return entry.msgid


def is_content_changed(base: CatalogEntry, target: CatalogEntry) -> bool:
    """Return whether same-keyed entries differ in translatable content.

    Only the plural form counts; comments and references never do.
    """
    return base.msgid_plural != target.msgid_plural


def metadata_deltas(
    base: CatalogEntry, target: CatalogEntry
) -> tuple[MetadataDelta, ...]:
    """List plural and comment differences for report annotation."""
    pairs = (
        ("msgid_plural", base.msgid_plural, target.msgid_plural),
        ("translator_comment", base.comments.translator, target.comments.translator),
        ("extracted_comment", base.comments.extracted, target.comments.extracted),
    )
    return tuple(
        MetadataDelta(field=field, old=old, new=new)
        for field, old, new in pairs
        if old != new
    )


def parse_references(raw: str) -> tuple[str, ...]:
    """Split raw reference text into trimmed, non-empty location lines."""
    if not raw:
        return ()
    return tuple(line.strip() for line in raw.split("\n") if line.strip())
