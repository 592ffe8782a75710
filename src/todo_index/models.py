"""Data models for todo-index.

Defines the immutable values that flow through the pipeline:

- TodoItem: one checkbox line extracted from a document
- TodoGroup: one bucket of items (optionally holding subgroups)
- SearchToken: one unit of a tokenized search string
- Document: a source document as reported by a DocumentSource
- RefreshStats / RenderSnapshot: what a refresh cycle reports outward
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import PurePosixPath
from typing import Any


class GroupField(str, Enum):
    """Item attribute used to bucket items into groups."""

    FILE = "file"
    TAG = "tag"
    SUBTAG = "subtag"
    STATUS = "status"

    @classmethod
    def from_string(cls, value: str) -> GroupField:
        """Parse a grouping field (case-insensitive).

        ``page`` is accepted as an alias of ``file``.
        """
        normalized = value.strip().lower()
        if normalized == "page":
            return cls.FILE
        return cls(normalized)


class SortDirection(str, Enum):
    """Sort direction for groups, subgroups and items."""

    ASC = "asc"
    DESC = "desc"

    @property
    def reverse(self) -> bool:
        return self is SortDirection.DESC


class LookAndFeel(str, Enum):
    """Rendering density hint passed through to the renderer."""

    CLASSIC = "classic"
    COMPACT = "compact"


# =============================================================================
# Todo Items
# =============================================================================


@dataclass(frozen=True)
class TodoItem:
    """A single task line extracted from a document.

    Attributes:
        document: Identity (path-like key) of the owning document.
        original_text: The source line without leading indentation.
        text: Display text with the checkbox marker and matched tags removed.
        checked: Whether the checkbox is ticked.
        tags: Matching tags covering this line, lower-cased, without ``#``.
        line_number: 1-based line in the document.
        indent: Number of leading whitespace characters.
    """

    document: str
    original_text: str
    text: str
    checked: bool = False
    tags: tuple[str, ...] = ()
    line_number: int = 0
    indent: int = 0

    @property
    def main_tag(self) -> str | None:
        """First segment of the first tag (``todo/work`` -> ``todo``)."""
        if not self.tags:
            return None
        return self.tags[0].split("/", 1)[0]

    @property
    def sub_tag(self) -> str | None:
        """Remainder of the first tag after its first ``/``, if any."""
        if not self.tags or "/" not in self.tags[0]:
            return None
        return self.tags[0].split("/", 1)[1]

    @property
    def file_name(self) -> str:
        """Stem of the owning document identity."""
        return PurePosixPath(self.document).stem

    @property
    def sort_key(self) -> tuple[str, int, str]:
        """Fixed item ordering: document, then line, then original text."""
        return (self.document, self.line_number, self.original_text)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "document": self.document,
            "original_text": self.original_text,
            "text": self.text,
            "checked": self.checked,
            "tags": list(self.tags),
            "line_number": self.line_number,
            "indent": self.indent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TodoItem:
        """Create a TodoItem from a dictionary."""
        return cls(
            document=data["document"],
            original_text=data["original_text"],
            text=data.get("text", data["original_text"]),
            checked=data.get("checked", False),
            tags=tuple(data.get("tags", ())),
            line_number=data.get("line_number", 0),
            indent=data.get("indent", 0),
        )


@dataclass(frozen=True)
class TodoGroup:
    """One organizational bucket of todo items.

    When sub-grouping is enabled ``items`` is empty and every item lives in
    one of ``groups``.

    Attributes:
        key: Bucket key (document identity, tag name, ...).
        label: Display label.
        field: The grouping field that produced this bucket.
        items: Items held directly by this group.
        groups: Nested subgroups.
    """

    key: str
    label: str
    field: GroupField
    items: tuple[TodoItem, ...] = ()
    groups: tuple[TodoGroup, ...] = ()

    @property
    def item_count(self) -> int:
        """Items in this group including those in subgroups."""
        return len(self.items) + sum(g.item_count for g in self.groups)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": self.key,
            "label": self.label,
            "field": self.field.value,
            "items": [item.to_dict() for item in self.items],
            "groups": [group.to_dict() for group in self.groups],
        }


@dataclass(frozen=True)
class SearchToken:
    """One search term.

    Literal phrases came from quoted input and may contain whitespace; at
    filter time both kinds match as case-insensitive substrings.
    """

    text: str
    literal: bool = False

    def matches(self, text: str) -> bool:
        return self.text.casefold() in text.casefold()


# =============================================================================
# Documents
# =============================================================================


@dataclass(frozen=True)
class Document:
    """A document reported by a DocumentSource.

    Attributes:
        identity: Stable key, usually a vault-relative POSIX path.
        mtime: Last modification time (Unix seconds).
        path: Absolute filesystem path, for filesystem-backed sources.
    """

    identity: str
    mtime: float = 0.0
    path: str | None = None

    def modified_since(self, timestamp: float) -> bool:
        return self.mtime > timestamp


# =============================================================================
# Refresh Reporting
# =============================================================================


@dataclass
class RefreshStats:
    """Statistics from one refresh cycle.

    Attributes:
        force_full: Whether the cache was cleared first.
        documents_seen: Candidate documents after the include filter.
        documents_parsed: Documents (re-)parsed in this cycle.
        documents_failed: Documents whose read or parse raised.
        documents_removed: Cache entries dropped for vanished documents.
        items: Items in the flattened cache.
        items_matched: Items passing the search filter.
        duration_ms: Wall time of the cycle.
    """

    force_full: bool = False
    documents_seen: int = 0
    documents_parsed: int = 0
    documents_failed: int = 0
    documents_removed: int = 0
    items: int = 0
    items_matched: int = 0
    duration_ms: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        return {
            "force_full": self.force_full,
            "documents_seen": self.documents_seen,
            "documents_parsed": self.documents_parsed,
            "documents_failed": self.documents_failed,
            "documents_removed": self.documents_removed,
            "items": self.items,
            "items_matched": self.items_matched,
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass(frozen=True)
class RenderSnapshot:
    """UI-relevant settings handed to the renderer alongside the groups."""

    todo_tags: tuple[str, ...] = ()
    hidden_tags: tuple[str, ...] = ()
    look_and_feel: LookAndFeel = LookAndFeel.CLASSIC
    group_by: GroupField = GroupField.FILE
    sub_group_by: GroupField | None = None
    collapsed_sections: tuple[str, ...] = ()
    search: str = ""
