"""Per-document item cache and refresh watermark.

The cache maps a document identity to the items most recently parsed from
it. Entries are replaced wholesale, never merged. Only the indexer mutates
it.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from todo_index.models import Document, TodoItem

__all__ = ["IndexCache", "RefreshWatermark"]


@dataclass
class RefreshWatermark:
    """Start time of the last successful refresh.

    Attributes:
        timestamp: Unix seconds; 0.0 means "everything is stale".
    """

    timestamp: float = 0.0

    def reset(self) -> None:
        self.timestamp = 0.0

    def advance(self, timestamp: float) -> None:
        self.timestamp = timestamp

    def is_stale(self, document: Document) -> bool:
        """Whether ``document`` changed after the watermark."""
        return document.modified_since(self.timestamp)


class IndexCache:
    """Mapping of document identity to its parsed items.

    Example:
        >>> cache = IndexCache()
        >>> cache.put("a.md", items)
        >>> cache.remove("a.md")
        True
        >>> cache.flatten()
        []
    """

    def __init__(self) -> None:
        self._entries: dict[str, tuple[TodoItem, ...]] = {}

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._entries))

    def get(self, identity: str) -> tuple[TodoItem, ...] | None:
        return self._entries.get(identity)

    def put(self, identity: str, items: Iterable[TodoItem]) -> None:
        """Insert or replace the items for ``identity``."""
        self._entries[identity] = tuple(items)

    def remove(self, identity: str) -> bool:
        """Drop an entry. Returns False if it was not present."""
        return self._entries.pop(identity, None) is not None

    def retain(self, identities: Iterable[str]) -> list[str]:
        """Drop every entry whose identity is not in ``identities``.

        Returns:
            The removed identities, sorted.
        """
        keep = set(identities)
        removed = sorted(i for i in self._entries if i not in keep)
        for identity in removed:
            del self._entries[identity]
        return removed

    def clear(self) -> None:
        self._entries.clear()

    def flatten(self) -> list[TodoItem]:
        """Concatenate all entries, documents ordered by identity."""
        return [item for identity in sorted(self._entries) for item in self._entries[identity]]

    @property
    def item_count(self) -> int:
        return sum(len(items) for items in self._entries.values())
