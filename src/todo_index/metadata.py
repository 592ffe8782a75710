"""Document-level tag metadata.

The default metadata collaborator reads the ``tags`` (or ``tag``) key of a
document's YAML frontmatter. Both list and string forms are accepted::

    ---
    tags: [todo, work/urgent]
    ---

    ---
    tags: todo, "#work"
    ---
"""

from __future__ import annotations

import re
from typing import Any, Protocol, runtime_checkable

import yaml

from todo_index.errors import DocumentParseError
from todo_index.models import Document
from todo_index.parser import normalize_tag, split_frontmatter

__all__ = ["MetadataSource", "FrontmatterTagSource"]

_TAG_SPLIT = re.compile(r"[,\s]+")


@runtime_checkable
class MetadataSource(Protocol):
    """Supplies the tag labels attached to a document as a whole."""

    def get_tags(self, document: Document, content: str) -> list[str]: ...


class FrontmatterTagSource:
    """Read document tags from YAML frontmatter."""

    keys: tuple[str, ...] = ("tags", "tag")

    def get_tags(self, document: Document, content: str) -> list[str]:
        """Return normalized frontmatter tags.

        Raises:
            DocumentParseError: If the frontmatter is not valid YAML.
        """
        raw, _ = split_frontmatter(content)
        if raw is None:
            return []
        try:
            data = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise DocumentParseError(
                f"invalid frontmatter: {e}",
                identity=document.identity,
                hint="Check the YAML between the leading '---' lines",
            ) from e
        if not isinstance(data, dict):
            return []

        tags: list[str] = []
        for key in self.keys:
            for tag in _as_list(data.get(key)):
                tag = normalize_tag(tag)
                if tag and tag not in tags:
                    tags.append(tag)
        return tags


def _as_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part for part in _TAG_SPLIT.split(value) if part]
    if isinstance(value, list | tuple):
        return [str(v) for v in value if v is not None]
    return [str(value)]
