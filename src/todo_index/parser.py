"""Todo item extraction from Markdown documents.

A document contributes checkbox lines (``- [ ] task`` / ``- [x] done``) that
fall inside a *tag section*:

- a matching document-level tag (frontmatter) covers the whole document;
- a matching tag on a heading covers everything up to the next heading of
  the same or a higher level;
- a matching tag on any other line covers that line and the lines indented
  below it.

With ``show_all_todos`` every checkbox line is extracted, tagged or not.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from todo_index.models import TodoItem

__all__ = [
    "WILDCARD",
    "CHECKBOX_PATTERN",
    "HEADING_PATTERN",
    "TAG_PATTERN",
    "ParserConfig",
    "TodoParser",
    "normalize_tag",
    "split_frontmatter",
    "tag_matches",
]

# =============================================================================
# Regex Patterns
# =============================================================================

# Task checkbox: - [ ] or - [x] or * [ ] or + [X], any indentation
CHECKBOX_PATTERN = re.compile(r"^(\s*)[-*+]\s+\[([ xX])\]\s+(.*)$")

# ATX heading: # Title ... ###### Title
HEADING_PATTERN = re.compile(r"^ {0,3}(#{1,6})\s+(.*)$")

# Inline tag: #name or #nested/name, not preceded by a word character
TAG_PATTERN = re.compile(r"(?<![\w#/])#([\w/-]+)")

# Fenced code block delimiter
FENCE_PATTERN = re.compile(r"^\s*(```|~~~)")

# YAML frontmatter at the very start of the document
FRONTMATTER_PATTERN = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)

WILDCARD = "*"


# =============================================================================
# Tag Helpers
# =============================================================================


def normalize_tag(tag: str) -> str:
    """Lower-case a tag and strip its ``#`` prefix and trailing slashes."""
    return tag.strip().lstrip("#").rstrip("/").lower()


def tag_matches(tag: str, filters: Iterable[str]) -> bool:
    """Check whether a normalized tag is selected by any filter.

    A tag matches a filter when equal to it or nested under it
    (``todo/work`` matches ``todo``). ``*`` matches every tag.
    """
    for f in filters:
        if f == WILDCARD or tag == f or tag.startswith(f + "/"):
            return True
    return False


def split_frontmatter(content: str) -> tuple[str | None, int]:
    """Split YAML frontmatter from a document.

    Returns:
        Tuple of (frontmatter text or None, number of lines it occupies).
    """
    match = FRONTMATTER_PATTERN.match(content)
    if not match:
        return None, 0
    return match.group(1), match.group(0).count("\n") + (0 if match.group(0).endswith("\n") else 1)


# =============================================================================
# Parser Configuration
# =============================================================================


@dataclass(frozen=True)
class ParserConfig:
    """Configuration for todo extraction.

    Attributes:
        tag_filters: Normalized tag names to extract, or ``("*",)`` for all.
        show_checked: Include ticked checkboxes.
        show_all_todos: Include checkboxes outside any tag section.
    """

    tag_filters: tuple[str, ...] = (WILDCARD,)
    show_checked: bool = False
    show_all_todos: bool = False


# =============================================================================
# TodoParser
# =============================================================================


class TodoParser:
    """Extract todo items from one document.

    Example:
        >>> parser = TodoParser(ParserConfig(tag_filters=("todo",)))
        >>> items = parser.parse("notes/a.md", "- [ ] buy milk #todo")
        >>> items[0].text
        'buy milk'
    """

    def __init__(self, config: ParserConfig | None = None) -> None:
        self.config = config or ParserConfig()

    def matching_tags(self, text: str) -> list[str]:
        """Return the tags in ``text`` selected by the configured filters."""
        found: list[str] = []
        for match in TAG_PATTERN.finditer(text):
            tag = normalize_tag(match.group(1))
            if not tag or tag.replace("/", "").isdigit():
                continue
            if tag_matches(tag, self.config.tag_filters) and tag not in found:
                found.append(tag)
        return found

    def parse(
        self,
        identity: str,
        content: str,
        document_tags: Sequence[str] = (),
    ) -> tuple[TodoItem, ...]:
        """Parse a document into todo items.

        Args:
            identity: Document identity stored on every item.
            content: Full document text.
            document_tags: Document-level tags from the metadata collaborator.

        Returns:
            Items in document order; empty if nothing qualifies.
        """
        config = self.config
        doc_tags = _dedupe(
            t for t in map(normalize_tag, document_tags) if t and tag_matches(t, config.tag_filters)
        )

        _, skip = split_frontmatter(content)
        lines = content.splitlines()

        heading_scope: list[tuple[int, list[str]]] = []
        indent_scope: list[tuple[int, list[str]]] = []
        in_fence = False
        items: list[TodoItem] = []

        for index in range(skip, len(lines)):
            line = lines[index]
            if FENCE_PATTERN.match(line):
                in_fence = not in_fence
                continue
            if in_fence or not line.strip():
                continue

            heading = HEADING_PATTERN.match(line)
            if heading:
                level = len(heading.group(1))
                while heading_scope and heading_scope[-1][0] >= level:
                    heading_scope.pop()
                indent_scope.clear()
                heading_scope.append((level, self.matching_tags(heading.group(2))))
                continue

            indent = len(line) - len(line.lstrip())
            while indent_scope and indent_scope[-1][0] >= indent:
                indent_scope.pop()

            line_tags = self.matching_tags(line)
            checkbox = CHECKBOX_PATTERN.match(line)
            if checkbox:
                covering = _dedupe(
                    [
                        *doc_tags,
                        *(t for _, tags in heading_scope for t in tags),
                        *(t for _, tags in indent_scope for t in tags),
                        *line_tags,
                    ]
                )
                item = self._make_item(identity, line, checkbox, covering, index + 1, indent)
                if self._include(item):
                    items.append(item)

            if line_tags:
                indent_scope.append((indent, line_tags))

        return tuple(items)

    def _include(self, item: TodoItem) -> bool:
        if item.checked and not self.config.show_checked:
            return False
        return bool(item.tags) or self.config.show_all_todos

    def _make_item(
        self,
        identity: str,
        line: str,
        checkbox: re.Match[str],
        tags: list[str],
        line_number: int,
        indent: int,
    ) -> TodoItem:
        body = checkbox.group(3)
        display = TAG_PATTERN.sub(
            lambda m: "" if normalize_tag(m.group(1)) in tags else m.group(0),
            body,
        )
        return TodoItem(
            document=identity,
            original_text=line.strip(),
            text=" ".join(display.split()),
            checked=checkbox.group(2) != " ",
            tags=tuple(tags),
            line_number=line_number,
            indent=indent,
        )


def _dedupe(tags: Iterable[str]) -> list[str]:
    seen: list[str] = []
    for tag in tags:
        if tag not in seen:
            seen.append(tag)
    return seen
