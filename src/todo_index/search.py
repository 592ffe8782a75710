"""Search string tokenization and item filtering.

Quoted phrases ("like this" or 'like this') are kept whole; everything else
is split on whitespace. Filtering is an AND over all tokens, each a
case-insensitive substring test against an item's original text.

Example:
    >>> [t.text for t in tokenize('a "b c" d')]
    ['a', 'd', 'b c']
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence

from todo_index.models import SearchToken, TodoItem

__all__ = ["LITERAL_PATTERN", "tokenize", "filter_items"]

# A quote opens a phrase that closes at the next occurrence of the same quote.
LITERAL_PATTERN = re.compile(r"([\"'])(.*?)\1")


def tokenize(raw: str) -> list[SearchToken]:
    """Split a search string into bare words followed by literal phrases.

    Unmatched quote characters stay in place as part of a bare word.

    Args:
        raw: Search string as typed by the user.

    Returns:
        Bare-word tokens in left-to-right order, then literal-phrase tokens in
        the order the phrases were found.
    """
    phrases = [SearchToken(m.group(2), literal=True) for m in LITERAL_PATTERN.finditer(raw)]
    remainder = LITERAL_PATTERN.sub("", raw)
    words = [SearchToken(word) for word in remainder.split()]
    return words + phrases


def filter_items(items: Iterable[TodoItem], tokens: Sequence[SearchToken]) -> list[TodoItem]:
    """Keep items whose original text contains every token.

    Args:
        items: Items in display order.
        tokens: Tokens from ``tokenize``; empty keeps everything.

    Returns:
        Matching items, in their original order.
    """
    if not tokens:
        return list(items)
    return [item for item in items if all(t.matches(item.original_text) for t in tokens)]
