"""Tests for search tokenization and filtering."""

from __future__ import annotations

import pytest

from todo_index.models import SearchToken, TodoItem
from todo_index.search import filter_items, tokenize

# =============================================================================
# Fixtures
# =============================================================================


def _item(text: str, document: str = "a.md", line: int = 1) -> TodoItem:
    return TodoItem(document=document, original_text=text, text=text, line_number=line)


@pytest.fixture
def items() -> list[TodoItem]:
    return [
        _item("- [ ] Buy milk at the store #todo", line=1),
        _item("- [ ] Call Bob about the milk", line=2),
        _item("- [x] call bob's brother", line=3),
        _item("- [ ] write report", line=4),
    ]


# =============================================================================
# tokenize Tests
# =============================================================================


class TestTokenize:
    """Tests for tokenize."""

    def test_words_then_phrases(self) -> None:
        """Bare words come first, then phrases, each in discovery order."""
        tokens = tokenize("a \"b c\" d 'e f'")

        assert [t.text for t in tokens] == ["a", "d", "b c", "e f"]
        assert [t.literal for t in tokens] == [False, False, True, True]

    def test_empty_input(self) -> None:
        """Empty and whitespace-only input produce no tokens."""
        assert tokenize("") == []
        assert tokenize("   \t\n ") == []

    def test_phrase_interior_not_split(self) -> None:
        """Whitespace inside a phrase is preserved."""
        tokens = tokenize('"call   bob"')

        assert tokens == [SearchToken("call   bob", literal=True)]

    def test_mixed_quotes_close_on_same_character(self) -> None:
        """A double-quoted phrase may contain a single quote."""
        tokens = tokenize("\"bob's car\" wash")

        assert [t.text for t in tokens] == ["wash", "bob's car"]

    def test_unmatched_quote_is_literal_text(self) -> None:
        """A stray quote stays part of a bare word."""
        tokens = tokenize('say "hello world')

        assert [t.text for t in tokens] == ["say", '"hello', "world"]
        assert not any(t.literal for t in tokens)

    def test_removed_phrase_joins_neighbours(self) -> None:
        """Phrases are removed without inserting whitespace."""
        tokens = tokenize('foo"bar"baz')

        assert [t.text for t in tokens] == ["foobaz", "bar"]

    def test_case_preserved(self) -> None:
        """Tokenizing does not change case."""
        assert [t.text for t in tokenize('Milk "Call Bob"')] == ["Milk", "Call Bob"]

    def test_retokenizing_yields_same_tokens(self) -> None:
        """Re-joining tokens (phrases re-quoted) re-extracts the same multiset."""
        tokens = tokenize("alpha \"beta gamma\" delta 'eps zeta' eta")
        rejoined = " ".join(f'"{t.text}"' if t.literal else t.text for t in tokens)

        assert sorted((t.text, t.literal) for t in tokenize(rejoined)) == sorted(
            (t.text, t.literal) for t in tokens
        )


# =============================================================================
# filter_items Tests
# =============================================================================


class TestFilterItems:
    """Tests for filter_items."""

    def test_no_tokens_passes_everything(self, items: list[TodoItem]) -> None:
        """An empty token list keeps every item."""
        assert filter_items(items, []) == items

    def test_case_insensitive(self, items: list[TodoItem]) -> None:
        """Matching ignores case on both sides."""
        result = filter_items(items, tokenize("MILK"))

        assert [i.line_number for i in result] == [1, 2]

    def test_tokens_are_anded(self, items: list[TodoItem]) -> None:
        """Every token must match."""
        result = filter_items(items, tokenize("milk bob"))

        assert [i.line_number for i in result] == [2]

    def test_phrase_matches_as_unit(self, items: list[TodoItem]) -> None:
        """A phrase only matches the exact substring."""
        assert [i.line_number for i in filter_items(items, tokenize('"call bob"'))] == [2, 3]
        assert filter_items(items, tokenize('"bob call"')) == []

    def test_preserves_order(self, items: list[TodoItem]) -> None:
        """The result is a subsequence of the input."""
        reordered = list(reversed(items))
        result = filter_items(reordered, tokenize("b"))

        positions = [reordered.index(i) for i in result]
        assert positions == sorted(positions)

    def test_more_tokens_never_match_more(self, items: list[TodoItem]) -> None:
        """Adding tokens can only narrow the result."""
        broad = filter_items(items, tokenize("call"))
        narrow = filter_items(items, tokenize("call brother"))

        assert set(narrow) <= set(broad)
        assert len(narrow) < len(broad)

    def test_searches_original_text(self) -> None:
        """Tags removed from display text are still searchable."""
        item = TodoItem(document="a.md", original_text="- [ ] buy milk #todo", text="buy milk")

        assert filter_items([item], tokenize("#todo")) == [item]
