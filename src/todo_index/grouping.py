"""Grouping and sorting of todo items.

Items are bucketed by one field (file, tag, subtag or status), buckets are
sorted by label and key, and items inside a bucket are sorted by their fixed
``TodoItem.sort_key``. An optional second field splits each bucket into
subgroups, leaving the parent holding no items directly.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from todo_index.models import GroupField, SortDirection, TodoGroup, TodoItem

__all__ = ["group_items", "bucket_key", "bucket_label"]

UNTAGGED_LABEL = "Untagged"
NO_SUBTAG_LABEL = "No subtag"
STATUS_LABELS = {"open": "Open", "done": "Done"}


def bucket_key(item: TodoItem, field: GroupField) -> str:
    """Key of the single bucket ``item`` belongs to under ``field``.

    Tag grouping uses the item's first tag only, so every item lands in
    exactly one bucket per level.
    """
    if field is GroupField.FILE:
        return item.document
    if field is GroupField.STATUS:
        return "done" if item.checked else "open"
    if field is GroupField.TAG:
        return item.main_tag or ""
    if field is GroupField.SUBTAG:
        return item.sub_tag or ""
    raise ValueError(f"Unknown group field: {field}")


def bucket_label(key: str, field: GroupField, items: Sequence[TodoItem]) -> str:
    """Display label for a bucket."""
    if field is GroupField.FILE:
        return items[0].file_name if items else key
    if field is GroupField.STATUS:
        return STATUS_LABELS.get(key, key)
    if field is GroupField.TAG:
        return f"#{key}" if key else UNTAGGED_LABEL
    return key or NO_SUBTAG_LABEL


def group_items(
    items: Iterable[TodoItem],
    group_by: GroupField,
    group_sort: SortDirection = SortDirection.ASC,
    item_sort: SortDirection = SortDirection.ASC,
    sub_group_by: GroupField | None = None,
    sub_group_sort: SortDirection | None = None,
) -> list[TodoGroup]:
    """Arrange items into sorted groups.

    Args:
        items: Filtered items.
        group_by: Field for the first level.
        group_sort: Direction for first-level groups.
        item_sort: Direction for items inside the innermost groups.
        sub_group_by: Optional field for the second level.
        sub_group_sort: Direction for subgroups (defaults to ``group_sort``).

    Returns:
        Non-empty groups, ordered by ``(label.casefold(), key)``.
    """
    levels = [(group_by, group_sort)]
    if sub_group_by is not None:
        levels.append((sub_group_by, sub_group_sort or group_sort))
    return _group_level(list(items), levels, item_sort)


def _group_level(
    items: list[TodoItem],
    levels: list[tuple[GroupField, SortDirection]],
    item_sort: SortDirection,
) -> list[TodoGroup]:
    (field, direction), rest = levels[0], levels[1:]

    buckets: dict[str, list[TodoItem]] = {}
    for item in items:
        buckets.setdefault(bucket_key(item, field), []).append(item)

    groups: list[TodoGroup] = []
    for key, members in buckets.items():
        if not members:
            continue
        label = bucket_label(key, field, members)
        if rest:
            subgroups = _group_level(members, rest, item_sort)
            if not subgroups:
                continue
            groups.append(TodoGroup(key=key, label=label, field=field, groups=tuple(subgroups)))
        else:
            ordered = sorted(members, key=lambda i: i.sort_key, reverse=item_sort.reverse)
            groups.append(TodoGroup(key=key, label=label, field=field, items=tuple(ordered)))

    groups.sort(key=lambda g: (g.label.casefold(), g.key), reverse=direction.reverse)
    return groups
