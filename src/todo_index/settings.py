"""Settings for the todo index.

Every recognized option is a field of ``TodoSettings`` with a documented
default; unknown keys are ignored. ``load_settings`` layers a YAML file and
``TODO_INDEX_*`` environment variables over the defaults.

Example:
    >>> settings = TodoSettings(todo_tags="todo\\nwork", group_by="tag")
    >>> settings.tag_filters
    ['todo', 'work']
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from todo_index.errors import ConfigurationError
from todo_index.models import GroupField, LookAndFeel, RenderSnapshot, SortDirection
from todo_index.parser import WILDCARD, ParserConfig, normalize_tag

__all__ = ["ENV_PREFIX", "TodoSettings", "load_settings"]

ENV_PREFIX = "TODO_INDEX_"

# Fields whose environment value is a newline or comma separated list
_LIST_FIELDS = {"hidden_tags", "collapsed_sections"}


class TodoSettings(BaseModel):
    """Recognized options and their effect on the pipeline.

    Attributes:
        todo_tags: Newline-separated tag filters. Empty means every tag.
        hidden_tags: Filters excluded from extraction.
        auto_refresh: Refresh when the document source reports a change.
        include_files: Glob over document identities; empty accepts all.
        show_checked: Include ticked items.
        show_all_todos: Include items outside any tag section.
        group_by: First-level grouping field.
        sub_group_by: Optional second-level grouping field.
        sort_direction_groups: Direction for first-level groups.
        sort_direction_items: Direction for items.
        sort_direction_sub_groups: Direction for subgroups.
        search: Initial search string.
        look_and_feel: Rendering density hint.
        collapsed_sections: Group keys the renderer shows collapsed.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    todo_tags: str = "todo"
    hidden_tags: list[str] = Field(default_factory=list)
    auto_refresh: bool = True
    include_files: str = ""
    show_checked: bool = False
    show_all_todos: bool = False
    group_by: GroupField = GroupField.FILE
    sub_group_by: GroupField | None = None
    sort_direction_groups: SortDirection = SortDirection.ASC
    sort_direction_items: SortDirection = SortDirection.ASC
    sort_direction_sub_groups: SortDirection = SortDirection.ASC
    search: str = ""
    look_and_feel: LookAndFeel = LookAndFeel.CLASSIC
    collapsed_sections: list[str] = Field(default_factory=list)

    @field_validator("todo_tags", mode="before")
    @classmethod
    def _join_tag_list(cls, value: Any) -> Any:
        if isinstance(value, list | tuple):
            return "\n".join(str(v) for v in value)
        return value

    @field_validator("hidden_tags", mode="before")
    @classmethod
    def _normalize_hidden(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.replace(",", "\n").split("\n")
        if isinstance(value, list | tuple):
            return [str(v).strip().lower() for v in value if str(v).strip()]
        return value

    @field_validator("group_by", "sub_group_by", mode="before")
    @classmethod
    def _parse_group_field(cls, value: Any) -> Any:
        if value in ("", "none", None):
            return None
        if isinstance(value, str):
            return GroupField.from_string(value)
        return value

    # =========================================================================
    # Derived Values
    # =========================================================================

    @property
    def tag_filters(self) -> list[str]:
        """Configured filters: split on newlines, case-folded, blanks dropped."""
        return [t.lower() for t in (line.strip() for line in self.todo_tags.strip().split("\n")) if t]

    @property
    def visible_tag_filters(self) -> list[str]:
        """Configured filters minus hidden ones, compared without ``#``."""
        hidden = {normalize_tag(t) for t in self.hidden_tags}
        return [t for t in self.tag_filters if normalize_tag(t) not in hidden]

    @property
    def parse_tag_filters(self) -> tuple[str, ...]:
        """Filters handed to the parser; the wildcard when none are configured."""
        if not self.tag_filters:
            return (WILDCARD,)
        return tuple(t for t in map(normalize_tag, self.visible_tag_filters) if t)

    def parser_config(self) -> ParserConfig:
        return ParserConfig(
            tag_filters=self.parse_tag_filters,
            show_checked=self.show_checked,
            show_all_todos=self.show_all_todos,
        )

    def snapshot(self, search: str | None = None) -> RenderSnapshot:
        """UI-relevant subset handed to the renderer."""
        return RenderSnapshot(
            todo_tags=tuple(self.tag_filters),
            hidden_tags=tuple(self.hidden_tags),
            look_and_feel=self.look_and_feel,
            group_by=self.group_by,
            sub_group_by=self.sub_group_by,
            collapsed_sections=tuple(self.collapsed_sections),
            search=self.search if search is None else search,
        )


# =============================================================================
# Loading
# =============================================================================


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for name in TodoSettings.model_fields:
        raw = os.environ.get(ENV_PREFIX + name.upper())
        if raw is None:
            continue
        if name == "todo_tags":
            overrides[name] = raw.replace("\\n", "\n").replace(",", "\n")
        elif name in _LIST_FIELDS:
            overrides[name] = [v for v in raw.replace(",", "\n").split("\n") if v.strip()]
        else:
            overrides[name] = raw
    return overrides


def load_settings(path: str | Path | None = None, **overrides: Any) -> TodoSettings:
    """Load settings from an optional YAML file and the environment.

    Precedence (lowest to highest): defaults, YAML file, ``TODO_INDEX_*``
    environment variables, ``overrides``.

    Args:
        path: YAML file with a mapping of setting names to values.
        **overrides: Explicit values, e.g. from CLI flags. ``None`` is skipped.

    Returns:
        Validated settings.

    Raises:
        ConfigurationError: If the file is unreadable, not a mapping, or a
            value fails validation.
    """
    data: dict[str, Any] = {}

    if path is not None:
        path = Path(path)
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ConfigurationError(f"Cannot read settings file: {e}", source=str(path)) from e
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in settings file: {e}", source=str(path)) from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(
                "Settings file must contain a mapping",
                source=str(path),
                hint="Write one 'name: value' pair per line",
            )
        data.update(loaded or {})

    data.update(_env_overrides())
    data.update({k: v for k, v in overrides.items() if v is not None})

    try:
        return TodoSettings.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Invalid settings: {e}",
            source=str(path) if path is not None else None,
            hint="Valid group fields: " + ", ".join(f.value for f in GroupField),
        ) from e
