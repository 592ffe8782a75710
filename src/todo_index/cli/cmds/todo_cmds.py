"""
CLI commands for listing and watching todo items in a vault.

Usage:
    todo-index list ./notes
    todo-index list ./notes --tag todo --tag work --group-by tag --sub-group-by subtag
    todo-index list ./notes --search '"call bob" urgent' --show-checked
    todo-index list ./notes --json
    todo-index watch ./notes --config todo.yml
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from todo_index.errors import ConfigurationError
from todo_index.indexer import TodoIndexer
from todo_index.models import LookAndFeel, RenderSnapshot, TodoGroup, TodoItem
from todo_index.settings import TodoSettings, load_settings
from todo_index.sources import FileSystemVault

console = Console()

CHECK_ICONS = {
    True: "[green]✓[/green]",
    False: "[dim]○[/dim]",
}


# =============================================================================
# Rendering
# =============================================================================


def _format_item(item: TodoItem, snapshot: RenderSnapshot) -> str:
    text = item.text or item.original_text
    line = f"{CHECK_ICONS[item.checked]} {escape(text)}"
    if snapshot.look_and_feel is LookAndFeel.CLASSIC:
        line += f" [dim]{escape(item.document)}:{item.line_number}[/dim]"
    return line


def _add_group(parent: Tree, group: TodoGroup, snapshot: RenderSnapshot) -> None:
    collapsed = group.key in snapshot.collapsed_sections
    branch = parent.add(
        f"[bold cyan]{escape(group.label)}[/bold cyan] [dim]({group.item_count})[/dim]"
    )
    if collapsed:
        return
    for sub in group.groups:
        _add_group(branch, sub, snapshot)
    for item in group.items:
        branch.add(_format_item(item, snapshot))


class RichRenderer:
    """Render groups as a rich tree."""

    def __init__(self, out: Console | None = None) -> None:
        self.console = out or console
        self.renders = 0

    def build(self, groups: Sequence[TodoGroup], snapshot: RenderSnapshot) -> Tree:
        title = "Todos"
        if snapshot.search:
            title += f" [dim]matching[/dim] {escape(snapshot.search)}"
        tree = Tree(f"[bold]{title}[/bold]")
        for group in groups:
            _add_group(tree, group, snapshot)
        return tree

    def render(self, groups: Sequence[TodoGroup], snapshot: RenderSnapshot) -> None:
        self.renders += 1
        if not groups:
            self.console.print("[dim]No todos found[/dim]")
            return
        self.console.print(self.build(groups, snapshot))


# =============================================================================
# Helpers
# =============================================================================


def _settings_from_options(config: Path | None, **options: Any) -> TodoSettings:
    tags = options.pop("tags", None)
    if tags:
        options["todo_tags"] = "\n".join(tags)
    try:
        return load_settings(config, **options)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


VaultArg = Annotated[
    Path,
    typer.Argument(help="Directory of Markdown documents", exists=True, file_okay=False),
]
ConfigOpt = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="YAML settings file", exists=True, dir_okay=False),
]
TagOpt = Annotated[
    list[str] | None,
    typer.Option("--tag", "-t", help="Tag to extract (repeatable; default from settings)"),
]
GroupByOpt = Annotated[
    str | None,
    typer.Option("--group-by", "-g", help="Group by: file, tag, subtag, status"),
]
SubGroupByOpt = Annotated[
    str | None,
    typer.Option("--sub-group-by", help="Second-level grouping field"),
]
SearchOpt = Annotated[
    str | None,
    typer.Option("--search", "-s", help='Search terms; quote phrases: \'"call bob"\''),
]
ShowCheckedOpt = Annotated[
    bool | None,
    typer.Option("--show-checked/--hide-checked", help="Include ticked items"),
]
ShowAllOpt = Annotated[
    bool | None,
    typer.Option("--show-all/--tagged-only", help="Include items outside tag sections"),
]


# =============================================================================
# Commands
# =============================================================================


def list_cmd(
    vault: VaultArg,
    config: ConfigOpt = None,
    tags: TagOpt = None,
    group_by: GroupByOpt = None,
    sub_group_by: SubGroupByOpt = None,
    search: SearchOpt = None,
    show_checked: ShowCheckedOpt = None,
    show_all: ShowAllOpt = None,
    output_json: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
):
    """List todo items in a vault, grouped and filtered."""
    settings = _settings_from_options(
        config,
        tags=tags,
        group_by=group_by,
        sub_group_by=sub_group_by,
        search=search,
        show_checked=show_checked,
        show_all_todos=show_all,
    )
    renderer = None if output_json else RichRenderer()
    indexer = TodoIndexer(FileSystemVault(vault), renderer, settings)
    groups = asyncio.run(indexer.refresh(force_full=True))

    if output_json:
        stats = indexer.last_refresh
        data = {
            "vault": str(vault),
            "search": indexer.search_term,
            "groups": [g.to_dict() for g in groups],
            "stats": stats.to_dict() if stats else {},
        }
        typer.echo(json.dumps(data, indent=2))


def watch_cmd(
    vault: VaultArg,
    config: ConfigOpt = None,
    tags: TagOpt = None,
    group_by: GroupByOpt = None,
    sub_group_by: SubGroupByOpt = None,
    search: SearchOpt = None,
    show_checked: ShowCheckedOpt = None,
    show_all: ShowAllOpt = None,
):
    """Watch a vault and re-render whenever documents change."""
    settings = _settings_from_options(
        config,
        tags=tags,
        group_by=group_by,
        sub_group_by=sub_group_by,
        search=search,
        show_checked=show_checked,
        show_all_todos=show_all,
    )

    async def _watch() -> None:
        async with TodoIndexer(FileSystemVault(vault), RichRenderer(), settings):
            console.print(f"[dim]Watching {vault} (Ctrl+C to quit)[/dim]")
            await asyncio.Event().wait()

    try:
        asyncio.run(_watch())
    except KeyboardInterrupt:
        console.print("[dim]Stopped[/dim]")


def register(parent: typer.Typer):
    """Register todo commands with the parent CLI app."""
    parent.command("list")(list_cmd)
    parent.command("watch")(watch_cmd)
