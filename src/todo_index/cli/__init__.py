from __future__ import annotations

import typer
from rich.console import Console

from todo_index import __version__
from todo_index.cli.cmds import register_todo
from todo_index.logging import configure_logging

console = Console()

_TYPER_HELP = """Extract, search and group todo items from a folder of Markdown notes.

**Quick start:**

* `todo-index list ./notes`: Show open items tagged #todo, grouped by file
* `todo-index list ./notes -g tag --sub-group-by subtag`: Group by tag, then subtag
* `todo-index list ./notes -s '"call bob"'`: Search with a quoted phrase
* `todo-index watch ./notes`: Re-render whenever a note changes
"""


def version_callback(value: bool):
    """Show version and exit."""
    if value:
        console.print(f"todo-index [dim]v{__version__}[/dim]")
        raise typer.Exit()


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=_TYPER_HELP,
    rich_markup_mode="markdown",
)


@app.callback()
def main_callback(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level for diagnostics."),
    log_json: bool = typer.Option(False, "--log-json", help="Emit logs as JSON lines."),
):
    """todo-index: incremental todo lists for Markdown vaults."""
    configure_logging(level=log_level, format="json" if log_json else "human")


register_todo(app)


def main():
    app()


if __name__ == "__main__":
    main()
