"""Tests for the todo-index CLI."""

from __future__ import annotations

import io
import json
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from todo_index import __version__
from todo_index.cli import app
from todo_index.cli.cmds import RichRenderer
from todo_index.models import GroupField, LookAndFeel, RenderSnapshot, TodoGroup, TodoItem


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _list_json(runner: CliRunner, *args: str) -> dict:
    result = runner.invoke(app, ["list", *args, "--json"])
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


# =============================================================================
# Root App Tests
# =============================================================================


class TestApp:
    """Tests for the root app."""

    def test_version(self, runner: CliRunner) -> None:
        """Test --version prints the version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_commands_registered(self, runner: CliRunner) -> None:
        """Test list and watch are available."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        assert "list" in result.output
        assert "watch" in result.output


# =============================================================================
# list Command Tests
# =============================================================================


class TestListCommand:
    """Tests for the list command."""

    def test_json_output(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test JSON output holds groups and stats."""
        data = _list_json(runner, str(vault_dir))

        assert [g["label"] for g in data["groups"]] == ["inbox", "site"]
        assert [i["text"] for i in data["groups"][0]["items"]] == ["buy milk"]
        assert data["stats"]["documents_seen"] == 3
        assert data["stats"]["force_full"] is True

    def test_search(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test --search narrows the result."""
        data = _list_json(runner, str(vault_dir), "--search", '"write copy"')

        assert data["search"] == '"write copy"'
        assert [i["text"] for g in data["groups"] for i in g["items"]] == ["write copy"]

    def test_group_by_and_show_checked(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test grouping and checked options."""
        data = _list_json(runner, str(vault_dir), "-g", "status", "--show-checked")

        assert [g["label"] for g in data["groups"]] == ["Done", "Open"]
        assert [i["text"] for i in data["groups"][0]["items"]] == ["pay rent"]

    def test_tag_option(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test --tag replaces the configured filters."""
        data = _list_json(runner, str(vault_dir), "--tag", "work")

        assert data["groups"] == []

    def test_show_all(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test --show-all includes untagged items."""
        data = _list_json(runner, str(vault_dir), "--show-all")

        assert "journal" in [g["label"] for g in data["groups"]]

    def test_config_file(self, runner: CliRunner, vault_dir: Path, tmp_path: Path) -> None:
        """Test settings are read from --config."""
        config = tmp_path / "todo.yml"
        config.write_text("group_by: tag\ninclude_files: 'projects/*'\n")

        data = _list_json(runner, str(vault_dir), "--config", str(config))

        assert [g["label"] for g in data["groups"]] == ["#todo"]

    def test_tree_output(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test the default rich tree output."""
        result = runner.invoke(app, ["list", str(vault_dir)])

        assert result.exit_code == 0
        assert "Todos" in result.stdout
        assert "buy milk" in result.stdout
        assert "pay rent" not in result.stdout

    def test_invalid_group_by(self, runner: CliRunner, vault_dir: Path) -> None:
        """Test invalid settings exit with status 1."""
        result = runner.invoke(app, ["list", str(vault_dir), "--group-by", "folder"])

        assert result.exit_code == 1
        assert "Error" in result.output

    def test_missing_vault(self, runner: CliRunner, tmp_path: Path) -> None:
        """Test a missing vault directory is rejected."""
        result = runner.invoke(app, ["list", str(tmp_path / "nope")])

        assert result.exit_code != 0


# =============================================================================
# RichRenderer Tests
# =============================================================================


class TestRichRenderer:
    """Tests for RichRenderer."""

    @pytest.fixture
    def groups(self) -> list[TodoGroup]:
        item = TodoItem(
            document="notes/a.md",
            original_text="- [ ] fix [bug] #todo",
            text="fix [bug]",
            tags=("todo",),
            line_number=7,
        )
        return [TodoGroup(key="notes/a.md", label="a", field=GroupField.FILE, items=(item,))]

    def _render(self, groups: list[TodoGroup], snapshot: RenderSnapshot) -> str:
        console = Console(file=io.StringIO(), record=True, width=120)
        RichRenderer(console).render(groups, snapshot)
        return console.export_text()

    def test_classic_shows_location(self, groups: list[TodoGroup]) -> None:
        """Test classic look shows document and line, markup escaped."""
        output = self._render(groups, RenderSnapshot())

        assert "fix [bug]" in output
        assert "notes/a.md:7" in output

    def test_compact_hides_location(self, groups: list[TodoGroup]) -> None:
        """Test compact look omits the location."""
        output = self._render(groups, RenderSnapshot(look_and_feel=LookAndFeel.COMPACT))

        assert "notes/a.md:7" not in output

    def test_collapsed_section(self, groups: list[TodoGroup]) -> None:
        """Test collapsed groups show only their header."""
        output = self._render(groups, RenderSnapshot(collapsed_sections=("notes/a.md",)))

        assert "a (1)" in output
        assert "fix [bug]" not in output

    def test_empty(self) -> None:
        """Test the empty message."""
        assert "No todos found" in self._render([], RenderSnapshot())
