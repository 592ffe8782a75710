"""
Root conftest.py for todo-index tests.

This file provides:
1. Marker registration and location-based marking
2. A controllable clock for watermark tests
3. In-memory and on-disk document fixtures
4. A renderer that records every call
"""

from __future__ import annotations

import logging
import os
from collections.abc import Sequence
from pathlib import Path

import pytest

from todo_index.models import RenderSnapshot, TodoGroup
from todo_index.sources import MemoryDocumentSource

# =============================================================================
# PYTEST CONFIGURATION
# =============================================================================


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        norm = str(item.fspath).replace("\\", "/")
        if "/tests/integration/" in norm:
            item.add_marker(pytest.mark.integration)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "slow: Slow-running tests")


# =============================================================================
# ENVIRONMENT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def clean_settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep TODO_INDEX_* variables from the developer's shell out of tests."""
    for name in list(os.environ):
        if name.startswith("TODO_INDEX_") and name != "TODO_INDEX_ENV_LOADED":
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo configure_logging() calls made by a test (CLI runs install handlers)."""
    logger = logging.getLogger("todo_index")
    handlers, level = list(logger.handlers), logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


# =============================================================================
# CLOCK / SOURCE FIXTURES
# =============================================================================


class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float = 1.0) -> float:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def memory_source(clock: FakeClock) -> MemoryDocumentSource:
    """Empty in-memory source sharing the test clock."""
    return MemoryDocumentSource(clock=clock)


# =============================================================================
# RENDERER FIXTURES
# =============================================================================


class RecordingRenderer:
    """Renderer that keeps every call for inspection."""

    def __init__(self) -> None:
        self.calls: list[tuple[list[TodoGroup], RenderSnapshot]] = []

    def render(self, groups: Sequence[TodoGroup], snapshot: RenderSnapshot) -> None:
        self.calls.append((list(groups), snapshot))

    @property
    def last_groups(self) -> list[TodoGroup]:
        return self.calls[-1][0]

    @property
    def last_snapshot(self) -> RenderSnapshot:
        return self.calls[-1][1]


@pytest.fixture
def renderer() -> RecordingRenderer:
    return RecordingRenderer()


# =============================================================================
# VAULT FIXTURES
# =============================================================================


@pytest.fixture
def vault_dir(tmp_path: Path) -> Path:
    """A small vault on disk."""
    root = tmp_path / "vault"
    (root / "projects").mkdir(parents=True)
    (root / ".obsidian").mkdir()

    (root / "inbox.md").write_text("- [ ] buy milk #todo\n- [x] pay rent #todo\n")
    (root / "projects" / "site.md").write_text(
        "---\ntags: [todo/work]\n---\n# Site\n\n- [ ] fix header\n- [ ] write copy\n"
    )
    (root / "journal.md").write_text("- [ ] untagged thought\n")
    (root / "notes.txt").write_text("- [ ] ignored, wrong extension #todo\n")
    (root / ".obsidian" / "hidden.md").write_text("- [ ] hidden #todo\n")
    return root
