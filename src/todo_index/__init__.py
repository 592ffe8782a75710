"""todo-index: incremental todo extraction, search and grouping.

Example:
    >>> from todo_index import FileSystemVault, TodoIndexer, load_settings
    >>>
    >>> indexer = TodoIndexer(FileSystemVault("~/notes"), settings=load_settings())
    >>> groups = await indexer.refresh(force_full=True)
"""

import os

from dotenv import find_dotenv, load_dotenv

if not os.environ.get("TODO_INDEX_ENV_LOADED"):
    load_dotenv(find_dotenv(usecwd=True))
    os.environ["TODO_INDEX_ENV_LOADED"] = "1"

from todo_index.cache import IndexCache, RefreshWatermark
from todo_index.errors import (
    ConfigurationError,
    DocumentError,
    DocumentParseError,
    DocumentReadError,
    TodoIndexError,
)
from todo_index.grouping import group_items
from todo_index.indexer import (
    DocumentDeleted,
    RefreshRequested,
    Renderer,
    SearchChanged,
    TodoIndexer,
)
from todo_index.logging import configure_logging, get_logger
from todo_index.metadata import FrontmatterTagSource, MetadataSource
from todo_index.models import (
    Document,
    GroupField,
    LookAndFeel,
    RefreshStats,
    RenderSnapshot,
    SearchToken,
    SortDirection,
    TodoGroup,
    TodoItem,
)
from todo_index.parser import ParserConfig, TodoParser
from todo_index.search import filter_items, tokenize
from todo_index.settings import TodoSettings, load_settings
from todo_index.sources import (
    DocumentSource,
    FileSystemVault,
    MemoryDocumentSource,
    Subscription,
)

__version__ = "0.3.0"

__all__ = [
    # Pipeline
    "TodoIndexer",
    "Renderer",
    "RefreshRequested",
    "DocumentDeleted",
    "SearchChanged",
    "IndexCache",
    "RefreshWatermark",
    "TodoParser",
    "ParserConfig",
    "tokenize",
    "filter_items",
    "group_items",
    # Models
    "Document",
    "GroupField",
    "LookAndFeel",
    "RefreshStats",
    "RenderSnapshot",
    "SearchToken",
    "SortDirection",
    "TodoGroup",
    "TodoItem",
    # Collaborators
    "DocumentSource",
    "FileSystemVault",
    "MemoryDocumentSource",
    "Subscription",
    "MetadataSource",
    "FrontmatterTagSource",
    # Settings
    "TodoSettings",
    "load_settings",
    # Cross-cutting
    "TodoIndexError",
    "ConfigurationError",
    "DocumentError",
    "DocumentReadError",
    "DocumentParseError",
    "configure_logging",
    "get_logger",
]
