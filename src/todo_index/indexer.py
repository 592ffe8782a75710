"""Refresh orchestration for the todo index.

TodoIndexer owns the IndexCache, the RefreshWatermark and the active search
term. A refresh cycle re-parses documents changed since the watermark,
flattens the cache, filters it against the search term, groups the result
and hands it to the renderer.

Change notifications from the document source become messages on a queue
consumed by a single task, so cycles never interleave. Direct calls to
``refresh``/``delete_document`` are serialized by the same lock.

Example:
    >>> source = FileSystemVault("~/notes")
    >>> async with TodoIndexer(source, renderer, settings) as indexer:
    ...     await indexer.set_search('"call bob"')
    ...     print(indexer.groups)
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from todo_index.cache import IndexCache, RefreshWatermark
from todo_index.errors import log_exception
from todo_index.grouping import group_items
from todo_index.logging import get_logger
from todo_index.metadata import FrontmatterTagSource, MetadataSource
from todo_index.models import Document, RefreshStats, RenderSnapshot, TodoGroup, TodoItem
from todo_index.parser import TodoParser
from todo_index.search import filter_items, tokenize
from todo_index.settings import TodoSettings
from todo_index.sources import DocumentSource, Subscription, matches_include

logger = get_logger("indexer")

__all__ = [
    "Renderer",
    "RefreshRequested",
    "DocumentDeleted",
    "SearchChanged",
    "Message",
    "TodoIndexer",
]


@runtime_checkable
class Renderer(Protocol):
    """Receives every refresh result. Has no access to the index itself."""

    def render(self, groups: Sequence[TodoGroup], snapshot: RenderSnapshot) -> None: ...


# =============================================================================
# Messages
# =============================================================================


@dataclass(frozen=True)
class RefreshRequested:
    """Run a refresh; ``force_full`` clears the cache first."""

    force_full: bool = False


@dataclass(frozen=True)
class DocumentDeleted:
    """Drop a document's items without re-parsing anything."""

    identity: str


@dataclass(frozen=True)
class SearchChanged:
    """Replace the active search term and refresh."""

    term: str


Message = RefreshRequested | DocumentDeleted | SearchChanged


# =============================================================================
# TodoIndexer
# =============================================================================


class TodoIndexer:
    """Coordinates parsing, caching, filtering, grouping and rendering.

    Args:
        source: Document source to index and subscribe to.
        renderer: Receives groups and a settings snapshot after every cycle.
        settings: Settings, or a zero-argument callable returning the current
            settings (read at the start of every cycle).
        metadata: Document-level tag provider. Defaults to frontmatter tags.
        clock: Time source for the watermark.
    """

    def __init__(
        self,
        source: DocumentSource,
        renderer: Renderer | None = None,
        settings: TodoSettings | Callable[[], TodoSettings] | None = None,
        *,
        metadata: MetadataSource | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._source = source
        self._renderer = renderer
        if settings is None:
            settings = TodoSettings()
        if isinstance(settings, TodoSettings):
            fixed = settings
            self._settings_provider: Callable[[], TodoSettings] = lambda: fixed
        else:
            self._settings_provider = settings
        self._metadata = metadata or FrontmatterTagSource()
        self._clock = clock

        self._cache = IndexCache()
        self._watermark = RefreshWatermark()
        self._search_term = self._settings_provider().search
        self._groups: list[TodoGroup] = []
        self._last_refresh: RefreshStats | None = None

        self._lock = asyncio.Lock()
        self._queue: asyncio.Queue[Message] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._subscription: Subscription | None = None

    # =========================================================================
    # State (read-only views)
    # =========================================================================

    @property
    def settings(self) -> TodoSettings:
        return self._settings_provider()

    @property
    def cache(self) -> IndexCache:
        return self._cache

    @property
    def watermark(self) -> float:
        return self._watermark.timestamp

    @property
    def search_term(self) -> str:
        return self._search_term

    @property
    def groups(self) -> list[TodoGroup]:
        return list(self._groups)

    @property
    def last_refresh(self) -> RefreshStats | None:
        return self._last_refresh

    @property
    def is_open(self) -> bool:
        return self._task is not None

    def items(self) -> list[TodoItem]:
        """Flattened cache contents, unfiltered."""
        return self._cache.flatten()

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def open(self) -> None:
        """Subscribe to the source, start the message loop, queue a refresh."""
        if self._task is not None:
            return
        self._subscription = self._source.subscribe(self._on_changed, self._on_deleted)
        self._task = asyncio.create_task(self._process_messages())
        self.post(RefreshRequested())
        logger.debug("Indexer opened")

    async def close(self) -> None:
        """Unsubscribe from the source and stop the message loop."""
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None

        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        dropped = 0
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()
            dropped += 1
        logger.debug("Indexer closed", dropped_messages=dropped)

    async def __aenter__(self) -> TodoIndexer:
        await self.open()
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # =========================================================================
    # Messages
    # =========================================================================

    def post(self, message: Message) -> None:
        """Queue a message for the processing loop.

        Messages posted while the indexer is closed are dropped.
        """
        if self._task is None:
            logger.debug(f"Dropped {type(message).__name__}: indexer is closed")
            return
        self._queue.put_nowait(message)

    async def join(self) -> None:
        """Wait until every queued message has been processed.

        Returns immediately once the indexer is closed.
        """
        await self._queue.join()

    async def handle(self, message: Message) -> None:
        """Process one message immediately."""
        if isinstance(message, RefreshRequested):
            await self.refresh(force_full=message.force_full)
        elif isinstance(message, DocumentDeleted):
            await self.delete_document(message.identity)
        elif isinstance(message, SearchChanged):
            await self.set_search(message.term)
        else:
            raise TypeError(f"Unknown message: {message!r}")

    async def _process_messages(self) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self.handle(message)
            except Exception as e:
                logger.exception(f"Error processing {type(message).__name__}: {e}")
            finally:
                self._queue.task_done()

    def _on_changed(self) -> None:
        if self.settings.auto_refresh:
            self.post(RefreshRequested())

    def _on_deleted(self, identity: str) -> None:
        self.post(DocumentDeleted(identity))

    # =========================================================================
    # Pipeline
    # =========================================================================

    async def refresh(self, force_full: bool = False) -> list[TodoGroup]:
        """Re-parse changed documents and regroup.

        Args:
            force_full: Parse every document again; the cache is cleared and
                refilled once parsing completes.

        Returns:
            The new groups.
        """
        async with self._lock:
            started = self._clock()
            t0 = time.perf_counter()
            settings = self.settings
            stats = RefreshStats(force_full=force_full)

            documents = [
                d
                for d in self._source.list_documents()
                if matches_include(d.identity, settings.include_files)
            ]
            stats.documents_seen = len(documents)

            if force_full:
                changed = documents
            else:
                changed = [
                    d
                    for d in documents
                    if d.identity not in self._cache or self._watermark.is_stale(d)
                ]
            parser = TodoParser(settings.parser_config())
            results = await asyncio.gather(*(self._parse_document(parser, d) for d in changed))

            # State is only mutated from here on, with no awaits.
            if force_full:
                self._watermark.reset()
                self._cache.clear()
            removed = self._cache.retain(d.identity for d in documents)
            stats.documents_removed = len(removed)
            for identity, items, ok in results:
                self._cache.put(identity, items)
                if not ok:
                    stats.documents_failed += 1
            stats.documents_parsed = len(changed)

            self._watermark.advance(started)
            self._regroup(settings, stats)
            stats.duration_ms = (time.perf_counter() - t0) * 1000
            self._last_refresh = stats

        logger.info("Refresh complete", **stats.to_dict())
        self._render(settings)
        return self.groups

    async def delete_document(self, identity: str) -> bool:
        """Drop a document's items and regroup without parsing.

        Returns:
            False if the identity was not in the cache (nothing else changes
            apart from a regroup).
        """
        async with self._lock:
            removed = self._cache.remove(identity)
            settings = self.settings
            self._regroup(settings)

        logger.debug(f"Deleted {identity}", removed=removed)
        self._render(settings)
        return removed

    async def set_search(self, term: str) -> list[TodoGroup]:
        """Replace the search term and run an incremental refresh."""
        self._search_term = term
        return await self.refresh()

    def rerender(self) -> None:
        """Send the current groups to the renderer again without regrouping."""
        self._render(self.settings)

    async def _parse_document(
        self, parser: TodoParser, document: Document
    ) -> tuple[str, tuple[TodoItem, ...], bool]:
        try:
            content = await self._source.read(document)
            tags = self._metadata.get_tags(document, content)
            return document.identity, parser.parse(document.identity, content, tags), True
        except Exception as e:
            log_exception(logger, f"Skipping {document.identity}", e, include_traceback=False)
            return document.identity, (), False

    def _regroup(self, settings: TodoSettings, stats: RefreshStats | None = None) -> None:
        items = self._cache.flatten()
        matched = filter_items(items, tokenize(self._search_term))
        self._groups = group_items(
            matched,
            settings.group_by,
            settings.sort_direction_groups,
            settings.sort_direction_items,
            settings.sub_group_by,
            settings.sort_direction_sub_groups,
        )
        if stats is not None:
            stats.items = len(items)
            stats.items_matched = len(matched)

    def _render(self, settings: TodoSettings) -> None:
        if self._renderer is not None:
            self._renderer.render(self.groups, settings.snapshot(self._search_term))
