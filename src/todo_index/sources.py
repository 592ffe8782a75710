"""Document sources for the todo index.

A DocumentSource enumerates documents, reads their content, and reports
changes and deletions through callbacks registered with ``subscribe``.

Provided implementations:
- MemoryDocumentSource: documents pushed in-process by a host application
- FileSystemVault: a directory of Markdown files watched with watchdog
"""

from __future__ import annotations

import asyncio
import fnmatch
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from todo_index.errors import DocumentReadError
from todo_index.logging import get_logger
from todo_index.models import Document

logger = get_logger("sources")

__all__ = [
    "ChangedCallback",
    "DeletedCallback",
    "DocumentSource",
    "Subscription",
    "MemoryDocumentSource",
    "FileSystemVault",
    "matches_include",
]

ChangedCallback = Callable[[], None]
DeletedCallback = Callable[[str], None]


def matches_include(identity: str, pattern: str) -> bool:
    """Check a document identity against an ``include_files`` glob.

    An empty pattern accepts everything. Several patterns may be given
    separated by newlines or commas.
    """
    patterns = [p.strip() for p in pattern.replace(",", "\n").split("\n") if p.strip()]
    if not patterns:
        return True
    return any(fnmatch.fnmatch(identity, p) for p in patterns)


# =============================================================================
# Protocols
# =============================================================================


@dataclass
class Subscription:
    """Handle returned by ``DocumentSource.subscribe``.

    ``unsubscribe`` is idempotent.
    """

    _cancel: Callable[[], None]
    _active: bool = field(default=True, init=False)

    @property
    def active(self) -> bool:
        return self._active

    def unsubscribe(self) -> None:
        if self._active:
            self._active = False
            self._cancel()


@runtime_checkable
class DocumentSource(Protocol):
    """Contract a host must satisfy to drive the index."""

    def list_documents(self) -> list[Document]:
        """Return every document currently known to the source."""
        ...

    async def read(self, document: Document) -> str:
        """Return a document's content.

        Raises:
            DocumentReadError: If the content cannot be read.
        """
        ...

    def subscribe(self, on_changed: ChangedCallback, on_deleted: DeletedCallback) -> Subscription:
        """Register change and deletion callbacks."""
        ...


class _CallbackRegistry:
    """Shared subscriber bookkeeping for the concrete sources."""

    def __init__(self) -> None:
        self._subscribers: list[tuple[ChangedCallback, DeletedCallback]] = []

    def _add(self, on_changed: ChangedCallback, on_deleted: DeletedCallback) -> Subscription:
        entry = (on_changed, on_deleted)
        self._subscribers.append(entry)

        def cancel() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return Subscription(cancel)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def _emit_changed(self) -> None:
        for on_changed, _ in list(self._subscribers):
            on_changed()

    def _emit_deleted(self, identity: str) -> None:
        for _, on_deleted in list(self._subscribers):
            on_deleted(identity)


# =============================================================================
# In-memory Source
# =============================================================================


class MemoryDocumentSource(_CallbackRegistry):
    """Documents held in memory and pushed by the host.

    Example:
        >>> source = MemoryDocumentSource()
        >>> source.put("inbox.md", "- [ ] buy milk #todo")
        >>> [d.identity for d in source.list_documents()]
        ['inbox.md']
    """

    def __init__(
        self,
        documents: dict[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        super().__init__()
        self._clock = clock
        self._documents: dict[str, tuple[Document, str]] = {}
        for identity, content in (documents or {}).items():
            self.put(identity, content, notify=False)

    def put(
        self,
        identity: str,
        content: str,
        *,
        mtime: float | None = None,
        notify: bool = True,
    ) -> Document:
        """Add or replace a document and notify subscribers."""
        now = self._clock() if mtime is None else mtime
        document = Document(identity=identity, mtime=now)
        self._documents[identity] = (document, content)
        if notify:
            self._emit_changed()
        return document

    def remove(self, identity: str, *, notify: bool = True) -> bool:
        """Remove a document and notify subscribers of the deletion."""
        if self._documents.pop(identity, None) is None:
            return False
        if notify:
            self._emit_deleted(identity)
        return True

    def list_documents(self) -> list[Document]:
        return [document for document, _ in self._documents.values()]

    async def read(self, document: Document) -> str:
        entry = self._documents.get(document.identity)
        if entry is None:
            raise DocumentReadError("document no longer exists", identity=document.identity)
        return entry[1]

    def subscribe(self, on_changed: ChangedCallback, on_deleted: DeletedCallback) -> Subscription:
        return self._add(on_changed, on_deleted)


# =============================================================================
# Filesystem Vault
# =============================================================================


class _VaultEventHandler(FileSystemEventHandler):
    def __init__(self, vault: FileSystemVault) -> None:
        self.vault = vault

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.vault._on_fs_changed(Path(str(event.src_path)))

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.vault._on_fs_changed(Path(str(event.src_path)))

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.vault._on_fs_deleted(Path(str(event.src_path)))

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self.vault._on_fs_deleted(Path(str(event.src_path)))
            self.vault._on_fs_changed(Path(str(event.dest_path)))


class FileSystemVault(_CallbackRegistry):
    """A directory of Markdown documents.

    Identities are POSIX paths relative to ``root``. Hidden files and
    directories are skipped. Change notifications come from a watchdog
    observer thread and are handed to the event loop that called
    ``subscribe``.

    Example:
        >>> vault = FileSystemVault("~/notes")
        >>> docs = vault.list_documents()
        >>> content = await vault.read(docs[0])
    """

    def __init__(
        self,
        root: str | Path,
        extensions: tuple[str, ...] = (".md",),
        encoding: str = "utf-8",
    ) -> None:
        super().__init__()
        self.root = Path(root).expanduser().resolve()
        self.extensions = extensions
        self.encoding = encoding
        self._observer: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None

    def identity_for(self, path: Path) -> str:
        return path.resolve().relative_to(self.root).as_posix()

    def _should_index(self, path: Path) -> bool:
        if path.suffix.lower() not in self.extensions:
            return False
        try:
            rel = path.resolve().relative_to(self.root)
        except ValueError:
            return False
        return not any(part.startswith(".") for part in rel.parts)

    def list_documents(self) -> list[Document]:
        documents: list[Document] = []
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or not self._should_index(path):
                continue
            try:
                stat = path.stat()
            except OSError as e:
                logger.warning(f"Cannot stat {path}: {e}")
                continue
            documents.append(
                Document(
                    identity=self.identity_for(path),
                    mtime=stat.st_mtime,
                    path=str(path),
                )
            )
        return documents

    async def read(self, document: Document) -> str:
        path = Path(document.path) if document.path else self.root / document.identity
        try:
            return await asyncio.to_thread(path.read_text, encoding=self.encoding, errors="replace")
        except OSError as e:
            raise DocumentReadError(str(e), identity=document.identity) from e

    # =========================================================================
    # Watching
    # =========================================================================

    def subscribe(self, on_changed: ChangedCallback, on_deleted: DeletedCallback) -> Subscription:
        """Register callbacks and start the observer on first subscription.

        Must be called from a running event loop; callbacks run on that loop.
        """
        self._loop = asyncio.get_running_loop()
        handle = self._add(on_changed, on_deleted)
        if self._observer is None:
            self._start_observer()

        def cancel() -> None:
            handle.unsubscribe()
            if not self._subscribers:
                self._stop_observer()

        return Subscription(cancel)

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def _start_observer(self) -> None:
        observer = Observer()
        observer.schedule(_VaultEventHandler(self), str(self.root), recursive=True)
        observer.start()
        self._observer = observer
        logger.info(f"Started file watcher for {self.root}")

    def _stop_observer(self) -> None:
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=2.0)
        self._observer = None
        logger.info("Stopped file watcher")

    def _dispatch(self, callback: Callable[..., None], *args: Any) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        loop.call_soon_threadsafe(callback, *args)

    def _on_fs_changed(self, path: Path) -> None:
        if self._should_index(path):
            self._dispatch(self._emit_changed)

    def _on_fs_deleted(self, path: Path) -> None:
        if path.suffix.lower() not in self.extensions:
            return
        try:
            identity = path.relative_to(self.root).as_posix()
        except ValueError:
            return
        self._dispatch(self._emit_deleted, identity)
