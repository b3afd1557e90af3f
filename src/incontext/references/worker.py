"""File-change event channel feeding the indexer.

Producers (file watchers, editor hooks, a bulk scan) submit
:class:`FileEvent` objects; a single consumer task applies them to the
index in submission order, so the latest event for a file always wins.
Blocking filesystem work runs in a thread via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from incontext.references.index import FileLike, file_key
from incontext.references.maintainer import FileScanResult, IndexMaintainer

logger = logging.getLogger(__name__)


class FileEventKind(StrEnum):
    """Kind of file lifecycle event."""

    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(slots=True, frozen=True)
class FileEvent:
    """A file lifecycle notification.

    ``text`` optionally carries the new content (e.g. an unsaved editor
    buffer); when absent the file is read from disk.
    """

    path: str
    kind: FileEventKind
    text: str | None = None

    @classmethod
    def changed(cls, path: FileLike, text: str | None = None) -> FileEvent:
        return cls(path=file_key(path), kind=FileEventKind.CHANGED, text=text)

    @classmethod
    def created(cls, path: FileLike, text: str | None = None) -> FileEvent:
        return cls(path=file_key(path), kind=FileEventKind.CREATED, text=text)

    @classmethod
    def deleted(cls, path: FileLike) -> FileEvent:
        return cls(path=file_key(path), kind=FileEventKind.DELETED)


IndexedListener = Callable[[FileEvent, FileScanResult | None], Any]


class IndexWorker:
    """Single-consumer queue that applies file events to the index.

    Usage::

        worker = IndexWorker(maintainer)
        worker.start()
        worker.submit(FileEvent.changed("docs/guide.md"))
        await worker.join()
        await worker.stop()
    """

    def __init__(self, maintainer: IndexMaintainer) -> None:
        self._maintainer = maintainer
        self._queue: asyncio.Queue[FileEvent] = asyncio.Queue()
        self._task: asyncio.Task[None] | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._listeners: list[IndexedListener] = []
        self._processed = 0

    @property
    def maintainer(self) -> IndexMaintainer:
        return self._maintainer

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def processed(self) -> int:
        """Number of events handled so far."""
        return self._processed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def subscribe(self, listener: IndexedListener) -> Callable[[], None]:
        """Call *listener* after each event is applied. Returns unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            self._listeners = [cb for cb in self._listeners if cb is not listener]

        return unsubscribe

    def start(self) -> None:
        """Start the consumer task on the running event loop."""
        if self.running:
            return
        self._loop = asyncio.get_running_loop()
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        """Stop the consumer; queued events that were not reached are dropped."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    def submit(self, event: FileEvent) -> None:
        """Enqueue an event. Must be called from the event loop thread."""
        self._queue.put_nowait(event)

    def submit_threadsafe(self, event: FileEvent) -> None:
        """Enqueue an event from any thread once the worker is started."""
        if self._loop is None:
            raise RuntimeError("IndexWorker is not started")
        self._loop.call_soon_threadsafe(self._queue.put_nowait, event)

    async def join(self) -> None:
        """Wait until every submitted event has been handled."""
        await self._queue.join()

    async def _run(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                result = await asyncio.to_thread(self._apply, event)
                self._processed += 1
                self._notify(event, result)
            except Exception:
                logger.exception("Failed to apply %s event for %s", event.kind, event.path)
            finally:
                self._queue.task_done()

    def _apply(self, event: FileEvent) -> FileScanResult | None:
        if event.kind is FileEventKind.DELETED:
            logger.debug("File deleted: %s", event.path)
            self._maintainer.on_file_removed(event.path)
            return None
        if not self._maintainer.should_process(event.path):
            return None
        logger.debug("File %s: %s", event.kind, event.path)
        return self._maintainer.reindex_file(event.path, event.text)

    def _notify(self, event: FileEvent, result: FileScanResult | None) -> None:
        for cb in self._listeners:
            try:
                cb(event, result)
            except Exception as exc:
                logger.debug("IndexWorker listener error: %s", exc)
