"""Background index builder.

IndexBuilder runs one build at a time on a worker thread. A build walks
every installed docset, turns its entries into IndexItems, and publishes
the complete list to an IndexStore in a single swap.

Scheduling while a build is running aborts that build (it never
publishes) and starts a new one from a fresh docset snapshot, so the
last published generation always reflects the latest docset state.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
import time
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from docset_manager.index.entries import IndexItem, enumerate_entries, make_index_item
from docset_manager.types import IndexBuildStatus

if TYPE_CHECKING:
    from docset_manager.catalog.models import Docset

logger = logging.getLogger(__name__)

# Entries processed between two abort checks
ABORT_CHECK_INTERVAL = 500

DocsetsProvider = Callable[[], Sequence["Docset"]]
PublishedCallback = Callable[[int, int], None]


class IndexStore:
    """Holds the published index as an immutable tuple."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._items: tuple[IndexItem, ...] = ()
        self._generation = 0

    def items(self) -> tuple[IndexItem, ...]:
        with self._lock:
            return self._items

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def snapshot(self) -> tuple[int, tuple[IndexItem, ...]]:
        """Return (generation, items) read together."""
        with self._lock:
            return self._generation, self._items

    def publish(self, items: Sequence[IndexItem]) -> int:
        """Replace the published items and return the new generation."""
        frozen = tuple(items)
        with self._lock:
            self._items = frozen
            self._generation += 1
            return self._generation


class _Build:
    def __init__(self, number: int) -> None:
        self.number = number
        self.abort = threading.Event()
        self.thread: threading.Thread | None = None


class IndexBuilder:
    """Cancellable, coalescing background index builder."""

    def __init__(
        self,
        docsets: DocsetsProvider,
        store: IndexStore,
        on_published: PublishedCallback | None = None,
    ) -> None:
        self._docsets = docsets
        self._store = store
        self._on_published = on_published
        self._lock = threading.Lock()
        self._schedule_lock = threading.Lock()
        self._build: _Build | None = None
        self._builds_started = 0

    @property
    def status(self) -> IndexBuildStatus:
        with self._lock:
            return IndexBuildStatus.RUNNING if self._build else IndexBuildStatus.IDLE

    @property
    def builds_started(self) -> int:
        with self._lock:
            return self._builds_started

    def schedule(self) -> None:
        """Start a build, superseding any build that is still running."""
        with self._schedule_lock:
            previous = self._abort_current()
            if previous is not None:
                self._join(previous)

            with self._lock:
                self._builds_started += 1
                build = _Build(self._builds_started)
                build.thread = threading.Thread(
                    target=self._run,
                    args=(build,),
                    name=f"docset-index-{build.number}",
                    daemon=True,
                )
                self._build = build
            logger.debug("Starting index build #%d", build.number)
            build.thread.start()

    def cancel(self) -> None:
        """Abort the running build, if any, without starting a new one."""
        with self._schedule_lock:
            previous = self._abort_current()
            if previous is not None:
                self._join(previous)

    def wait(self, timeout: float | None = None) -> bool:
        """Block until no build is running.

        Returns:
            True if the builder is idle afterwards.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            with self._lock:
                build = self._build
            if build is None:
                return True
            if build.thread is None or build.thread is threading.current_thread():
                return False
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            build.thread.join(remaining)
            if build.thread.is_alive():
                return False

    def _abort_current(self) -> _Build | None:
        with self._lock:
            build = self._build
            if build is not None:
                logger.debug("Aborting index build #%d", build.number)
                build.abort.set()
            return build

    @staticmethod
    def _join(build: _Build, timeout: float | None = None) -> None:
        if build.thread is not None and build.thread is not threading.current_thread():
            build.thread.join(timeout)

    def _run(self, build: _Build) -> None:
        try:
            generation: int | None = None
            items = self._collect(build)
            if items is not None:
                with self._lock:
                    if not build.abort.is_set():
                        generation = self._store.publish(items)

            if generation is None:
                logger.debug("Index build #%d discarded", build.number)
            else:
                logger.info(
                    "Index updated: %d items (generation %d)", len(items), generation
                )
                if self._on_published is not None:
                    self._on_published(generation, len(items))
        except Exception:
            logger.exception("Index build #%d failed", build.number)
        finally:
            with self._lock:
                if self._build is build:
                    self._build = None

    def _collect(self, build: _Build) -> list[IndexItem] | None:
        """Return all items, or None if the build was aborted."""
        docsets = [
            dataclasses.replace(d) for d in self._docsets() if d.path is not None
        ]
        items: list[IndexItem] = []
        for docset in docsets:
            if build.abort.is_set():
                return None
            for count, entry in enumerate(enumerate_entries(docset.path), 1):
                if count % ABORT_CHECK_INTERVAL == 0 and build.abort.is_set():
                    return None
                items.append(make_index_item(docset, entry))
        if build.abort.is_set():
            return None
        return items


__all__ = [
    "ABORT_CHECK_INTERVAL",
    "IndexBuilder",
    "IndexStore",
]
