"""Docset lifecycle controller.

This module provides the high-level API used by frontends:
- refresh_catalog(): Reload the docset catalog (network, cache fallback)
- download_docset(): Install a docset in the background
- cancel_download(): Abort the active download
- remove_docset(): Delete an installed docset
- rebuild_index() / index_items(): Maintain and read the entry index

Every change to the set of installed docsets emits catalog_changed,
which schedules an index rebuild.
"""

from __future__ import annotations

import logging
import shutil
import threading
from collections.abc import Callable
from typing import Any

import httpx

from docset_manager.catalog.models import Docset
from docset_manager.catalog.store import (
    CatalogParseError,
    CatalogStore,
    CatalogUnavailableError,
)
from docset_manager.config import Settings
from docset_manager.download.manager import DownloadManager, NoActiveDownloadError
from docset_manager.events import EventBus
from docset_manager.index.builder import IndexBuilder, IndexStore
from docset_manager.index.entries import IndexItem
from docset_manager.types import DownloadOutcome, DownloadProgress, DownloadStatus

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[Docset], bool]


class DocsetNotFoundError(Exception):
    """Raised when a docset name is not in the catalog."""

    def __init__(self, name: str, code: str = "docset_not_found") -> None:
        super().__init__(f"Docset not found: {name}")
        self.name = name
        self.code = code


class DocsetNotInstalledError(Exception):
    """Raised when removing a docset that is not installed."""

    def __init__(self, name: str, code: str = "docset_not_installed") -> None:
        super().__init__(f"Docset not installed: {name}")
        self.name = name
        self.code = code


class RemovalError(Exception):
    """Raised when an installed docset directory cannot be deleted."""

    def __init__(self, message: str, code: str = "removal_failed") -> None:
        super().__init__(message)
        self.code = code


class DocsetLifecycleController:
    """Coordinates catalog, downloads, removals and the index.

    Args:
        settings: Application settings.
        client: HTTP client shared by catalog and downloads. One is created
            (and closed by close()) when not provided.
        events: Event bus for outbound notifications.
    """

    def __init__(
        self,
        settings: Settings,
        client: httpx.Client | None = None,
        events: EventBus | None = None,
    ) -> None:
        self.settings = settings
        self.events = events or EventBus()
        self._owns_client = client is None
        self._client = client or httpx.Client()
        self._lock = threading.RLock()

        self._download_status = DownloadStatus.NONE
        self._download_name: str | None = None
        self._download_message = ""
        self._progress = DownloadProgress()
        self._last_status = ""

        settings.docsets_dir.mkdir(parents=True, exist_ok=True)
        settings.icons_dir.mkdir(parents=True, exist_ok=True)

        self.catalog = CatalogStore(settings, self._client)
        self.downloads = DownloadManager(settings, self._client)
        self.index = IndexStore()
        self.indexer = IndexBuilder(
            self.catalog.current,
            self.index,
            on_published=self.events.index_published.emit,
        )

        self.events.catalog_changed.connect(self.indexer.schedule)

    # Catalog

    def docsets(self) -> list[Docset]:
        return self.catalog.current()

    def get_docset(self, name: str) -> Docset:
        """Return the catalog entry called name.

        Raises:
            DocsetNotFoundError: If there is no such docset.
        """
        docset = self.catalog.find(name)
        if docset is None:
            raise DocsetNotFoundError(name)
        return docset

    def refresh_catalog(self) -> bool:
        """Reload the catalog.

        Errors are reported through the error event; the previous catalog
        stays in place.

        Returns:
            True if a usable catalog was loaded.
        """
        self._debug(f"Downloading docset list from '{self.settings.catalog_url}'")
        try:
            self.catalog.refresh()
        except (CatalogUnavailableError, CatalogParseError) as e:
            self._error(str(e))
            return False

        self._debug("Docset list updated.")
        self.events.catalog_changed.emit()
        return True

    # Downloads

    def is_downloading(self) -> bool:
        return self.downloads.is_downloading()

    def download_docset(self, name: str) -> None:
        """Start installing a docset in the background.

        Raises:
            DocsetNotFoundError: If there is no such docset.
            DownloadInProgressError: If a download is already running.
        """
        docset = self.get_docset(name)
        with self._lock:
            url = self.downloads.start(
                docset,
                on_finished=self._on_download_finished,
                on_progress=self._on_download_progress,
            )
            self._download_status = DownloadStatus.IN_PROGRESS
            self._download_name = docset.name
            self._download_message = ""
            self._progress = DownloadProgress()
        self._debug(f"Downloading docset from '{url}'")
        self.events.download_state_changed.emit()

    def cancel_download(self) -> None:
        """Abort the active download.

        Raises:
            NoActiveDownloadError: If no download is active, or it is
                already being moved into place.
        """
        self.downloads.cancel()

    def wait_for_download(self, timeout: float | None = None) -> bool:
        return self.downloads.wait(timeout)

    def download_state(self) -> dict[str, Any]:
        with self._lock:
            return {
                "status": self._download_status.value,
                "docset": self._download_name,
                "bytes_received": self._progress.bytes_received,
                "bytes_total": self._progress.bytes_total,
                "message": self._download_message,
            }

    def _on_download_progress(self, received: int, total: int) -> None:
        with self._lock:
            self._progress = DownloadProgress(received, total)
            progress = self._progress
        self.events.download_progress.emit(received, total)
        self._status(progress.describe())

    def _on_download_finished(self, outcome: DownloadOutcome) -> None:
        with self._lock:
            self._download_status = outcome.status
            self._download_message = outcome.message
            if outcome.ok:
                docset = self.catalog.find(outcome.docset_name)
                if docset is not None:
                    docset.path = outcome.path

        if outcome.status == DownloadStatus.SUCCEEDED:
            self.events.catalog_changed.emit()
            self._status(f"Docset '{outcome.docset_name}' ready.")
        elif outcome.status == DownloadStatus.CANCELLED:
            self._debug(f"Cancelled '{outcome.docset_name}' docset download.")
        else:
            self._error(outcome.message)

        self.events.download_state_changed.emit()

    # Removal

    def remove_docset(
        self, name: str, confirm: ConfirmCallback | None = None
    ) -> bool:
        """Delete an installed docset.

        Args:
            name: Docset name.
            confirm: Asked before deleting; returning False aborts. No
                confirmation is asked when omitted.

        Returns:
            True if the docset is no longer installed, False if the
            confirmation was declined.

        Raises:
            DocsetNotFoundError: If there is no such docset.
            DocsetNotInstalledError: If the docset is not installed.
            RemovalError: If the directory could not be deleted.
        """
        docset = self.get_docset(name)

        with self._lock:
            if docset.path is None:
                logger.warning("Docset not installed: %s", name)
                raise DocsetNotInstalledError(name)

            path = docset.path
            if not path.is_dir():
                logger.warning("Docset dir does not exist: %s", path)
                docset.path = None
            elif confirm is not None and not confirm(docset):
                logger.debug("Docset removal cancelled by user")
                return False
            else:
                try:
                    shutil.rmtree(path)
                except OSError as e:
                    message = f"Failed to remove directory '{path}': {e}"
                    self._error(message)
                    raise RemovalError(message) from e
                if path.exists():
                    message = f"Failed to remove directory '{path}'"
                    self._error(message)
                    raise RemovalError(message)
                docset.path = None

        self._debug(f"Directory removed '{path}'")
        self.events.catalog_changed.emit()
        return True

    # Index

    def rebuild_index(self) -> None:
        self.indexer.schedule()

    def wait_for_index(self, timeout: float | None = None) -> bool:
        return self.indexer.wait(timeout)

    def index_items(self) -> tuple[IndexItem, ...]:
        return self.index.items()

    # Status

    def status(self) -> dict[str, Any]:
        """Summarize catalog, download and index state."""
        docsets = self.docsets()
        generation, items = self.index.snapshot()
        return {
            "docsets": len(docsets),
            "installed": sum(1 for d in docsets if d.is_installed),
            "download": self.download_state(),
            "index": {
                "status": self.indexer.status.value,
                "generation": generation,
                "items": len(items),
            },
            "last_status": self._last_status,
        }

    def close(self) -> None:
        """Cancel background work and release the HTTP client."""
        if self.downloads.is_downloading():
            try:
                self.downloads.cancel()
            except NoActiveDownloadError:
                logger.debug("Download finished before it could be cancelled")
        self.downloads.wait(timeout=10)
        self.indexer.cancel()
        if self._owns_client:
            self._client.close()

    def __enter__(self) -> DocsetLifecycleController:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # Reporting

    def _status(self, message: str) -> None:
        self._last_status = message
        self.events.status.emit(message)

    def _debug(self, message: str) -> None:
        logger.debug(message)
        self._status(message)

    def _error(self, message: str) -> None:
        logger.warning(message)
        self._status(message)
        self.events.error.emit(message)


__all__ = [
    "ConfirmCallback",
    "DocsetLifecycleController",
    "DocsetNotFoundError",
    "DocsetNotInstalledError",
    "RemovalError",
]
