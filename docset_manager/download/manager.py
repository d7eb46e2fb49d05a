"""Single-flight docset download and install pipeline.

DownloadManager owns at most one in-flight download. The transfer and
the install steps run on a worker thread:

1. stream the archive into a scratch directory under docsets_dir
2. extract it in place
3. locate the single ``*.docset`` bundle in the extracted tree
4. move the bundle to ``<docsets_dir>/<name>.docset``

The transfer runs on its own helper thread, so cancel() takes effect even
while the server has not answered yet. Cancellation is honoured until the
bundle is being moved into place. The scratch directory is removed in every
case, so a failed or cancelled download never leaves files at the final
location. The outcome is
delivered to the caller's completion callback after the slot is freed.
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import httpx

from docset_manager.download.extract import ExtractionError, extract_archive
from docset_manager.download.fetch import (
    DownloadError,
    FetchResult,
    ProgressCallback,
    build_docset_url,
    stream_archive,
)
from docset_manager.types import DownloadOutcome, DownloadStatus

if TYPE_CHECKING:
    from docset_manager.catalog.models import Docset
    from docset_manager.config import Settings

logger = logging.getLogger(__name__)

# Glob pattern for extracted docset bundles
DOCSET_BUNDLE_PATTERN = "*.docset"

FinishedCallback = Callable[[DownloadOutcome], None]


class DownloadInProgressError(Exception):
    """Raised when a download is started while another is active."""

    def __init__(
        self, docset_name: str, code: str = "download_in_progress"
    ) -> None:
        super().__init__(f"A download is already in progress: {docset_name}")
        self.docset_name = docset_name
        self.code = code


class NoActiveDownloadError(Exception):
    """Raised when cancelling while no download is active."""

    def __init__(
        self,
        message: str = "No download in progress",
        code: str = "no_active_download",
    ) -> None:
        super().__init__(message)
        self.code = code


@dataclass
class _DownloadJob:
    docset: Docset
    url: str
    on_finished: FinishedCallback | None
    on_progress: ProgressCallback | None
    cancel_event: threading.Event = field(default_factory=threading.Event)
    # Set by cancel() and by the transfer thread when it ends
    wakeup: threading.Event = field(default_factory=threading.Event)
    # Once the bundle is being moved into place the job can no longer be cancelled
    committed: bool = False
    thread: threading.Thread | None = None


def find_docset_bundle(root: Path) -> Path | None:
    """Return the first ``*.docset`` directory below root, or None."""
    for candidate in sorted(root.rglob(DOCSET_BUNDLE_PATTERN)):
        if candidate.is_dir():
            return candidate
    return None


def install_bundle(src: Path, dst: Path) -> None:
    """Move an extracted bundle to its install location.

    A stale directory at dst is replaced.

    Raises:
        OSError: If the move fails.
    """
    if dst.exists():
        logger.info("Replacing existing docset at %s", dst)
        shutil.rmtree(dst)
    src.rename(dst)


class DownloadManager:
    """Runs at most one docset download at a time."""

    def __init__(self, settings: Settings, client: httpx.Client) -> None:
        self._settings = settings
        self._client = client
        self._lock = threading.Lock()
        self._job: _DownloadJob | None = None
        self._thread: threading.Thread | None = None

    def is_downloading(self) -> bool:
        with self._lock:
            return self._job is not None

    @property
    def current_docset(self) -> str | None:
        with self._lock:
            return self._job.docset.name if self._job else None

    def start(
        self,
        docset: Docset,
        on_finished: FinishedCallback | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Start downloading and installing a docset in the background.

        Args:
            docset: Catalog entry to install.
            on_finished: Receives the DownloadOutcome on the worker thread.
            on_progress: Receives (bytes_received, bytes_total).

        Returns:
            The download URL.

        Raises:
            DownloadInProgressError: If a download is already active.
        """
        url = build_docset_url(
            self._settings.feed_base_url, docset.source_id, docset.name
        )
        with self._lock:
            if self._job is not None:
                raise DownloadInProgressError(self._job.docset.name)
            job = _DownloadJob(
                docset=docset,
                url=url,
                on_finished=on_finished,
                on_progress=on_progress,
            )
            job.thread = threading.Thread(
                target=self._run,
                args=(job,),
                name=f"docset-download-{docset.name}",
                daemon=True,
            )
            self._job = job
            self._thread = job.thread
        job.thread.start()
        return url

    def cancel(self) -> None:
        """Abort the active download.

        The worker still runs the completion path and reports CANCELLED.

        Raises:
            NoActiveDownloadError: If no download is active, or it is
                already being moved into place.
        """
        with self._lock:
            if self._job is None or self._job.committed:
                raise NoActiveDownloadError()
            logger.info("Cancelling download of '%s'", self._job.docset.name)
            self._job.cancel_event.set()
            self._job.wakeup.set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the active download (if any) has finished.

        Returns:
            True if no download is running afterwards.
        """
        with self._lock:
            thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
            return not thread.is_alive()
        return True

    def _run(self, job: _DownloadJob) -> None:
        try:
            outcome = self._download_and_install(job)
        except Exception as e:
            logger.exception("Unexpected error downloading '%s'", job.docset.name)
            outcome = DownloadOutcome(
                DownloadStatus.FAILED, job.docset.name, message=str(e)
            )

        with self._lock:
            self._job = None

        if job.on_finished is not None:
            job.on_finished(outcome)

    def _download_and_install(self, job: _DownloadJob) -> DownloadOutcome:
        name = job.docset.name
        docsets_dir = self._settings.docsets_dir

        try:
            docsets_dir.mkdir(parents=True, exist_ok=True)
            scratch = Path(tempfile.mkdtemp(prefix="extract", dir=docsets_dir))
        except OSError as e:
            return DownloadOutcome(
                DownloadStatus.FAILED,
                name,
                message=f"failed creating temporary directory: {e}",
            )

        try:
            return self._install_into(job, scratch)
        finally:
            shutil.rmtree(scratch, ignore_errors=True)

    def _install_into(self, job: _DownloadJob, scratch: Path) -> DownloadOutcome:
        name = job.docset.name

        def cancelled() -> DownloadOutcome:
            logger.info("Cancelled '%s' docset download", name)
            return DownloadOutcome(DownloadStatus.CANCELLED, name)

        def failed(message: str) -> DownloadOutcome:
            logger.warning("Download of '%s' failed: %s", name, message)
            return DownloadOutcome(DownloadStatus.FAILED, name, message=message)

        try:
            result = self._transfer(job, scratch)
        except DownloadError as e:
            if job.cancel_event.is_set():
                return cancelled()
            return failed(f"downloading docset failed: {e}")

        if result is None or result.cancelled or job.cancel_event.is_set():
            return cancelled()

        try:
            extract_archive(result.archive_path, scratch)
        except ExtractionError as e:
            if job.cancel_event.is_set():
                return cancelled()
            return failed(f"extracting docset failed: {e.describe()}")
        if job.cancel_event.is_set():
            return cancelled()

        logger.debug("Searching docset in '%s'", scratch)
        bundle = find_docset_bundle(scratch)
        if bundle is None:
            return failed(f"failed finding extracted docset in {scratch}")

        with self._lock:
            if job.cancel_event.is_set():
                return cancelled()
            job.committed = True

        dst = self._settings.docsets_dir / f"{name}.docset"
        logger.debug("Renaming '%s' to '%s'", bundle, dst)
        try:
            install_bundle(bundle, dst)
        except OSError as e:
            return failed(f"failed renaming '{bundle}' to '{dst}': {e}")

        logger.info("Docset '%s' installed at %s", name, dst)
        return DownloadOutcome(DownloadStatus.SUCCEEDED, name, path=dst)

    def _transfer(self, job: _DownloadJob, scratch: Path) -> FetchResult | None:
        """Stream the archive on a helper thread.

        The worker waits for either the transfer or cancel(), so a stalled
        server never delays a cancellation. An abandoned transfer stops at
        its next chunk or when the request times out.

        Returns:
            The FetchResult, or None if the download was cancelled first.

        Raises:
            DownloadError: If the transfer failed.
        """
        results: list[FetchResult] = []
        errors: list[Exception] = []

        def transfer() -> None:
            try:
                results.append(
                    stream_archive(
                        self._client,
                        job.url,
                        scratch,
                        job.cancel_event,
                        on_progress=job.on_progress,
                        timeout=self._settings.download_timeout,
                        chunk_size=self._settings.download_chunk_size,
                    )
                )
            except Exception as e:
                errors.append(e)
            finally:
                job.wakeup.set()

        threading.Thread(
            target=transfer,
            name=f"docset-transfer-{job.docset.name}",
            daemon=True,
        ).start()
        job.wakeup.wait()

        if job.cancel_event.is_set():
            return None
        if errors:
            raise errors[0]
        return results[0]


__all__ = [
    "DOCSET_BUNDLE_PATTERN",
    "DownloadInProgressError",
    "DownloadManager",
    "NoActiveDownloadError",
    "find_docset_bundle",
    "install_bundle",
]
