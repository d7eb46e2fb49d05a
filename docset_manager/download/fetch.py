"""Docset archive fetch module.

This module handles:
- URL construction for docset archives
- Streaming a download to disk with progress reporting and cancellation
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

import httpx

logger = logging.getLogger(__name__)

# Number of trailing characters stripped from a sourceId to get the feed key
SOURCE_ID_SUFFIX_LEN = 5

# Used when the resolved URL has no usable file name
DEFAULT_ARCHIVE_NAME = "docset.tgz"

ProgressCallback = Callable[[int, int], None]


class DownloadError(Exception):
    """Raised when a docset download fails."""

    def __init__(self, message: str, code: str = "download_error") -> None:
        """Initialize DownloadError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code


@dataclass
class FetchResult:
    """Result of a streamed archive download.

    Attributes:
        archive_path: Where the payload was written.
        size_bytes: Bytes written.
        cancelled: True if the transfer was aborted by the cancel event.
    """

    archive_path: Path
    size_bytes: int
    cancelled: bool = False


def build_docset_url(base_url: str, source_id: str, name: str) -> str:
    """Build the download URL for a docset archive.

    Args:
        base_url: Feed base URL.
        source_id: Catalog sourceId; its last five characters are dropped.
        name: Docset name.

    Returns:
        URL of the latest archive for the docset.
    """
    feed_key = source_id[:-SOURCE_ID_SUFFIX_LEN]
    return f"{base_url.rstrip('/')}/{feed_key}/{name}/latest"


def archive_filename(url: httpx.URL) -> str:
    """Return the file name component of a (resolved) URL."""
    name = PurePosixPath(url.path).name
    if not name or name in (".", ".."):
        return DEFAULT_ARCHIVE_NAME
    return name


def stream_archive(
    client: httpx.Client,
    url: str,
    dest_dir: Path,
    cancel_event: threading.Event,
    on_progress: ProgressCallback | None = None,
    timeout: float = 3600,
    chunk_size: int = 64 * 1024,
) -> FetchResult:
    """Stream an archive into dest_dir.

    Redirects are followed; the file is named after the final URL. The
    cancel event is checked before every chunk, and a set event ends the
    transfer with ``cancelled=True`` instead of an error.

    Args:
        client: HTTPX client instance.
        url: URL to download from.
        dest_dir: Existing directory that receives the file.
        cancel_event: Set by another thread to abort the transfer.
        on_progress: Called with (bytes_received, bytes_total) per chunk.
        timeout: Request timeout in seconds.
        chunk_size: Size of chunks to download.

    Returns:
        FetchResult describing the written file.

    Raises:
        DownloadError: On HTTP, network or write failures.
    """
    logger.info("Downloading docset from '%s'", url)

    try:
        with client.stream(
            "GET", url, timeout=timeout, follow_redirects=True
        ) as response:
            response.raise_for_status()

            archive_path = dest_dir / archive_filename(response.url)
            total = int(response.headers.get("Content-Length", 0) or 0)
            received = 0

            try:
                with archive_path.open("wb") as f:
                    for chunk in response.iter_bytes(chunk_size):
                        if cancel_event.is_set():
                            logger.info("Download of %s aborted", url)
                            return FetchResult(archive_path, received, cancelled=True)
                        f.write(chunk)
                        received += len(chunk)
                        if on_progress is not None:
                            on_progress(received, max(total, received))
            except OSError as e:
                raise DownloadError(
                    f"Failed to write to file '{archive_path}': {e}",
                    code="write_error",
                ) from e

            if cancel_event.is_set():
                return FetchResult(archive_path, received, cancelled=True)

            logger.info("Download finished (%d bytes)", received)
            return FetchResult(archive_path, received)

    except httpx.HTTPStatusError as e:
        raise DownloadError(
            f"HTTP error downloading {url}: "
            f"{e.response.status_code} {e.response.reason_phrase}",
            code="http_error",
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(
            f"Timeout downloading {url}",
            code="timeout",
        ) from e
    except httpx.RequestError as e:
        raise DownloadError(
            f"Network error downloading {url}: {e}",
            code="network_error",
        ) from e


__all__ = [
    "DownloadError",
    "FetchResult",
    "ProgressCallback",
    "SOURCE_ID_SUFFIX_LEN",
    "archive_filename",
    "build_docset_url",
    "stream_archive",
]
