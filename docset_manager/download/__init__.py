"""Docset download module.

This module handles:
- Building docset archive URLs from catalog entries
- Streaming archives with progress and cancellation
- Safe archive extraction
- The single-flight download and install pipeline
"""

from docset_manager.download.extract import ExtractionError, extract_archive
from docset_manager.download.fetch import (
    DownloadError,
    FetchResult,
    build_docset_url,
    stream_archive,
)
from docset_manager.download.manager import (
    DownloadInProgressError,
    DownloadManager,
    NoActiveDownloadError,
    find_docset_bundle,
)

__all__ = [
    # Extraction
    "ExtractionError",
    "extract_archive",
    # Fetch
    "DownloadError",
    "FetchResult",
    "build_docset_url",
    "stream_archive",
    # Manager
    "DownloadInProgressError",
    "DownloadManager",
    "NoActiveDownloadError",
    "find_docset_bundle",
]
