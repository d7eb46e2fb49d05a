"""Shared type definitions for docset_manager.

This module contains enums and dataclasses shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class DownloadStatus(str, Enum):
    """State of the docset download slot."""

    NONE = "none"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class IndexBuildStatus(str, Enum):
    """State of the background index builder."""

    IDLE = "idle"
    RUNNING = "running"


@dataclass
class DownloadProgress:
    """Bytes transferred so far for the active download."""

    bytes_received: int = 0
    bytes_total: int = 0

    def describe(self) -> str:
        """Render progress as 'received/total MiB'."""
        return (
            f"{self.bytes_received / 1_000_000:.1f}/"
            f"{self.bytes_total / 1_000_000:.1f} MiB"
        )


@dataclass
class DownloadOutcome:
    """Terminal result of a docset download.

    Attributes:
        status: SUCCEEDED, FAILED or CANCELLED.
        docset_name: Name of the docset that was downloaded.
        message: Error message for failures, empty otherwise.
        path: Installed docset directory on success.
    """

    status: DownloadStatus
    docset_name: str
    message: str = ""
    path: Path | None = None

    @property
    def ok(self) -> bool:
        return self.status == DownloadStatus.SUCCEEDED


__all__ = [
    "DownloadOutcome",
    "DownloadProgress",
    "DownloadStatus",
    "IndexBuildStatus",
]
