"""Tests for shared types module."""

from pathlib import Path

from docset_manager.types import (
    DownloadOutcome,
    DownloadProgress,
    DownloadStatus,
    IndexBuildStatus,
)


class TestEnums:
    """Test enum definitions."""

    def test_download_status_values(self) -> None:
        """DownloadStatus should have expected values."""
        assert DownloadStatus.NONE.value == "none"
        assert DownloadStatus.IN_PROGRESS.value == "in_progress"
        assert DownloadStatus.SUCCEEDED.value == "succeeded"
        assert DownloadStatus.FAILED.value == "failed"
        assert DownloadStatus.CANCELLED.value == "cancelled"

    def test_index_build_status_values(self) -> None:
        """IndexBuildStatus should have expected values."""
        assert IndexBuildStatus.IDLE.value == "idle"
        assert IndexBuildStatus.RUNNING.value == "running"


class TestDataclasses:
    """Test dataclass definitions."""

    def test_progress_describe(self) -> None:
        """DownloadProgress should render megabytes with one decimal."""
        assert DownloadProgress(1_500_000, 3_000_000).describe() == "1.5/3.0 MiB"
        assert DownloadProgress().describe() == "0.0/0.0 MiB"

    def test_outcome_ok(self) -> None:
        """Only SUCCEEDED outcomes should be ok."""
        done = DownloadOutcome(DownloadStatus.SUCCEEDED, "python", path=Path("/x"))
        assert done.ok
        assert done.message == ""
        assert not DownloadOutcome(DownloadStatus.FAILED, "python", "boom").ok
        assert not DownloadOutcome(DownloadStatus.CANCELLED, "python").ok
