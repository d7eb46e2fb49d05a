"""Tests for the single-flight download manager.

These tests run the real worker thread against mocked HTTP responses
and real archives.
"""

import threading

import httpx
import pytest
import respx
from builders import SOURCE_ID, archive_url, build_docset_dir, docset_archive, tar_bytes

from docset_manager.catalog.models import Docset
from docset_manager.download.extract import ExtractionError, extract_archive
from docset_manager.download.manager import (
    DownloadInProgressError,
    DownloadManager,
    NoActiveDownloadError,
    find_docset_bundle,
    install_bundle,
)
from docset_manager.types import DownloadStatus


def make_docset(settings, name="python"):
    return Docset(
        name=name,
        title=name.capitalize(),
        source_id=SOURCE_ID,
        icon_path=settings.icons_dir / f"{name}.png",
    )


@pytest.fixture
def manager(settings):
    """DownloadManager with a fresh client."""
    with httpx.Client() as client:
        yield DownloadManager(settings, client)


def run_download(manager, docset, **kwargs):
    outcomes = []
    manager.start(docset, on_finished=outcomes.append, **kwargs)
    assert manager.wait(timeout=10)
    assert len(outcomes) == 1
    return outcomes[0]


class TestFindDocsetBundle:
    """Tests for find_docset_bundle function."""

    def test_top_level(self, tmp_path):
        build_docset_dir(tmp_path, "python")
        assert find_docset_bundle(tmp_path) == tmp_path / "python.docset"

    def test_nested(self, tmp_path):
        build_docset_dir(tmp_path / "wrap" / "deeper", "python")
        assert find_docset_bundle(tmp_path).name == "python.docset"

    def test_file_named_docset_ignored(self, tmp_path):
        (tmp_path / "bogus.docset").write_text("not a directory")
        assert find_docset_bundle(tmp_path) is None


class TestInstallBundle:
    """Tests for install_bundle function."""

    def test_replaces_stale_target(self, tmp_path):
        """An existing directory at the target should be replaced."""
        src = build_docset_dir(tmp_path / "scratch", "python")
        dst = tmp_path / "docsets" / "python.docset"
        dst.mkdir(parents=True)
        (dst / "stale.txt").write_text("old")

        install_bundle(src, dst)

        assert not src.exists()
        assert not (dst / "stale.txt").exists()
        assert (dst / "Contents" / "Resources" / "docSet.dsidx").is_file()


class TestDownloadManager:
    """Tests for DownloadManager."""

    def test_successful_install(self, manager, settings, tmp_path):
        """Should install the bundle under docsets_dir/<name>.docset."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=docset_archive(tmp_path, "python")
                )
            )
            outcome = run_download(manager, make_docset(settings))

        dst = settings.docsets_dir / "python.docset"
        assert outcome.status == DownloadStatus.SUCCEEDED
        assert outcome.ok
        assert outcome.path == dst
        assert (dst / "Contents" / "Resources" / "docSet.dsidx").is_file()
        assert not manager.is_downloading()

    def test_bundle_name_differs_from_docset(self, manager, settings, tmp_path):
        """The bundle is renamed to the catalog name, wherever it sits."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200,
                    content=docset_archive(tmp_path, "Python 3", wrapper="outer"),
                )
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.ok
        assert (settings.docsets_dir / "python.docset").is_dir()
        assert not (settings.docsets_dir / "Python 3.docset").exists()

    def test_scratch_directory_removed(self, manager, settings, tmp_path):
        """No extract* scratch directories should remain after success."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=docset_archive(tmp_path, "python")
                )
            )
            run_download(manager, make_docset(settings))

        leftovers = [p.name for p in settings.docsets_dir.iterdir()]
        assert leftovers == ["python.docset"]

    def test_archive_without_bundle(self, manager, settings):
        """Should fail with a 'failed finding' message and install nothing."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=tar_bytes({"readme.txt": b"hello"})
                )
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.FAILED
        assert outcome.message.startswith("failed finding extracted docset")
        assert list(settings.docsets_dir.iterdir()) == []

    def test_corrupt_archive(self, manager, settings):
        """Should fail with an extraction message."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(200, content=b"definitely not an archive")
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.FAILED
        assert outcome.message.startswith("extracting docset failed:")
        assert "(unsupported_format)" in outcome.message
        assert list(settings.docsets_dir.iterdir()) == []

    def test_traversal_archive(self, manager, settings):
        """An archive escaping the scratch directory should fail."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=tar_bytes({"../../escape.txt": b"x"})
                )
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.FAILED
        assert "(path_traversal)" in outcome.message
        assert not (settings.data_dir / "escape.txt").exists()

    def test_http_error(self, manager, settings):
        """Should fail with a 'downloading docset failed' message."""
        with respx.mock:
            respx.get(archive_url("python")).mock(return_value=httpx.Response(500))
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.FAILED
        assert outcome.message.startswith("downloading docset failed:")

    def test_single_flight(self, manager, settings, tmp_path):
        """A second start while one download runs should be rejected."""
        gate = threading.Event()
        payload = docset_archive(tmp_path, "python")

        def slow_response(request):
            gate.wait(timeout=10)
            return httpx.Response(200, content=payload)

        with respx.mock:
            respx.get(archive_url("python")).mock(side_effect=slow_response)
            outcomes = []
            manager.start(make_docset(settings), on_finished=outcomes.append)

            assert manager.is_downloading()
            assert manager.current_docset == "python"
            with pytest.raises(DownloadInProgressError) as exc_info:
                manager.start(make_docset(settings, "rust"))
            assert exc_info.value.code == "download_in_progress"

            gate.set()
            assert manager.wait(timeout=10)

        assert [o.status for o in outcomes] == [DownloadStatus.SUCCEEDED]
        assert not (settings.docsets_dir / "rust.docset").exists()

    def test_start_again_after_finish(self, manager, settings, tmp_path):
        """The slot should be free once the completion callback runs."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=docset_archive(tmp_path, "python")
                )
            )
            run_download(manager, make_docset(settings))
            outcome = run_download(manager, make_docset(settings))

        assert outcome.ok

    def test_cancel_reports_cancelled(self, manager, settings):
        """Cancelling mid-transfer should report CANCELLED, never FAILED."""
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(200, content=b"z" * 8192)
            )
            outcome = run_download(
                manager,
                make_docset(settings),
                on_progress=lambda received, total: manager.cancel(),
            )

        assert outcome.status == DownloadStatus.CANCELLED
        assert outcome.message == ""
        assert list(settings.docsets_dir.iterdir()) == []

    def test_cancel_without_download(self, manager):
        """Should raise NoActiveDownloadError when idle."""
        with pytest.raises(NoActiveDownloadError) as exc_info:
            manager.cancel()
        assert exc_info.value.code == "no_active_download"

    def test_wait_when_idle(self, manager):
        assert manager.wait(timeout=0.1)

    def test_cancel_while_server_stalls(self, manager, settings):
        """Cancelling before the server answers should finish promptly."""
        release = threading.Event()

        def stalled(request):
            release.wait(timeout=10)
            return httpx.Response(200, content=b"late")

        with respx.mock:
            respx.get(archive_url("python")).mock(side_effect=stalled)
            outcomes = []
            manager.start(make_docset(settings), on_finished=outcomes.append)
            manager.cancel()
            try:
                assert manager.wait(timeout=2)
            finally:
                release.set()

        assert [o.status for o in outcomes] == [DownloadStatus.CANCELLED]
        assert not manager.is_downloading()

    def test_cancel_during_extraction(self, manager, settings, tmp_path, monkeypatch):
        """A cancel accepted while extracting should not install the docset."""

        def extract_then_cancel(archive_path, dest_dir):
            manager.cancel()
            extract_archive(archive_path, dest_dir)

        monkeypatch.setattr(
            "docset_manager.download.manager.extract_archive", extract_then_cancel
        )
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=docset_archive(tmp_path, "python")
                )
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.CANCELLED
        assert not (settings.docsets_dir / "python.docset").exists()

    def test_cancel_then_extraction_error(self, manager, settings, monkeypatch):
        """An extraction error after a cancel should still report CANCELLED."""

        def cancel_then_fail(archive_path, dest_dir):
            manager.cancel()
            raise ExtractionError("truncated", code="corrupt_archive")

        monkeypatch.setattr(
            "docset_manager.download.manager.extract_archive", cancel_then_fail
        )
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(200, content=b"payload")
            )
            outcome = run_download(manager, make_docset(settings))

        assert outcome.status == DownloadStatus.CANCELLED
        assert outcome.message == ""

    def test_cancel_rejected_while_installing(
        self, manager, settings, tmp_path, monkeypatch
    ):
        """Once the bundle is being moved into place the download completes."""
        rejected = []

        def install_and_try_cancel(src, dst):
            try:
                manager.cancel()
            except NoActiveDownloadError:
                rejected.append(dst.name)
            install_bundle(src, dst)

        monkeypatch.setattr(
            "docset_manager.download.manager.install_bundle", install_and_try_cancel
        )
        with respx.mock:
            respx.get(archive_url("python")).mock(
                return_value=httpx.Response(
                    200, content=docset_archive(tmp_path, "python")
                )
            )
            outcome = run_download(manager, make_docset(settings))

        assert rejected == ["python.docset"]
        assert outcome.status == DownloadStatus.SUCCEEDED
