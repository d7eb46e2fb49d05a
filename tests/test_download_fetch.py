"""Tests for the docset archive fetch module.

These tests use mocked HTTP responses to test URL construction,
streaming, redirects, error mapping and cancellation.
"""

import threading

import httpx
import pytest
import respx
from builders import FEED_URL, SOURCE_ID, archive_url

from docset_manager.download.fetch import (
    DownloadError,
    archive_filename,
    build_docset_url,
    stream_archive,
)

PAYLOAD = b"x" * 5000


class TestBuildDocsetUrl:
    """Tests for build_docset_url function."""

    def test_drops_source_id_suffix(self):
        """Should strip the last five characters of the sourceId."""
        url = build_docset_url(FEED_URL, SOURCE_ID, "python")

        assert url == "https://feed.test/d/kapeli/python/latest"

    def test_trailing_slash_on_base(self):
        """A trailing slash on the base URL should not double up."""
        url = build_docset_url(FEED_URL + "/", SOURCE_ID, "python")

        assert url == archive_url("python")

    def test_short_source_id(self):
        """A sourceId of five characters or less yields an empty feed key."""
        assert build_docset_url(FEED_URL, "feed", "x") == "https://feed.test/d//x/latest"


class TestArchiveFilename:
    """Tests for archive_filename function."""

    def test_last_path_component(self):
        assert archive_filename(httpx.URL("https://cdn.test/a/Python_3.tgz")) == "Python_3.tgz"

    def test_query_ignored(self):
        assert archive_filename(httpx.URL("https://cdn.test/p.tgz?sig=1")) == "p.tgz"

    def test_no_name_uses_default(self):
        assert archive_filename(httpx.URL("https://cdn.test/")) == "docset.tgz"


class TestStreamArchive:
    """Tests for stream_archive function."""

    @respx.mock
    def test_writes_payload_and_reports_progress(self, tmp_path):
        """Should write every byte and report monotonically growing progress."""
        respx.get(archive_url("python")).mock(
            return_value=httpx.Response(
                200, content=PAYLOAD, headers={"Content-Length": str(len(PAYLOAD))}
            )
        )
        progress = []

        with httpx.Client() as client:
            result = stream_archive(
                client,
                archive_url("python"),
                tmp_path,
                threading.Event(),
                on_progress=lambda r, t: progress.append((r, t)),
                chunk_size=1024,
            )

        assert not result.cancelled
        assert result.size_bytes == len(PAYLOAD)
        assert result.archive_path == tmp_path / "latest"
        assert result.archive_path.read_bytes() == PAYLOAD
        assert progress[-1] == (len(PAYLOAD), len(PAYLOAD))
        assert [r for r, _ in progress] == sorted(r for r, _ in progress)

    @respx.mock
    def test_follows_redirect_and_names_file(self, tmp_path):
        """The file name should come from the final redirected URL."""
        respx.get(archive_url("python")).mock(
            return_value=httpx.Response(
                302, headers={"Location": "https://cdn.test/files/Python_3.tgz"}
            )
        )
        respx.get("https://cdn.test/files/Python_3.tgz").mock(
            return_value=httpx.Response(200, content=PAYLOAD)
        )

        with httpx.Client() as client:
            result = stream_archive(
                client, archive_url("python"), tmp_path, threading.Event()
            )

        assert result.archive_path.name == "Python_3.tgz"
        assert result.archive_path.read_bytes() == PAYLOAD

    @respx.mock
    def test_unknown_length_reports_received(self, tmp_path):
        """Without Content-Length the total should track bytes received."""
        respx.get(archive_url("python")).mock(
            return_value=httpx.Response(200, content=iter([b"a" * 10, b"b" * 10]))
        )
        progress = []

        with httpx.Client() as client:
            stream_archive(
                client,
                archive_url("python"),
                tmp_path,
                threading.Event(),
                on_progress=lambda r, t: progress.append((r, t)),
            )

        assert all(r == t for r, t in progress)
        assert progress[-1][0] == 20

    @respx.mock
    def test_http_error(self, tmp_path):
        """Should raise DownloadError with http_error code."""
        respx.get(archive_url("python")).mock(return_value=httpx.Response(404))

        with httpx.Client() as client:
            with pytest.raises(DownloadError) as exc_info:
                stream_archive(
                    client, archive_url("python"), tmp_path, threading.Event()
                )

        assert exc_info.value.code == "http_error"
        assert "404" in str(exc_info.value)

    @respx.mock
    def test_network_error(self, tmp_path):
        """Should raise DownloadError with network_error code."""
        respx.get(archive_url("python")).mock(
            side_effect=httpx.ConnectError("Connection refused")
        )

        with httpx.Client() as client:
            with pytest.raises(DownloadError) as exc_info:
                stream_archive(
                    client, archive_url("python"), tmp_path, threading.Event()
                )

        assert exc_info.value.code == "network_error"

    @respx.mock
    def test_timeout(self, tmp_path):
        """Should raise DownloadError with timeout code."""
        respx.get(archive_url("python")).mock(
            side_effect=httpx.ReadTimeout("timed out")
        )

        with httpx.Client() as client:
            with pytest.raises(DownloadError) as exc_info:
                stream_archive(
                    client, archive_url("python"), tmp_path, threading.Event()
                )

        assert exc_info.value.code == "timeout"

    @respx.mock
    def test_cancel_stops_transfer(self, tmp_path):
        """Setting the cancel event mid-transfer should stop without error."""
        respx.get(archive_url("python")).mock(
            return_value=httpx.Response(200, content=PAYLOAD)
        )
        cancel = threading.Event()

        def on_progress(received, total):
            if received >= 2048:
                cancel.set()

        with httpx.Client() as client:
            result = stream_archive(
                client,
                archive_url("python"),
                tmp_path,
                cancel,
                on_progress=on_progress,
                chunk_size=1024,
            )

        assert result.cancelled
        assert result.size_bytes == 2048

    @respx.mock
    def test_cancelled_before_start(self, tmp_path):
        """An already-set cancel event should write nothing."""
        respx.get(archive_url("python")).mock(
            return_value=httpx.Response(200, content=PAYLOAD)
        )
        cancel = threading.Event()
        cancel.set()

        with httpx.Client() as client:
            result = stream_archive(client, archive_url("python"), tmp_path, cancel)

        assert result.cancelled
        assert result.size_bytes == 0
