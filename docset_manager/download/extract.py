"""Archive extraction for downloaded docsets.

Supports tar archives (uncompressed, gzip, bzip2, xz; detected from
content, not file name) and zip archives. Every entry is rooted at the
destination directory; entries that would land outside it abort the
extraction.
"""

from __future__ import annotations

import logging
import os
import posixpath
import tarfile
import time
import zipfile
import zlib
from pathlib import Path, PurePosixPath

logger = logging.getLogger(__name__)


class ExtractionError(Exception):
    """Raised when archive extraction fails."""

    def __init__(self, message: str, code: str = "extraction_error") -> None:
        """Initialize ExtractionError.

        Args:
            message: Error description.
            code: Error code for structured error handling.
        """
        super().__init__(message)
        self.code = code

    def describe(self) -> str:
        """Render as '(code) message'."""
        return f"({self.code}) {self}"


def _rooted_name(name: str) -> str:
    """Normalize an entry name relative to the destination.

    Leading slashes are dropped and inner "." and ".." components folded;
    "" means the entry is the destination itself.
    """
    normalized = posixpath.normpath(name.lstrip("/")) if name.strip("/") else ""
    return "" if normalized == "." else normalized


def _check_inside(dest_dir: Path, relative: str | PurePosixPath, entry: str) -> None:
    """Raise ExtractionError if dest_dir/relative resolves outside dest_dir."""
    root = dest_dir.resolve()
    target = (root / relative).resolve()
    if not target.is_relative_to(root):
        raise ExtractionError(
            f"Refusing to extract {entry}: path traversal detected",
            code="path_traversal",
        )


def _prepare_tar_members(
    tar: tarfile.TarFile, dest_dir: Path
) -> list[tarfile.TarInfo]:
    """Rewrite member names to be rooted at dest_dir and validate them."""
    members = tar.getmembers()
    for member in members:
        original = member.name
        member.name = _rooted_name(member.name)
        if not member.name:
            continue
        _check_inside(dest_dir, member.name, original)

        if member.issym():
            if member.linkname.startswith("/"):
                raise ExtractionError(
                    f"Refusing to extract {original}: absolute link target",
                    code="path_traversal",
                )
            link_target = PurePosixPath(member.name).parent / member.linkname
            _check_inside(dest_dir, link_target, original)
        elif member.islnk():
            member.linkname = _rooted_name(member.linkname)
            _check_inside(dest_dir, member.linkname, original)

    return [m for m in members if m.name]


def _extract_tar(archive_path: Path, dest_dir: Path) -> None:
    with tarfile.open(archive_path, "r:*") as tar:
        members = _prepare_tar_members(tar, dest_dir)
        tar.extractall(dest_dir, members=members, filter="tar")


def _extract_zip(archive_path: Path, dest_dir: Path) -> None:
    with zipfile.ZipFile(archive_path) as archive:
        directories: list[tuple[Path, zipfile.ZipInfo]] = []
        for info in archive.infolist():
            is_dir = info.is_dir()
            name = _rooted_name(info.filename)
            if not name:
                continue
            _check_inside(dest_dir, name, info.filename)
            info.filename = name + "/" if is_dir else name

            target = Path(archive.extract(info, dest_dir))
            if is_dir:
                directories.append((target, info))
            else:
                _apply_zip_attrs(target, info)

        # Directory times last, after their contents were written
        for target, info in reversed(directories):
            _apply_zip_attrs(target, info)


def _apply_zip_attrs(target: Path, info: zipfile.ZipInfo) -> None:
    mode = (info.external_attr >> 16) & 0o7777
    if mode:
        os.chmod(target, mode & ~0o7000)
    mtime = time.mktime(info.date_time + (0, 0, -1))
    os.utime(target, (mtime, mtime))


def extract_archive(archive_path: Path, dest_dir: Path) -> None:
    """Extract an archive into dest_dir.

    The format is detected from the archive content. Timestamps and
    permission bits are preserved.

    Args:
        archive_path: Path to the archive file.
        dest_dir: Destination directory for extraction.

    Raises:
        ExtractionError: If the format is unsupported, the archive is
            corrupt, an entry escapes dest_dir, or writing fails. Any
            entry-level error aborts the whole extraction.
    """
    logger.info("Extracting %s to %s", archive_path.name, dest_dir)

    dest_dir.mkdir(parents=True, exist_ok=True)

    try:
        if tarfile.is_tarfile(archive_path):
            _extract_tar(archive_path, dest_dir)
        elif zipfile.is_zipfile(archive_path):
            _extract_zip(archive_path, dest_dir)
        else:
            raise ExtractionError(
                f"Unsupported archive format: {archive_path.name}",
                code="unsupported_format",
            )
    except tarfile.TarError as e:
        raise ExtractionError(
            f"Failed to extract {archive_path.name}: {e}",
            code="corrupt_archive",
        ) from e
    except (zipfile.BadZipFile, EOFError, zlib.error) as e:
        raise ExtractionError(
            f"Failed to extract {archive_path.name}: {e}",
            code="corrupt_archive",
        ) from e
    except OSError as e:
        raise ExtractionError(
            f"OS error extracting {archive_path.name}: {e}",
            code="os_error",
        ) from e

    logger.debug("Extracted %s", archive_path.name)


__all__ = ["ExtractionError", "extract_archive"]
