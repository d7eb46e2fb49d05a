"""Docset entry enumeration and index items.

This module handles:
- Reading the entries of an installed docset from its SQLite index
- Normalizing entry paths (Dash entry markers, in-page anchors)
- Turning entries into immutable IndexItem values
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from docset_manager.db import (
    DOCSET_INDEX_PATH,
    SCHEMA_CORE_DATA,
    SCHEMA_SEARCH_INDEX,
    detect_schema,
    open_index,
)

if TYPE_CHECKING:
    from docset_manager.catalog.models import Docset

logger = logging.getLogger(__name__)

# Relative location of the HTML documents inside a docset bundle
DOCUMENTS_PATH = Path("Contents") / "Resources" / "Documents"

_DASH_ENTRY_RE = re.compile(r"<dash_entry_[^>]*>")

_SEARCH_INDEX_QUERY = text("SELECT type, name, path FROM searchIndex")

_CORE_DATA_QUERY = text(
    "SELECT ztokentype.ztypename, ztoken.ztokenname, zfilepath.zpath, "
    "ztokenmetainformation.zanchor "
    "FROM ztoken "
    "JOIN ztokenmetainformation "
    "ON ztoken.zmetainformation = ztokenmetainformation.z_pk "
    "JOIN zfilepath ON ztokenmetainformation.zfile = zfilepath.z_pk "
    "JOIN ztokentype ON ztoken.ztokentype = ztokentype.z_pk"
)


@dataclass(frozen=True)
class DocEntry:
    """One row of a docset's own index."""

    type: str
    name: str
    path: str
    anchor: str = ""


@dataclass(frozen=True)
class IndexItem:
    """One searchable entry derived from an installed docset.

    Attributes:
        id: Docset name followed by entry name.
        text: Entry name.
        subtext: Docset title and entry type.
        icon_path: Icon of the owning docset.
        docset_name: Name of the owning docset.
        url: file: URL that opens the entry.
    """

    id: str
    text: str
    subtext: str
    icon_path: str
    docset_name: str
    url: str

    @property
    def input_action_text(self) -> str:
        return self.text

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "text": self.text,
            "subtext": self.subtext,
            "icon_path": self.icon_path,
            "docset": self.docset_name,
            "url": self.url,
        }


def split_entry_path(raw_path: str) -> tuple[str, str]:
    """Strip Dash entry markers and split off the anchor.

    Args:
        raw_path: Path column as stored in the index, e.g.
            ``<dash_entry_name=x>library/os.html#os.getcwd``.

    Returns:
        (path, anchor) with anchor empty when absent.
    """
    cleaned = _DASH_ENTRY_RE.sub("", raw_path or "")
    path, _, anchor = cleaned.partition("#")
    return path, anchor


def entry_url(docset_path: Path, entry: DocEntry) -> str:
    """Build the file: URL of an entry inside an installed docset."""
    url = f"file:{docset_path / DOCUMENTS_PATH}/{entry.path}"
    if entry.anchor:
        url += f"#{entry.anchor}"
    return url


def enumerate_entries(docset_path: Path) -> Iterator[DocEntry]:
    """Yield the entries of an installed docset.

    Both the plain ``searchIndex`` schema and the Core Data ``ZTOKEN``
    schema are supported. A missing or unreadable index is logged and
    yields nothing.

    Args:
        docset_path: Directory of the installed docset bundle.

    Yields:
        DocEntry per index row.
    """
    index_path = docset_path / DOCSET_INDEX_PATH
    if not index_path.is_file():
        logger.warning("Docset index not found: %s", index_path)
        return

    try:
        with open_index(index_path) as connection:
            schema = detect_schema(connection)
            if schema == SCHEMA_SEARCH_INDEX:
                for type_, name, raw_path in connection.execute(_SEARCH_INDEX_QUERY):
                    path, anchor = split_entry_path(raw_path)
                    yield DocEntry(type_ or "", name or "", path, anchor)
            elif schema == SCHEMA_CORE_DATA:
                for type_, name, path, anchor in connection.execute(_CORE_DATA_QUERY):
                    yield DocEntry(type_ or "", name or "", path or "", anchor or "")
            else:
                logger.warning("Unknown docset index schema in %s", index_path)
    except SQLAlchemyError as e:
        logger.warning("Failed to read docset index %s: %s", index_path, e)


def make_index_item(docset: Docset, entry: DocEntry) -> IndexItem:
    """Build the IndexItem for one entry of an installed docset.

    Raises:
        ValueError: If the docset is not installed.
    """
    if docset.path is None:
        raise ValueError(f"Docset not installed: {docset.name}")
    return IndexItem(
        id=docset.name + entry.name,
        text=entry.name,
        subtext=f"{docset.title} {entry.type}",
        icon_path=str(docset.icon_path),
        docset_name=docset.name,
        url=entry_url(docset.path, entry),
    )


__all__ = [
    "DOCUMENTS_PATH",
    "DocEntry",
    "IndexItem",
    "entry_url",
    "enumerate_entries",
    "make_index_item",
    "split_entry_path",
]
