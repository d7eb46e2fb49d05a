"""Docset catalog store.

This module handles:
- Fetching the remote catalog (a JSON array of docset records)
- Falling back to the last cached payload when the network fails
- Persisting each docset's embedded icon to the icons directory
- Detecting which catalog entries are already installed
"""

from __future__ import annotations

import base64
import logging
import threading
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING

import httpx
from PIL import Image
from pydantic import TypeAdapter, ValidationError

from docset_manager.catalog.models import CatalogEntry, Docset

if TYPE_CHECKING:
    from docset_manager.config import Settings

logger = logging.getLogger(__name__)

_CATALOG_ADAPTER = TypeAdapter(list[CatalogEntry])


class CatalogUnavailableError(Exception):
    """Raised when neither the network nor the cache yields a catalog."""

    def __init__(self, message: str, code: str = "catalog_unavailable") -> None:
        super().__init__(message)
        self.code = code


class CatalogParseError(Exception):
    """Raised when a catalog payload is not a valid docset list."""

    def __init__(self, message: str, code: str = "catalog_parse_error") -> None:
        super().__init__(message)
        self.code = code


def parse_catalog(payload: bytes) -> list[CatalogEntry]:
    """Parse a raw catalog payload.

    Args:
        payload: JSON bytes as returned by the catalog endpoint.

    Returns:
        List of validated catalog entries, in payload order.

    Raises:
        CatalogParseError: If the payload is not a JSON array of records.
    """
    try:
        return _CATALOG_ADAPTER.validate_json(payload)
    except ValidationError as e:
        raise CatalogParseError(f"Failed to parse docset list: {e}") from e


def save_icon(raw_base64: str, icon_path: Path) -> bool:
    """Decode a base64 image and write it to icon_path as PNG.

    Failures are logged and reported through the return value only.

    Returns:
        True if the icon was written.
    """
    if not raw_base64:
        logger.debug("No icon data for %s", icon_path.name)
        return False
    try:
        data = base64.b64decode(raw_base64, validate=True)
        with Image.open(BytesIO(data)) as image:
            image.save(icon_path, format="PNG")
    except ValueError as e:
        logger.warning("Failed to load image from Base64 data for %s: %s", icon_path.name, e)
        return False
    except OSError as e:
        logger.warning("Failed to save icon %s: %s", icon_path, e)
        return False
    return True


class CatalogStore:
    """In-memory docset list backed by a cached catalog payload on disk."""

    def __init__(self, settings: Settings, client: httpx.Client) -> None:
        self._settings = settings
        self._client = client
        self._docsets: list[Docset] = []
        self._lock = threading.Lock()

    def current(self) -> list[Docset]:
        """Return the current docset list (a shallow copy)."""
        with self._lock:
            return list(self._docsets)

    def find(self, name: str) -> Docset | None:
        with self._lock:
            for docset in self._docsets:
                if docset.name == name:
                    return docset
        return None

    def refresh(self) -> list[Docset]:
        """Reload the catalog from the network, or from cache on failure.

        Existing Docset objects are reused for names still in the catalog, so
        an installed path is only ever filled in, never overwritten.

        Returns:
            The new docset list.

        Raises:
            CatalogUnavailableError: If network and cache both fail.
            CatalogParseError: If the payload is malformed. The previous list
                is kept.
        """
        payload, fresh = self._load_payload()
        entries = parse_catalog(payload)

        self._settings.icons_dir.mkdir(parents=True, exist_ok=True)

        with self._lock:
            previous = {d.name: d for d in self._docsets}

        docsets: list[Docset] = []
        seen: set[str] = set()
        for entry in entries:
            if entry.name in seen:
                logger.warning("Duplicate docset '%s' in catalog, skipping", entry.name)
                continue
            seen.add(entry.name)
            docsets.append(self._build_docset(entry, previous.get(entry.name)))

        with self._lock:
            self._docsets = docsets

        logger.info("Docset list updated (%d docsets)", len(docsets))

        if fresh:
            self._write_cache(payload)

        return list(docsets)

    def _build_docset(self, entry: CatalogEntry, existing: Docset | None) -> Docset:
        icon_path = self._settings.icons_dir / f"{entry.name}.png"
        save_icon(entry.icon2x, icon_path)

        if existing is None:
            docset = Docset(
                name=entry.name,
                title=entry.title,
                source_id=entry.source_id,
                icon_path=icon_path,
            )
        else:
            docset = existing
            docset.title = entry.title
            docset.source_id = entry.source_id
            docset.icon_path = icon_path

        if docset.path is None:
            install_dir = self._settings.docsets_dir / f"{entry.name}.docset"
            if install_dir.is_dir():
                docset.path = install_dir
        return docset

    def _load_payload(self) -> tuple[bytes, bool]:
        """Return (payload, freshly_fetched)."""
        if self._settings.offline:
            logger.debug("Offline mode, reading cached docset list")
            return self._read_cache("offline mode"), False

        url = self._settings.catalog_url
        logger.debug("Downloading docset list from '%s'", url)
        try:
            response = self._client.get(url, timeout=self._settings.catalog_timeout)
            response.raise_for_status()
            return response.content, True
        except httpx.HTTPError as e:
            logger.warning("Error fetching docset list: %s", e)
            return self._read_cache(str(e)), False

    def _read_cache(self, reason: str) -> bytes:
        cache_path = self._settings.catalog_cache_path
        try:
            payload = cache_path.read_bytes()
        except OSError as e:
            raise CatalogUnavailableError(
                f"Error fetching docset list: {reason}"
            ) from e
        logger.info("Using cached docset list %s", cache_path)
        return payload

    def _write_cache(self, payload: bytes) -> None:
        cache_path = self._settings.catalog_cache_path
        try:
            cache_path.parent.mkdir(parents=True, exist_ok=True)
            cache_path.write_bytes(payload)
        except OSError as e:
            logger.warning("Failed to save fetched docset list: %s", e)


__all__ = [
    "CatalogParseError",
    "CatalogStore",
    "CatalogUnavailableError",
    "parse_catalog",
    "save_icon",
]
