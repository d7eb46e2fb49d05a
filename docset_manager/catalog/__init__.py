"""Docset catalog module.

This module handles:
- Fetching and validating the remote docset catalog
- Falling back to the cached catalog payload
- Saving docset icons and detecting installed docsets
"""

from docset_manager.catalog.models import CatalogEntry, Docset
from docset_manager.catalog.store import (
    CatalogParseError,
    CatalogStore,
    CatalogUnavailableError,
    parse_catalog,
    save_icon,
)

__all__ = [
    # Models
    "CatalogEntry",
    "Docset",
    # Store
    "CatalogParseError",
    "CatalogStore",
    "CatalogUnavailableError",
    "parse_catalog",
    "save_icon",
]
