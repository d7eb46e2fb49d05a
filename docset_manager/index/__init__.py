"""Docset index module.

This module handles:
- Enumerating entries of installed docsets
- Building index items in a cancellable background task
- Publishing the index atomically for readers
"""

from docset_manager.index.builder import IndexBuilder, IndexStore
from docset_manager.index.entries import (
    DocEntry,
    IndexItem,
    enumerate_entries,
    make_index_item,
    split_entry_path,
)

__all__ = [
    # Builder
    "IndexBuilder",
    "IndexStore",
    # Entries
    "DocEntry",
    "IndexItem",
    "enumerate_entries",
    "make_index_item",
    "split_entry_path",
]
