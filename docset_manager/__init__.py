"""Docset Manager - offline documentation sets, installed and indexed.

This package synchronizes a remote docset catalog, downloads and installs
docset archives, and maintains a searchable index over installed docsets.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
