"""Database engine helpers for docset index files.

Every installed docset ships its own SQLite index
(``Contents/Resources/docSet.dsidx``). This module opens those files
through SQLAlchemy and reports which index schema they use.
"""

from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from sqlalchemy import create_engine, inspect
from sqlalchemy.engine import Connection

# Relative location of a docset's index inside its bundle
DOCSET_INDEX_PATH = Path("Contents") / "Resources" / "docSet.dsidx"

# Plain Dash schema: searchIndex(id, name, type, path)
SCHEMA_SEARCH_INDEX = "searchIndex"

# Core Data schema used by Apple-generated docsets (ZTOKEN and friends)
SCHEMA_CORE_DATA = "ztoken"


def get_engine(db_path: Path) -> Any:
    """Create a SQLAlchemy engine for a SQLite file.

    Args:
        db_path: Path to the SQLite database file.

    Returns:
        SQLAlchemy Engine instance.
    """
    return create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        echo=False,
    )


@contextmanager
def open_index(db_path: Path) -> Generator[Connection, None, None]:
    """Open a docset index and dispose of the engine afterwards.

    Args:
        db_path: Path to docSet.dsidx.

    Yields:
        SQLAlchemy Connection.
    """
    engine = get_engine(db_path)
    try:
        with engine.connect() as connection:
            yield connection
    finally:
        engine.dispose()


def detect_schema(connection: Connection) -> str | None:
    """Return SCHEMA_SEARCH_INDEX, SCHEMA_CORE_DATA or None."""
    tables = {name.lower() for name in inspect(connection).get_table_names()}
    if SCHEMA_SEARCH_INDEX.lower() in tables:
        return SCHEMA_SEARCH_INDEX
    if SCHEMA_CORE_DATA in tables:
        return SCHEMA_CORE_DATA
    return None


__all__ = [
    "DOCSET_INDEX_PATH",
    "SCHEMA_CORE_DATA",
    "SCHEMA_SEARCH_INDEX",
    "detect_schema",
    "get_engine",
    "open_index",
]
