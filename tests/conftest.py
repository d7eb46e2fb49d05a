"""Shared fixtures for docset_manager tests."""

from pathlib import Path

import pytest
from builders import CATALOG_URL, FEED_URL

from docset_manager.config import Settings


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings rooted in tmp_path with test endpoints."""
    return Settings(
        data_dir=tmp_path / "data",
        catalog_url=CATALOG_URL,
        feed_base_url=FEED_URL,
        download_chunk_size=1024,
    )
