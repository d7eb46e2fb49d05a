"""Tests for configuration module."""

import json
import os
from pathlib import Path
from unittest.mock import patch

from docset_manager.config import (
    CATALOG_CACHE_FILENAME,
    Settings,
    get_settings,
    print_settings_json,
)


class TestSettings:
    """Test Settings class."""

    def test_default_settings(self) -> None:
        """Settings should have sensible defaults."""
        settings = Settings()

        assert (
            settings.data_dir == Path.home() / ".local" / "share" / "docset-manager"
        )
        assert settings.catalog_url.startswith("https://")
        assert settings.feed_base_url.startswith("https://")
        assert settings.offline is False
        assert settings.log_level == "INFO"

    def test_derived_paths(self, tmp_path: Path) -> None:
        """Docsets, icons and cache file should live under data_dir."""
        settings = Settings(data_dir=tmp_path)

        assert settings.docsets_dir == tmp_path / "docsets"
        assert settings.icons_dir == tmp_path / "icons"
        assert settings.catalog_cache_path == tmp_path / CATALOG_CACHE_FILENAME

    def test_data_dir_is_only_path_setting(self, tmp_path: Path) -> None:
        """Every location on disk should derive from data_dir."""
        settings = Settings(data_dir=tmp_path)

        path_fields = [
            name for name, value in settings.model_dump().items()
            if isinstance(value, Path)
        ]
        assert path_fields == ["data_dir"]

    def test_settings_from_env(self) -> None:
        """Settings should be loadable from environment variables."""
        with patch.dict(
            os.environ,
            {
                "DOCSETS_OFFLINE": "true",
                "DOCSETS_LOG_LEVEL": "DEBUG",
                "DOCSETS_CATALOG_URL": "https://mirror.example.com/docsets",
            },
        ):
            settings = Settings()
            assert settings.offline is True
            assert settings.log_level == "DEBUG"
            assert settings.catalog_url == "https://mirror.example.com/docsets"

    def test_data_dir_from_env(self) -> None:
        """Data dir should be configurable via env."""
        with patch.dict(os.environ, {"DOCSETS_DATA_DIR": "/tmp/test-docsets"}):
            settings = Settings()
            assert settings.data_dir == Path("/tmp/test-docsets")
            assert settings.docsets_dir == Path("/tmp/test-docsets/docsets")


class TestGetSettings:
    """Test get_settings function."""

    def test_get_settings_returns_settings(self) -> None:
        """get_settings should return a Settings instance."""
        assert isinstance(get_settings(), Settings)


class TestPrintSettingsJson:
    """Test print_settings_json function."""

    def test_print_settings_json(self) -> None:
        """print_settings_json should return valid JSON."""
        parsed = json.loads(print_settings_json(Settings()))

        assert "data_dir" in parsed
        assert "catalog_url" in parsed
        assert "feed_base_url" in parsed
        assert "offline" in parsed

    def test_print_settings_json_default(self) -> None:
        """print_settings_json without args should use default settings."""
        parsed = json.loads(print_settings_json())
        assert "data_dir" in parsed
