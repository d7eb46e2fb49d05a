"""Configuration settings for docset_manager.

Uses pydantic-settings for config parsing from environment variables
and defaults. Configuration precedence: CLI flags > env vars > defaults.
"""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Name of the cached catalog payload inside data_dir
CATALOG_CACHE_FILENAME = "docset_list.json"


def _default_data_dir() -> Path:
    """Return the default data directory."""
    return Path.home() / ".local" / "share" / "docset-manager"


class Settings(BaseSettings):
    """Application settings.

    Settings are loaded from environment variables with the DOCSETS_ prefix.
    CLI flags can override these at runtime.
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCSETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    data_dir: Path = Field(
        default_factory=_default_data_dir,
        description="Root directory for installed docsets, icons and catalog cache",
    )

    # Remote endpoints
    catalog_url: str = Field(
        default="https://api.zealdocs.org/v1/docsets",
        description="URL of the remote docset catalog",
    )
    feed_base_url: str = Field(
        default="https://go.zealdocs.org/d",
        description="Base URL for docset archive downloads",
    )

    # Operational modes
    offline: bool = Field(
        default=False,
        description="Offline mode - read the catalog from cache only",
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO",
        description="Logging level",
    )

    # Timeouts (in seconds)
    catalog_timeout: int = Field(
        default=30,
        ge=1,
        description="Timeout for catalog requests",
    )
    download_timeout: int = Field(
        default=3600,
        ge=60,
        description="Timeout for docset downloads",
    )

    download_chunk_size: int = Field(
        default=64 * 1024,
        ge=1024,
        description="Chunk size for streamed downloads (bytes)",
    )

    @property
    def docsets_dir(self) -> Path:
        """Directory holding one <name>.docset folder per installed docset."""
        return self.data_dir / "docsets"

    @property
    def icons_dir(self) -> Path:
        """Directory holding one <name>.png per catalog entry."""
        return self.data_dir / "icons"

    @property
    def catalog_cache_path(self) -> Path:
        """File holding the last successfully fetched catalog payload."""
        return self.data_dir / CATALOG_CACHE_FILENAME


def get_settings() -> Settings:
    """Get the application settings singleton.

    Returns:
        Settings instance loaded from environment.
    """
    return Settings()


def print_settings_json(settings: Settings | None = None) -> str:
    """Render effective settings as JSON.

    Args:
        settings: Optional settings instance; uses default if not provided.

    Returns:
        JSON string of effective settings.
    """
    if settings is None:
        settings = get_settings()
    return settings.model_dump_json(indent=2)


def configure_logging(settings: Settings | None = None) -> None:
    """Configure the root logger from settings.log_level."""
    if settings is None:
        settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


__all__ = [
    "CATALOG_CACHE_FILENAME",
    "Settings",
    "configure_logging",
    "get_settings",
    "print_settings_json",
]
