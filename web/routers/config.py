"""Configuration endpoints."""

from typing import Any

from fastapi import APIRouter, Depends

from docset_manager.controller import DocsetLifecycleController
from web.deps import get_controller

router = APIRouter()


@router.get("")
def get_config(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Get effective configuration.

    Returns:
        Current configuration as JSON.
    """
    settings = controller.settings
    return {
        "data_dir": str(settings.data_dir),
        "docsets_dir": str(settings.docsets_dir),
        "icons_dir": str(settings.icons_dir),
        "catalog_cache_path": str(settings.catalog_cache_path),
        "catalog_url": settings.catalog_url,
        "feed_base_url": settings.feed_base_url,
        "offline": settings.offline,
        "log_level": settings.log_level,
        "catalog_timeout": settings.catalog_timeout,
        "download_timeout": settings.download_timeout,
    }
