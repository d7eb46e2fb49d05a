"""Health endpoint.

- GET /health - Service version plus catalog, download and index summary
"""

from typing import Any

from fastapi import APIRouter, Depends

from docset_manager import __version__
from docset_manager.controller import DocsetLifecycleController
from web.deps import get_controller

router = APIRouter()


@router.get("/health")
def health(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Report whether the service is usable and what it is doing.

    The status is "degraded" while the catalog is empty, since nothing
    can be installed or indexed until a refresh succeeds.
    """
    summary = controller.status()
    return {
        "status": "ok" if summary["docsets"] else "degraded",
        "version": __version__,
        "docsets": summary["docsets"],
        "installed": summary["installed"],
        "download": summary["download"]["status"],
        "index": summary["index"],
    }
