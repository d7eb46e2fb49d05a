"""Docset management endpoints.

- GET /docsets - List docsets in the catalog
- POST /docsets/refresh - Reload the catalog
- GET /docsets/download - State of the current/last download
- POST /docsets/download/cancel - Cancel the active download
- GET /docsets/{name} - Get a specific docset
- POST /docsets/{name}/download - Start installing a docset
- DELETE /docsets/{name} - Remove an installed docset
"""

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, status

from docset_manager.controller import (
    DocsetLifecycleController,
    DocsetNotFoundError,
    DocsetNotInstalledError,
    RemovalError,
)
from docset_manager.download.manager import (
    DownloadInProgressError,
    NoActiveDownloadError,
)
from web.deps import get_controller

router = APIRouter()


def _not_found(e: DocsetNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={"code": e.code, "message": str(e)},
    )


@router.get("")
def list_docsets_endpoint(
    installed: bool | None = Query(None, description="Filter by install state"),
    controller: DocsetLifecycleController = Depends(get_controller),
) -> list[dict[str, Any]]:
    """List docsets in the catalog.

    Args:
        installed: Only installed (true) or only uninstalled (false) docsets.
        controller: Docset controller.

    Returns:
        List of docsets.
    """
    docsets = controller.docsets()
    if installed is not None:
        docsets = [d for d in docsets if d.is_installed == installed]
    return [d.to_dict() for d in docsets]


@router.post("/refresh")
def refresh_catalog_endpoint(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Reload the docset catalog.

    Returns:
        Number of docsets in the refreshed catalog.
    """
    if not controller.refresh_catalog():
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "code": "catalog_refresh_failed",
                "message": controller.status()["last_status"],
            },
        )
    return {"docsets": len(controller.docsets())}


@router.get("/download")
def get_download_endpoint(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Get the state of the current or last download."""
    return controller.download_state()


@router.post("/download/cancel")
def cancel_download_endpoint(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Cancel the active download."""
    try:
        controller.cancel_download()
    except NoActiveDownloadError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": str(e)},
        ) from None
    return controller.download_state()


@router.get("/{name}")
def get_docset_endpoint(
    name: str,
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Get a specific docset."""
    try:
        return controller.get_docset(name).to_dict()
    except DocsetNotFoundError as e:
        raise _not_found(e) from None


@router.post("/{name}/download", status_code=status.HTTP_202_ACCEPTED)
def download_docset_endpoint(
    name: str,
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Start downloading and installing a docset.

    The download runs in the background; poll GET /docsets/download.
    """
    try:
        controller.download_docset(name)
    except DocsetNotFoundError as e:
        raise _not_found(e) from None
    except DownloadInProgressError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": str(e)},
        ) from None
    return controller.download_state()


@router.delete("/{name}")
def remove_docset_endpoint(
    name: str,
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Remove an installed docset.

    The HTTP client is responsible for asking the user before calling.
    """
    try:
        controller.remove_docset(name)
    except DocsetNotFoundError as e:
        raise _not_found(e) from None
    except DocsetNotInstalledError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"code": e.code, "message": str(e)},
        ) from None
    except RemovalError as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"code": e.code, "message": str(e)},
        ) from None
    return controller.get_docset(name).to_dict()
