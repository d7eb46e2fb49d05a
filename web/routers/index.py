"""Index endpoints.

- GET /index - Published index items, optionally filtered
- GET /index/status - Index builder state
- POST /index/rebuild - Schedule an index rebuild
"""

from typing import Any

from fastapi import APIRouter, Depends, Query, status

from docset_manager.controller import DocsetLifecycleController
from web.deps import get_controller

router = APIRouter()


@router.get("")
def list_index_endpoint(
    docset: str | None = Query(None, description="Filter by docset name"),
    q: str | None = Query(None, description="Case-insensitive text filter"),
    limit: int = Query(100, ge=1, le=10000, description="Maximum number of items"),
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """List published index items.

    Items always come from a single index generation.
    """
    generation, items = controller.index.snapshot()
    selected = list(items)
    if docset:
        selected = [i for i in selected if i.docset_name == docset]
    if q:
        needle = q.lower()
        selected = [i for i in selected if needle in i.text.lower()]
    return {
        "generation": generation,
        "total": len(selected),
        "items": [i.to_dict() for i in selected[:limit]],
    }


@router.get("/status")
def index_status_endpoint(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Get index builder state."""
    return controller.status()["index"]


@router.post("/rebuild", status_code=status.HTTP_202_ACCEPTED)
def rebuild_index_endpoint(
    controller: DocsetLifecycleController = Depends(get_controller),
) -> dict[str, Any]:
    """Schedule an index rebuild, superseding a running one."""
    controller.rebuild_index()
    return controller.status()["index"]
