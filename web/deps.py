"""Controller dependency for FastAPI.

Provides the process-wide DocsetLifecycleController to route handlers via
FastAPI dependency injection. The controller is created in the
application lifespan and stored on app.state.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request

from docset_manager.controller import DocsetLifecycleController


def get_controller(request: Request) -> DocsetLifecycleController:
    """Get the controller from app state.

    Args:
        request: FastAPI request object.

    Returns:
        The shared DocsetLifecycleController.
    """
    controller: Any = request.app.state.controller
    return controller  # type: ignore[no-any-return]
