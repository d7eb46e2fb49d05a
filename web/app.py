"""FastAPI application factory and main app.

This module creates the FastAPI application with all routers and the
shared DocsetLifecycleController configured.

Web routes are thin proxies to the controller.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from docset_manager import __version__
from docset_manager.config import get_settings
from docset_manager.controller import DocsetLifecycleController
from web.routers import config, docsets, health, index

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager.

    Creates the controller and loads the catalog on startup; cancels
    background work on shutdown.
    """
    controller = DocsetLifecycleController(get_settings())
    if not controller.refresh_catalog():
        logger.warning("Starting without a docset catalog")
    app.state.controller = controller
    try:
        yield
    finally:
        controller.close()


def include_routers(application: FastAPI) -> None:
    """Attach all API routers to an application."""
    application.include_router(health.router, tags=["health"])
    application.include_router(config.router, prefix="/config", tags=["config"])
    application.include_router(docsets.router, prefix="/docsets", tags=["docsets"])
    application.include_router(index.router, prefix="/index", tags=["index"])


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application.
    """
    application = FastAPI(
        title="Docset Manager API",
        description="HTTP API for installing, removing and indexing "
        "offline documentation sets",
        version=__version__,
        lifespan=lifespan,
    )
    include_routers(application)
    return application


# Create the default application instance
app = create_app()
