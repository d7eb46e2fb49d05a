"""Router modules for FastAPI web API."""

from web.routers import config, docsets, health, index

__all__ = ["config", "docsets", "health", "index"]
