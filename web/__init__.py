"""FastAPI web application for Docset Manager.

This module provides the HTTP API that mirrors DocsetLifecycleController.
All business logic is delegated to the core package in docset_manager/.
"""

from web.app import app, create_app

__all__ = ["app", "create_app"]
