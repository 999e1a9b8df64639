"""Web layer (FastAPI) for the link gate service."""

from .app_factory import create_app

__all__ = ["create_app"]
