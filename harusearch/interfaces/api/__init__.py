"""
API Interface - FastAPI REST API.

Exposes global search, per-entity search, chat-scoped search, the tag
catalog and per-caller search history.
"""

from .main import app, create_app

__all__ = ["app", "create_app"]
