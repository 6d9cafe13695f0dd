"""
SQLite Adapter - FTS5-backed storage for search.
"""

from .repository import SQLiteRepository, owner_or_public

__all__ = ["SQLiteRepository", "owner_or_public"]
