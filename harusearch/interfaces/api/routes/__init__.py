"""
API Routes.
"""

from . import chats, health, history, search, tags

__all__ = ["health", "search", "chats", "tags", "history"]
