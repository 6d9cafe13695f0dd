"""
CLI Interface - Command-line tools for HaruSearch.

Provides commands for:
- Global and chat-scoped search
- Tag catalog listing
- Search history
- System management
"""

from .main import app, main

__all__ = ["app", "main"]
