"""
Tag Contracts - Interfaces for tags domain.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import TagResult


@runtime_checkable
class TagCatalog(Protocol):
    """Contract for tag catalog reads."""

    async def list_all_tags(self) -> list[TagResult]:
        """All tags alphabetically."""
        ...

    async def search_tags_by_prefix(self, query: str) -> list[TagResult]:
        """Tags matching ``query`` case-insensitively, alphabetically."""
        ...

    async def create_tag(self, name: str, description: str | None = None) -> TagResult:
        """Create a tag; raises ConflictError when the name is taken."""
        ...
