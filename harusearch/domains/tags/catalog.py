"""
Tag Catalog - Global tag lookups and creation.

Tags are not owned by anyone, so no visibility predicate applies. Store
failures propagate to the caller.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from harusearch.config.errors import InvalidInputError, StorageError

from .models import TagResult

if TYPE_CHECKING:
    from harusearch.adapters.sqlite import SQLiteRepository

logger = logging.getLogger(__name__)

__all__ = ["TagCatalogService"]


class TagCatalogService:
    """
    Tag catalog backed by the SQLite store.

    Example:
        >>> catalog = TagCatalogService(repo)
        >>> [t.name for t in await catalog.search_tags_by_prefix("rom")]
        ['Romance']
    """

    def __init__(self, repo: SQLiteRepository, prefix_limit: int = 10) -> None:
        self._repo = repo
        self._prefix_limit = prefix_limit

    async def list_all_tags(self) -> list[TagResult]:
        """All tags alphabetically with companion counts."""
        rows = await self._repo.list_tags()
        return [TagResult(**row) for row in rows]

    async def search_tags_by_prefix(self, query: str) -> list[TagResult]:
        """Case-insensitive substring match on tag names; blank query returns []."""
        text = query.strip() if query else ""
        if not text:
            return []

        rows = await self._repo.search_tags(text, limit=self._prefix_limit)
        return [TagResult(**row) for row in rows]

    async def create_tag(self, name: str, description: str | None = None) -> TagResult:
        """
        Create a tag.

        Raises:
            InvalidInputError: Name is blank
            ConflictError: A tag with this name exists
        """
        name = name.strip() if name else ""
        if not name:
            raise InvalidInputError("Tag name must not be empty")

        description = description.strip() if description else None
        tag_id = await self._repo.insert_tag(name, description or None)
        logger.info("Created tag: %s", name)

        row = await self._repo.get_tag(tag_id)
        if row is None:
            raise StorageError("Created tag could not be read back", {"tag_id": tag_id})
        return TagResult(**row)
