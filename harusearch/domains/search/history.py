"""
Search History - Bounded, per-caller log of recent searches.

History is owned by the caller and persisted in the store, newest first,
deduplicated by query text.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .models import SearchCategory, SearchHistoryEntry

if TYPE_CHECKING:
    from harusearch.adapters.sqlite import SQLiteRepository

logger = logging.getLogger(__name__)

__all__ = ["SearchHistoryService"]


class SearchHistoryService:
    """
    Record and recall a caller's searches.

    Example:
        >>> history = SearchHistoryService(repo)
        >>> await history.record("user-1", "romance", SearchCategory.COMPANIONS)
        >>> await history.recent("user-1")
        ['romance']
    """

    def __init__(
        self,
        repo: SQLiteRepository,
        max_entries: int = 20,
        recent_limit: int = 10,
    ) -> None:
        """
        Args:
            repo: Store holding the history rows
            max_entries: Entries kept per caller; older ones are pruned
            recent_limit: Queries returned by ``recent``
        """
        self._repo = repo
        self._max_entries = max_entries
        self._recent_limit = recent_limit

    async def record(
        self,
        caller_id: str,
        query: str,
        category: SearchCategory | None = None,
    ) -> bool:
        """
        Remember a search, moving a repeated query to the front.

        Returns:
            False when the query is blank and nothing was recorded
        """
        query = query.strip() if query else ""
        if not query:
            return False

        await self._repo.record_search(
            caller_id,
            query,
            category.value if category else None,
            max_entries=self._max_entries,
        )
        return True

    async def entries(self, caller_id: str) -> list[SearchHistoryEntry]:
        """Full history, newest first."""
        rows = await self._repo.list_search_history(caller_id, limit=self._max_entries)
        return [SearchHistoryEntry(**row) for row in rows]

    async def recent(self, caller_id: str) -> list[str]:
        """Most recent query strings."""
        rows = await self._repo.list_search_history(caller_id, limit=self._recent_limit)
        return [row["query"] for row in rows]

    async def remove(self, caller_id: str, query: str) -> bool:
        """Forget one query. Returns whether it was present."""
        return await self._repo.delete_search(caller_id, query.strip())

    async def clear(self, caller_id: str) -> int:
        """Forget everything for the caller."""
        removed = await self._repo.clear_searches(caller_id)
        logger.info("Cleared %d search history entries", removed)
        return removed
