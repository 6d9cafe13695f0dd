"""
Global Search - Concurrent fan-out to every entity searcher.

Features:
- One sanitization pass shared by all four searches
- asyncio.gather over companion, user, message and checkpoint searches
- Per-branch failure isolation (a failing branch yields [])
- Degraded mode identical to "nothing found"
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Any

from .models import SearchResults
from .query import sanitize
from .searchers import (
    CheckpointSearcher,
    CompanionSearcher,
    MessageSearcher,
    UserSearcher,
)

if TYPE_CHECKING:
    from harusearch.adapters.sqlite import SQLiteRepository
    from harusearch.config import Settings

    from .contracts import EntitySearcher

logger = logging.getLogger(__name__)

__all__ = ["GlobalSearchOrchestrator"]


class GlobalSearchOrchestrator:
    """
    Search companions, users, messages and checkpoints in one request.

    Example:
        >>> orchestrator = GlobalSearchOrchestrator.from_repository(repo)
        >>> results = await orchestrator.global_search("romance", caller_id="user-1")
        >>> results.companions[0].name
        'Kai'
    """

    ENTITIES = ("companions", "users", "messages", "checkpoints")

    def __init__(
        self,
        companions: CompanionSearcher,
        users: UserSearcher,
        messages: MessageSearcher,
        checkpoints: CheckpointSearcher,
    ) -> None:
        self.companions = companions
        self.users = users
        self.messages = messages
        self.checkpoints = checkpoints

    @classmethod
    def from_repository(
        cls,
        repo: SQLiteRepository,
        settings: Settings | None = None,
    ) -> GlobalSearchOrchestrator:
        """Build all four searchers over one repository, limits from settings."""
        if settings is None:
            return cls(
                CompanionSearcher(repo),
                UserSearcher(repo),
                MessageSearcher(repo),
                CheckpointSearcher(repo),
            )
        return cls(
            CompanionSearcher(repo, settings.companion_search_limit),
            UserSearcher(repo, settings.user_search_limit),
            MessageSearcher(repo, settings.message_search_limit),
            CheckpointSearcher(repo, settings.checkpoint_search_limit),
        )

    async def global_search(
        self,
        raw_query: str,
        caller_id: str | None,
    ) -> SearchResults:
        """
        Run all entity searches concurrently and assemble one response.

        Args:
            raw_query: Unsanitized user input
            caller_id: Opaque caller identity; None yields empty results

        Returns:
            Four independent lists, each possibly empty. Never raises.
        """
        query = sanitize(raw_query)
        if not caller_id or not query:
            return SearchResults()

        branches: list[asyncio.Future[list[Any]]] = []
        try:
            for entity in self.ENTITIES:
                searcher = getattr(self, entity)
                branches.append(
                    asyncio.ensure_future(self._isolated(entity, searcher, query, caller_id))
                )
            companions, users, messages, checkpoints = await asyncio.gather(*branches)
        except Exception as e:
            for branch in branches:
                branch.cancel()
            logger.error("Global search failed: %s", e)
            return SearchResults()

        results = SearchResults(
            companions=companions,
            users=users,
            messages=messages,
            checkpoints=checkpoints,
        )

        logger.info(
            "Global search: query='%s' -> %d results "
            "(companions=%d, users=%d, messages=%d, checkpoints=%d)",
            query[:50],
            results.total,
            len(companions),
            len(users),
            len(messages),
            len(checkpoints),
        )

        return results

    @staticmethod
    async def _isolated(
        entity: str,
        searcher: EntitySearcher[Any],
        query: str,
        caller_id: str,
    ) -> list[Any]:
        """Contain one branch's failure so it cannot cancel its siblings."""
        try:
            return await searcher.search(query, caller_id)
        except Exception as e:
            logger.warning("Search branch '%s' failed: %s", entity, e)
            return []
