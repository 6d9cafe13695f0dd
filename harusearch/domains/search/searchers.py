"""
Entity Searchers - One relevance-ranked, visibility-filtered query per entity.

Each searcher:
- short-circuits to [] on an empty query or missing caller (no store call)
- lets the store rank with FTS5 bm25 and apply the visibility predicate
- maps raw rows into typed results
- absorbs store failures into [] so sibling searches are unaffected

ChatScopedSearcher is the exception: it verifies chat ownership and
propagates both AccessDeniedError and store failures.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from harusearch.config.errors import AccessDeniedError

from .aggregation import TagAggregator
from .models import (
    ChatMessageResult,
    ChatSummary,
    CheckpointResult,
    CompanionResult,
    CompanionSummary,
    CreatorSummary,
    MessageResult,
    SenderSummary,
    UserResult,
)
from .query import sanitize, to_match_expression

if TYPE_CHECKING:
    from harusearch.adapters.sqlite import SQLiteRepository

logger = logging.getLogger(__name__)

__all__ = [
    "CompanionSearcher",
    "UserSearcher",
    "MessageSearcher",
    "CheckpointSearcher",
    "ChatScopedSearcher",
]

ResultT = TypeVar("ResultT")


def _relevance(row: dict[str, Any]) -> float:
    return abs(row.get("score") or 0.0)  # BM25 scores are negative


class BaseEntitySearcher(Generic[ResultT]):
    """Shared search flow; subclasses supply the store call and row mapping."""

    entity = "entity"
    default_limit = 20

    def __init__(self, repo: SQLiteRepository, limit: int | None = None) -> None:
        self._repo = repo
        self._limit = limit or self.default_limit

    async def search(self, query: str, caller_id: str | None) -> list[ResultT]:
        """
        Execute the entity search.

        Args:
            query: Free text (sanitized again here, so raw input is safe)
            caller_id: Opaque caller identity; None yields no results

        Returns:
            Results ordered by relevance then the entity's tie-breaks
        """
        match = to_match_expression(query)
        if not caller_id or not match:
            return []

        try:
            rows = await self._fetch(match, caller_id)
            results = self._map_rows(rows)
        except Exception as e:
            logger.warning("%s search failed: %s", self.entity.capitalize(), e)
            return []

        logger.debug(
            "%s search: query='%s' -> %d results",
            self.entity.capitalize(),
            sanitize(query)[:50],
            len(results),
        )
        return results

    async def _fetch(self, match: str, caller_id: str) -> list[dict[str, Any]]:
        raise NotImplementedError

    def _map_rows(self, rows: list[dict[str, Any]]) -> list[ResultT]:
        return [self._map_row(row) for row in rows]

    def _map_row(self, row: dict[str, Any]) -> ResultT:
        raise NotImplementedError


class CompanionSearcher(BaseEntitySearcher[CompanionResult]):
    """
    Companions visible to the caller, matched on name, description and tag names.

    Example:
        >>> searcher = CompanionSearcher(repo)
        >>> results = await searcher.search("romance", caller_id="user-1")
        >>> [t.name for t in results[0].tags]
        ['Romance']
    """

    entity = "companion"

    def __init__(self, repo: SQLiteRepository, limit: int | None = None) -> None:
        super().__init__(repo, limit)
        self._aggregator = TagAggregator()

    async def _fetch(self, match: str, caller_id: str) -> list[dict[str, Any]]:
        return await self._repo.search_companions(match, caller_id, limit=self._limit)

    def _map_rows(self, rows: list[dict[str, Any]]) -> list[CompanionResult]:
        return self._aggregator.fold(rows)

    async def search_by_tag(
        self, tag_name: str, caller_id: str | None
    ) -> list[CompanionResult]:
        """Visible companions bearing ``tag_name``, newest first."""
        tag_name = tag_name.strip() if tag_name else ""
        if not caller_id or not tag_name:
            return []

        try:
            rows = await self._repo.search_companions_by_tag(
                tag_name, caller_id, limit=self._limit
            )
        except Exception as e:
            logger.warning("Companion tag search failed: %s", e)
            return []

        return self._aggregator.fold(rows)


class UserSearcher(BaseEntitySearcher[UserResult]):
    """User profiles by username, display name and bio; the caller never matches."""

    entity = "user"

    async def _fetch(self, match: str, caller_id: str) -> list[dict[str, Any]]:
        return await self._repo.search_users(match, caller_id, limit=self._limit)

    def _map_row(self, row: dict[str, Any]) -> UserResult:
        return UserResult(
            id=row["id"],
            username=row.get("username"),
            display_name=row.get("display_name"),
            bio=row.get("bio"),
            image_url=row.get("image_url"),
            relevance=_relevance(row),
        )


class MessageSearcher(BaseEntitySearcher[MessageResult]):
    """Live messages from chats the caller owns."""

    entity = "message"
    default_limit = 50

    async def _fetch(self, match: str, caller_id: str) -> list[dict[str, Any]]:
        return await self._repo.search_messages(match, caller_id, limit=self._limit)

    def _map_row(self, row: dict[str, Any]) -> MessageResult:
        return MessageResult(
            id=row["id"],
            content=row["content"],
            created_at=row["created_at"],
            chat=ChatSummary(
                id=row["chat_id"],
                title=row.get("chat_title"),
                companion=CompanionSummary(
                    name=row["companion_name"],
                    image_url=row.get("companion_image_url"),
                ),
            ),
            relevance=_relevance(row),
        )


class CheckpointSearcher(BaseEntitySearcher[CheckpointResult]):
    """Checkpoints visible to the caller; higher usage wins relevance ties."""

    entity = "checkpoint"

    async def _fetch(self, match: str, caller_id: str) -> list[dict[str, Any]]:
        return await self._repo.search_checkpoints(match, caller_id, limit=self._limit)

    def _map_row(self, row: dict[str, Any]) -> CheckpointResult:
        return CheckpointResult(
            id=row["id"],
            title=row["title"],
            description=row.get("description"),
            usage_count=row.get("usage_count") or 0,
            is_public=bool(row["is_public"]),
            creator=CreatorSummary(
                username=row.get("creator_username"),
                display_name=row.get("creator_display_name"),
            ),
            relevance=_relevance(row),
        )


class ChatScopedSearcher:
    """
    Message search restricted to one chat the caller owns.

    An anonymous caller gets no results. Otherwise failures surface: a chat
    the caller does not own raises AccessDeniedError and store errors
    propagate.
    """

    def __init__(self, repo: SQLiteRepository, limit: int = 100) -> None:
        self._repo = repo
        self._limit = limit

    async def search_within_chat(
        self,
        chat_id: str,
        query: str,
        caller_id: str | None,
    ) -> list[ChatMessageResult]:
        """
        Search messages of ``chat_id``.

        Raises:
            AccessDeniedError: The chat is missing or owned by someone else
            StorageError: Store lookup or query failed
        """
        match = to_match_expression(query)
        if not caller_id or not match:
            return []

        chat = await self._repo.get_chat(chat_id)
        if chat is None or chat["user_id"] != caller_id:
            logger.warning("Chat search denied: chat_id=%s", chat_id)
            raise AccessDeniedError("Chat not found or access denied", {"chat_id": chat_id})

        rows = await self._repo.search_chat_messages(match, chat_id, limit=self._limit)
        results = [self._map_row(row) for row in rows]

        logger.debug("Chat search: chat_id=%s -> %d results", chat_id, len(results))
        return results

    @staticmethod
    def _map_row(row: dict[str, Any]) -> ChatMessageResult:
        return ChatMessageResult(
            id=row["id"],
            content=row["content"],
            created_at=row["created_at"],
            sender=SenderSummary(
                id=row["sender_id"],
                username=row.get("sender_username"),
                display_name=row.get("sender_display_name"),
            ),
            relevance=_relevance(row),
        )
