"""
Search Contracts - Interfaces for search domain.
"""

from __future__ import annotations

from typing import Protocol, TypeVar, runtime_checkable

from .models import ChatMessageResult, SearchResults

ResultT_co = TypeVar("ResultT_co", covariant=True)


@runtime_checkable
class EntitySearcher(Protocol[ResultT_co]):
    """Contract for one relevance-ranked, visibility-filtered entity search."""

    async def search(
        self,
        query: str,
        caller_id: str | None,
    ) -> list[ResultT_co]:
        """Return ranked results; never raises, degrades to an empty list."""
        ...


@runtime_checkable
class ChatSearcher(Protocol):
    """Contract for message search inside one owned chat."""

    async def search_within_chat(
        self,
        chat_id: str,
        query: str,
        caller_id: str | None,
    ) -> list[ChatMessageResult]:
        """Return ranked messages; raises AccessDeniedError for foreign chats."""
        ...


@runtime_checkable
class GlobalSearch(Protocol):
    """Contract for fan-out search across all entity types."""

    async def global_search(
        self,
        raw_query: str,
        caller_id: str | None,
    ) -> SearchResults:
        """Return four independent result lists; never raises."""
        ...
