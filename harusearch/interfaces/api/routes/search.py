"""
Search Routes - Global and per-entity search endpoints.

Authentication:
- Authenticated callers: results filtered by their visibility
- Anonymous callers: empty results (never an error)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from harusearch.domains.search import (
    CheckpointResult,
    CompanionResult,
    GlobalSearchOrchestrator,
    MessageResult,
    SearchResults,
    UserResult,
)
from harusearch.interfaces.api.auth import UserContext, get_current_user_optional
from harusearch.interfaces.api.deps import get_global_search

router = APIRouter()

QUERY = Query("", max_length=200, description="Free-text search query")


def _caller_id(user: UserContext | None) -> str | None:
    return user.user_id if user else None


@router.get("", response_model=SearchResults)
async def global_search(
    q: str = QUERY,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> SearchResults:
    """
    Search companions, users, messages and checkpoints at once.

    - **q**: Search query text (punctuation is ignored)

    Each list is ranked independently; a failing entity search shows up as
    an empty list.
    """
    return await search.global_search(q, _caller_id(user))


@router.get("/companions", response_model=list[CompanionResult])
async def search_companions(
    q: str = QUERY,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> list[CompanionResult]:
    """Search public companions and the caller's own, including tag names."""
    return await search.companions.search(q, _caller_id(user))


@router.get("/companions/by-tag/{tag_name}", response_model=list[CompanionResult])
async def search_companions_by_tag(
    tag_name: str,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> list[CompanionResult]:
    """List visible companions bearing a tag, newest first."""
    return await search.companions.search_by_tag(tag_name, _caller_id(user))


@router.get("/users", response_model=list[UserResult])
async def search_users(
    q: str = QUERY,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> list[UserResult]:
    """Search user profiles (the caller is never included)."""
    return await search.users.search(q, _caller_id(user))


@router.get("/messages", response_model=list[MessageResult])
async def search_messages(
    q: str = QUERY,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> list[MessageResult]:
    """Search messages across the caller's own chats."""
    return await search.messages.search(q, _caller_id(user))


@router.get("/checkpoints", response_model=list[CheckpointResult])
async def search_checkpoints(
    q: str = QUERY,
    user: UserContext | None = Depends(get_current_user_optional),
    search: GlobalSearchOrchestrator = Depends(get_global_search),
) -> list[CheckpointResult]:
    """Search public checkpoints and the caller's own."""
    return await search.checkpoints.search(q, _caller_id(user))
