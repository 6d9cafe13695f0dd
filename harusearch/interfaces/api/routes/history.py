"""
History Routes - Per-caller recent search log.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from harusearch.domains.search import (
    SearchCategory,
    SearchHistoryEntry,
    SearchHistoryService,
)
from harusearch.interfaces.api.auth import UserContext, get_current_user
from harusearch.interfaces.api.deps import get_search_history

router = APIRouter()


class RecordSearchRequest(BaseModel):
    """Search to remember."""

    query: str = Field(..., max_length=200)
    category: SearchCategory | None = None


class HistoryResponse(BaseModel):
    """Caller's history."""

    entries: list[SearchHistoryEntry]
    recent: list[str]


@router.get("", response_model=HistoryResponse)
async def get_history(
    user: UserContext = Depends(get_current_user),
    history: SearchHistoryService = Depends(get_search_history),
) -> HistoryResponse:
    """Full history (newest first) and the recent query strings."""
    entries = await history.entries(user.user_id)
    recent = await history.recent(user.user_id)
    return HistoryResponse(entries=entries, recent=recent)


@router.post("")
async def record_search(
    request: RecordSearchRequest,
    user: UserContext = Depends(get_current_user),
    history: SearchHistoryService = Depends(get_search_history),
) -> dict[str, bool]:
    """Remember a search; blank queries are ignored."""
    recorded = await history.record(user.user_id, request.query, request.category)
    return {"recorded": recorded}


@router.delete("/entry")
async def remove_search(
    q: str = Query(..., min_length=1, max_length=200),
    user: UserContext = Depends(get_current_user),
    history: SearchHistoryService = Depends(get_search_history),
) -> dict[str, bool]:
    """Forget one query."""
    removed = await history.remove(user.user_id, q)
    return {"removed": removed}


@router.delete("")
async def clear_history(
    user: UserContext = Depends(get_current_user),
    history: SearchHistoryService = Depends(get_search_history),
) -> dict[str, int]:
    """Forget the caller's whole history."""
    removed = await history.clear(user.user_id)
    return {"removed": removed}
