"""
Chat Routes - Message search inside one chat.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from harusearch.domains.search import ChatMessageResult, ChatScopedSearcher
from harusearch.interfaces.api.auth import UserContext, get_current_user
from harusearch.interfaces.api.deps import get_chat_searcher

router = APIRouter()


@router.get("/{chat_id}/search", response_model=list[ChatMessageResult])
async def search_within_chat(
    chat_id: str,
    q: str = Query("", max_length=200, description="Free-text search query"),
    user: UserContext = Depends(get_current_user),
    searcher: ChatScopedSearcher = Depends(get_chat_searcher),
) -> list[ChatMessageResult]:
    """
    Search messages of a chat the caller owns.

    Returns 403 when the chat does not exist or belongs to someone else.
    """
    return await searcher.search_within_chat(chat_id, q, user.user_id)
