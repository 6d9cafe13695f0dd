"""
Search Models - Data types for search domain.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class CreatorSummary(BaseModel):
    """Public profile fields of a record's creator."""

    username: str | None = None
    display_name: str | None = None


class TagSummary(BaseModel):
    """Tag reference carried on companion results."""

    id: str
    name: str


class CompanionResult(BaseModel):
    """Companion search hit."""

    id: str
    name: str
    description: str | None = None
    image_url: str | None = None
    is_public: bool
    creator: CreatorSummary = Field(default_factory=CreatorSummary)
    tags: list[TagSummary] = Field(default_factory=list)
    relevance: float = 0.0


class UserResult(BaseModel):
    """User profile search hit."""

    id: str
    username: str | None = None
    display_name: str | None = None
    bio: str | None = None
    image_url: str | None = None
    relevance: float = 0.0


class CompanionSummary(BaseModel):
    """Companion fields shown next to a message hit."""

    name: str
    image_url: str | None = None


class ChatSummary(BaseModel):
    """Owning chat of a message hit."""

    id: str
    title: str | None = None
    companion: CompanionSummary


class MessageResult(BaseModel):
    """Message hit from the caller's own chats."""

    id: str
    content: str
    created_at: datetime
    chat: ChatSummary
    relevance: float = 0.0


class CheckpointResult(BaseModel):
    """Checkpoint search hit."""

    id: str
    title: str
    description: str | None = None
    usage_count: int = 0
    is_public: bool
    creator: CreatorSummary = Field(default_factory=CreatorSummary)
    relevance: float = 0.0


class SenderSummary(BaseModel):
    """Sender of a chat-scoped message hit."""

    id: str
    username: str | None = None
    display_name: str | None = None


class ChatMessageResult(BaseModel):
    """Message hit inside one chat."""

    id: str
    content: str
    created_at: datetime
    sender: SenderSummary
    relevance: float = 0.0


class SearchResults(BaseModel):
    """Unified global search response: one independent list per entity."""

    companions: list[CompanionResult] = Field(default_factory=list)
    users: list[UserResult] = Field(default_factory=list)
    messages: list[MessageResult] = Field(default_factory=list)
    checkpoints: list[CheckpointResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return (
            len(self.companions)
            + len(self.users)
            + len(self.messages)
            + len(self.checkpoints)
        )


class SearchCategory(str, Enum):
    """Where a remembered search was issued from."""

    GLOBAL = "global"
    COMPANIONS = "companions"
    USERS = "users"
    MESSAGES = "messages"
    CHECKPOINTS = "checkpoints"


class SearchHistoryEntry(BaseModel):
    """One remembered search of a caller."""

    id: str
    query: str
    category: SearchCategory | None = None
    created_at: datetime
