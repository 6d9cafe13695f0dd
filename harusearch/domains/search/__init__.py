"""
Search Domain - Relevance-ranked search across companions, users, messages and checkpoints.

This domain handles:
- Query sanitization
- Per-entity ranked, visibility-filtered search (SQLite FTS5)
- Tag folding for companion results
- Chat-scoped message search with ownership check
- Concurrent global fan-out with failure isolation
- Per-caller search history
"""

from .aggregation import TagAggregator
from .contracts import ChatSearcher, EntitySearcher, GlobalSearch
from .history import SearchHistoryService
from .models import (
    ChatMessageResult,
    CheckpointResult,
    CompanionResult,
    MessageResult,
    SearchCategory,
    SearchHistoryEntry,
    SearchResults,
    TagSummary,
    UserResult,
)
from .orchestrator import GlobalSearchOrchestrator
from .query import sanitize, to_match_expression
from .searchers import (
    ChatScopedSearcher,
    CheckpointSearcher,
    CompanionSearcher,
    MessageSearcher,
    UserSearcher,
)

__all__ = [
    # Contracts
    "EntitySearcher",
    "ChatSearcher",
    "GlobalSearch",
    # Models
    "CompanionResult",
    "UserResult",
    "MessageResult",
    "CheckpointResult",
    "ChatMessageResult",
    "TagSummary",
    "SearchResults",
    "SearchCategory",
    "SearchHistoryEntry",
    # Implementations
    "sanitize",
    "to_match_expression",
    "TagAggregator",
    "CompanionSearcher",
    "UserSearcher",
    "MessageSearcher",
    "CheckpointSearcher",
    "ChatScopedSearcher",
    "GlobalSearchOrchestrator",
    "SearchHistoryService",
]
