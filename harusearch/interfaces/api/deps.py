"""
API Dependencies - Dependency injection for FastAPI routes.

Provides singleton instances of the repository and search services.
"""

from __future__ import annotations

from functools import lru_cache

from harusearch.adapters.sqlite import SQLiteRepository
from harusearch.config import get_settings
from harusearch.domains.search import (
    ChatScopedSearcher,
    GlobalSearchOrchestrator,
    SearchHistoryService,
)
from harusearch.domains.tags import TagCatalogService


@lru_cache
def get_sqlite_repository() -> SQLiteRepository:
    """Get SQLite repository singleton."""
    settings = get_settings()
    return SQLiteRepository(
        settings.db_path,
        pool_size=settings.db_pool_size,
        query_timeout=settings.db_query_timeout,
    )


@lru_cache
def get_global_search() -> GlobalSearchOrchestrator:
    """Get global search orchestrator singleton."""
    return GlobalSearchOrchestrator.from_repository(get_sqlite_repository(), get_settings())


@lru_cache
def get_chat_searcher() -> ChatScopedSearcher:
    """Get chat-scoped searcher singleton."""
    return ChatScopedSearcher(get_sqlite_repository(), limit=get_settings().chat_search_limit)


@lru_cache
def get_tag_catalog() -> TagCatalogService:
    """Get tag catalog singleton."""
    return TagCatalogService(get_sqlite_repository(), prefix_limit=get_settings().tag_search_limit)


@lru_cache
def get_search_history() -> SearchHistoryService:
    """Get search history singleton."""
    settings = get_settings()
    return SearchHistoryService(
        get_sqlite_repository(),
        max_entries=settings.search_history_max_entries,
        recent_limit=settings.search_recent_limit,
    )


async def init_services() -> None:
    """
    Initialize services on startup.

    This should be called from the FastAPI lifespan handler.
    """
    repo = get_sqlite_repository()
    await repo.initialize()


async def cleanup_services() -> None:
    """Cleanup services on shutdown."""
    repo = get_sqlite_repository()
    await repo.close()
