"""Tests for GlobalSearchOrchestrator."""

import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from harusearch.adapters.sqlite import SQLiteRepository
from harusearch.config import Settings
from harusearch.config.errors import StorageError

from .contracts import ChatSearcher, EntitySearcher, GlobalSearch
from .models import (
    ChatSummary,
    CheckpointResult,
    CompanionResult,
    CompanionSummary,
    MessageResult,
    SearchResults,
    UserResult,
)
from .orchestrator import GlobalSearchOrchestrator
from .searchers import ChatScopedSearcher


def _mock_searchers() -> dict[str, AsyncMock]:
    searchers = {}
    for name in ("companions", "users", "messages", "checkpoints"):
        searcher = AsyncMock()
        searcher.search.return_value = []
        searchers[name] = searcher
    return searchers


async def test_global_search_end_to_end(repo: SQLiteRepository, seeded: dict):
    await repo.insert_message(seeded["chat"], seeded["u1"], "Kai told a romance story")
    await repo.insert_checkpoint("Romance arc", seeded["u2"], is_public=True)

    orchestrator = GlobalSearchOrchestrator.from_repository(repo)
    results = await orchestrator.global_search("romance", seeded["u1"])

    assert [c.name for c in results.companions] == ["Kai"]
    assert results.users == []
    assert len(results.messages) == 1
    assert [c.title for c in results.checkpoints] == ["Romance arc"]
    assert results.total == 3


async def test_failing_branch_is_isolated():
    searchers = _mock_searchers()
    searchers["messages"].search.side_effect = StorageError("database is locked")
    searchers["users"].search.return_value = [UserResult(id="u2", username="bob_builds")]

    orchestrator = GlobalSearchOrchestrator(**searchers)
    results = await orchestrator.global_search("bob", "u1")

    assert results.messages == []
    assert [u.username for u in results.users] == ["bob_builds"]


async def test_slow_branch_does_not_cancel_siblings():
    searchers = _mock_searchers()

    async def slow_fail(query, caller_id):
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    searchers["companions"].search.side_effect = slow_fail
    searchers["checkpoints"].search.return_value = []
    searchers["users"].search.return_value = [UserResult(id="u2")]

    results = await GlobalSearchOrchestrator(**searchers).global_search("bob", "u1")

    assert results.companions == []
    assert len(results.users) == 1


async def test_all_branches_failing_returns_empty_lists():
    searchers = _mock_searchers()
    for searcher in searchers.values():
        searcher.search.side_effect = StorageError("unavailable")

    results = await GlobalSearchOrchestrator(**searchers).global_search("anything", "u1")

    assert results == SearchResults()


@pytest.mark.parametrize("query", ["", "   ", "!!!", None])
async def test_empty_query_skips_searchers(query):
    searchers = _mock_searchers()

    results = await GlobalSearchOrchestrator(**searchers).global_search(query, "u1")

    assert results.total == 0
    for searcher in searchers.values():
        searcher.search.assert_not_called()


async def test_anonymous_caller_gets_empty_results():
    searchers = _mock_searchers()

    results = await GlobalSearchOrchestrator(**searchers).global_search("romance", None)

    assert results == SearchResults()
    for searcher in searchers.values():
        searcher.search.assert_not_called()


async def test_query_sanitized_once_for_every_branch():
    searchers = _mock_searchers()

    await GlobalSearchOrchestrator(**searchers).global_search("  romance!! ", "u1")

    for searcher in searchers.values():
        searcher.search.assert_awaited_once_with("romance", "u1")


def test_from_repository_applies_settings_limits():
    settings = Settings(companion_search_limit=5, message_search_limit=7)

    orchestrator = GlobalSearchOrchestrator.from_repository(MagicMock(), settings)

    assert orchestrator.companions._limit == 5
    assert orchestrator.messages._limit == 7
    assert orchestrator.users._limit == 20


def test_implementations_satisfy_contracts():
    repo = MagicMock()
    orchestrator = GlobalSearchOrchestrator.from_repository(repo)

    assert isinstance(orchestrator, GlobalSearch)
    assert isinstance(ChatScopedSearcher(repo), ChatSearcher)
    for searcher in (orchestrator.companions, orchestrator.users, orchestrator.messages, orchestrator.checkpoints):
        assert isinstance(searcher, EntitySearcher)


async def test_missing_searcher_only_empties_its_branch():
    searchers = _mock_searchers()
    searchers["companions"].search.return_value = [CompanionResult(id="c1", name="Kai", is_public=True)]
    orchestrator = GlobalSearchOrchestrator(**searchers)
    orchestrator.users = None

    results = await orchestrator.global_search("kai", "u1")

    assert results.users == []
    assert [c.name for c in results.companions] == ["Kai"]


async def test_dispatch_failure_returns_empty_results():
    """A failure while starting the fan-out yields empty lists and leaves no branch running."""
    searchers = _mock_searchers()
    orchestrator = GlobalSearchOrchestrator(**searchers)
    orchestrator.ENTITIES = ("companions", "users", "unknown", "checkpoints")

    results = await orchestrator.global_search("kai", "u1")
    await asyncio.sleep(0)

    assert results == SearchResults()
    searchers["companions"].search.assert_not_awaited()
    searchers["users"].search.assert_not_awaited()


async def test_branches_run_concurrently():
    """Each branch waits for all four to start; sequential dispatch would time out."""
    started = 0
    all_started = asyncio.Event()
    searchers = _mock_searchers()

    def branch(result):
        async def search(query, caller_id):
            nonlocal started
            started += 1
            if started == 4:
                all_started.set()
            await asyncio.wait_for(all_started.wait(), timeout=1.0)
            return [result]

        return search

    searchers["companions"].search.side_effect = branch(CompanionResult(id="c1", name="Kai", is_public=True))
    searchers["users"].search.side_effect = branch(UserResult(id="u2"))
    searchers["messages"].search.side_effect = branch(
        MessageResult(
            id="m1",
            content="kai said hi",
            created_at=datetime(2024, 1, 1),
            chat=ChatSummary(id="chat-1", companion=CompanionSummary(name="Kai")),
        )
    )
    searchers["checkpoints"].search.side_effect = branch(
        CheckpointResult(id="cp1", title="Kai intro", is_public=True)
    )

    results = await GlobalSearchOrchestrator(**searchers).global_search("kai", "u1")

    assert started == 4
    assert results.total == 4
