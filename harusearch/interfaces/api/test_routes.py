"""Tests for API Routes."""

from collections.abc import Generator
from datetime import datetime
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from harusearch.config.errors import AccessDeniedError, ConflictError
from harusearch.domains.search import (
    CompanionResult,
    SearchHistoryEntry,
    SearchResults,
    TagSummary,
    UserResult,
)
from harusearch.domains.tags import TagResult

from .auth import UserContext, get_current_user, get_current_user_optional
from .deps import get_chat_searcher, get_global_search, get_search_history, get_tag_catalog
from .main import create_app

CALLER = UserContext(user_id="u1", username="alice_codes", access_token="token")


@pytest.fixture
def mock_search() -> AsyncMock:
    """Create a mock global search orchestrator."""
    mock = AsyncMock()
    mock.global_search.return_value = SearchResults()
    mock.companions.search.return_value = []
    mock.companions.search_by_tag.return_value = []
    mock.users.search.return_value = []
    return mock


@pytest.fixture
def mock_chat_searcher() -> AsyncMock:
    mock = AsyncMock()
    mock.search_within_chat.return_value = []
    return mock


@pytest.fixture
def mock_catalog() -> AsyncMock:
    mock = AsyncMock()
    mock.list_all_tags.return_value = []
    mock.search_tags_by_prefix.return_value = []
    return mock


@pytest.fixture
def mock_history() -> AsyncMock:
    mock = AsyncMock()
    mock.entries.return_value = []
    mock.recent.return_value = []
    return mock


@pytest.fixture
def client(
    mock_search: AsyncMock,
    mock_chat_searcher: AsyncMock,
    mock_catalog: AsyncMock,
    mock_history: AsyncMock,
) -> Generator[TestClient, None, None]:
    """Create a test client with mocked services and an authenticated caller."""
    app = create_app()

    app.dependency_overrides[get_global_search] = lambda: mock_search
    app.dependency_overrides[get_chat_searcher] = lambda: mock_chat_searcher
    app.dependency_overrides[get_tag_catalog] = lambda: mock_catalog
    app.dependency_overrides[get_search_history] = lambda: mock_history
    app.dependency_overrides[get_current_user] = lambda: CALLER
    app.dependency_overrides[get_current_user_optional] = lambda: CALLER

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def anonymous_client(mock_search: AsyncMock, mock_chat_searcher: AsyncMock) -> TestClient:
    """Test client without auth overrides."""
    app = create_app()
    app.dependency_overrides[get_global_search] = lambda: mock_search
    app.dependency_overrides[get_chat_searcher] = lambda: mock_chat_searcher
    return TestClient(app)


def test_health_endpoint(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "harusearch"


def test_global_search(client: TestClient, mock_search: AsyncMock) -> None:
    mock_search.global_search.return_value = SearchResults(
        companions=[
            CompanionResult(
                id="c1",
                name="Kai",
                is_public=True,
                tags=[TagSummary(id="t1", name="Romance")],
                relevance=1.2,
            )
        ],
        users=[UserResult(id="u2", username="bob_builds")],
    )

    response = client.get("/api/search", params={"q": "romance"})
    assert response.status_code == 200

    data = response.json()
    assert set(data) == {"companions", "users", "messages", "checkpoints"}
    assert data["companions"][0]["name"] == "Kai"
    assert data["companions"][0]["tags"] == [{"id": "t1", "name": "Romance"}]
    assert data["users"][0]["username"] == "bob_builds"
    assert data["messages"] == []

    mock_search.global_search.assert_awaited_once_with("romance", "u1")


def test_global_search_anonymous(anonymous_client: TestClient, mock_search: AsyncMock) -> None:
    """Without a token the search runs with no caller."""
    response = anonymous_client.get("/api/search", params={"q": "romance"})
    assert response.status_code == 200

    mock_search.global_search.assert_awaited_once_with("romance", None)


def test_search_query_too_long(client: TestClient) -> None:
    response = client.get("/api/search", params={"q": "x" * 201})
    assert response.status_code == 422


def test_entity_search_endpoints(client: TestClient, mock_search: AsyncMock) -> None:
    assert client.get("/api/search/companions", params={"q": "kai"}).status_code == 200
    mock_search.companions.search.assert_awaited_once_with("kai", "u1")

    assert client.get("/api/search/users", params={"q": "bob"}).status_code == 200
    mock_search.users.search.assert_awaited_once_with("bob", "u1")

    assert client.get("/api/search/companions/by-tag/Romance").status_code == 200
    mock_search.companions.search_by_tag.assert_awaited_once_with("Romance", "u1")


def test_chat_search(client: TestClient, mock_chat_searcher: AsyncMock) -> None:
    response = client.get("/api/chats/chat-1/search", params={"q": "dinner"})
    assert response.status_code == 200
    assert response.json() == []

    mock_chat_searcher.search_within_chat.assert_awaited_once_with("chat-1", "dinner", "u1")


def test_chat_search_access_denied(client: TestClient, mock_chat_searcher: AsyncMock) -> None:
    mock_chat_searcher.search_within_chat.side_effect = AccessDeniedError(
        "Chat not found or access denied", {"chat_id": "chat-1"}
    )

    response = client.get("/api/chats/chat-1/search", params={"q": "dinner"})
    assert response.status_code == 403

    data = response.json()
    assert data["error"]["code"] == "SEARCH_ACCESS_DENIED"
    assert "request_id" in data


def test_chat_search_requires_auth(anonymous_client: TestClient) -> None:
    response = anonymous_client.get("/api/chats/chat-1/search", params={"q": "dinner"})
    assert response.status_code == 401

    data = response.json()
    assert data["error"]["code"] == "SECURITY_UNAUTHORIZED"
    assert data["error"]["message"] == "Missing authentication header"


def test_list_and_search_tags(client: TestClient, mock_catalog: AsyncMock) -> None:
    mock_catalog.search_tags_by_prefix.return_value = [
        TagResult(id="t1", name="Romance", companion_count=3)
    ]

    assert client.get("/api/tags").json() == []

    response = client.get("/api/tags/search", params={"q": "rom"})
    assert response.status_code == 200
    assert response.json()[0]["companion_count"] == 3
    mock_catalog.search_tags_by_prefix.assert_awaited_once_with("rom")


def test_create_tag(client: TestClient, mock_catalog: AsyncMock) -> None:
    mock_catalog.create_tag.return_value = TagResult(id="t9", name="Mystery")

    response = client.post("/api/tags", json={"name": "Mystery"})
    assert response.status_code == 201
    assert response.json()["name"] == "Mystery"


def test_create_tag_conflict(client: TestClient, mock_catalog: AsyncMock) -> None:
    mock_catalog.create_tag.side_effect = ConflictError("Constraint violated: UNIQUE")

    response = client.post("/api/tags", json={"name": "Romance"})
    assert response.status_code == 409
    assert response.json()["error"]["code"] == "STORAGE_CONFLICT"


def test_history_roundtrip(client: TestClient, mock_history: AsyncMock) -> None:
    mock_history.record.return_value = True
    mock_history.entries.return_value = [
        SearchHistoryEntry(id="h1", query="romance", created_at=datetime(2024, 1, 1))
    ]
    mock_history.recent.return_value = ["romance"]

    response = client.post("/api/search/history", json={"query": "romance", "category": "companions"})
    assert response.json() == {"recorded": True}

    data = client.get("/api/search/history").json()
    assert data["recent"] == ["romance"]
    assert data["entries"][0]["query"] == "romance"


def test_history_delete(client: TestClient, mock_history: AsyncMock) -> None:
    mock_history.remove.return_value = True
    mock_history.clear.return_value = 4

    assert client.delete("/api/search/history/entry", params={"q": "romance"}).json() == {"removed": True}
    mock_history.remove.assert_awaited_once_with("u1", "romance")

    assert client.delete("/api/search/history").json() == {"removed": 4}


def test_request_id_echoed(client: TestClient) -> None:
    response = client.get("/health", headers={"X-Request-ID": "abc-123"})
    assert response.headers["X-Request-ID"] == "abc-123"


def test_debug_flag_follows_settings(monkeypatch: pytest.MonkeyPatch) -> None:
    from harusearch.config import Settings

    from . import main

    monkeypatch.setattr(main, "get_settings", lambda: Settings(api_debug=True))

    assert main.create_app().debug is True
