"""Tests for SQLite Repository."""

import asyncio
from pathlib import Path

import aiosqlite
import pytest

from harusearch.config.errors import ConflictError, StorageError, StorageTimeoutError

from .repository import SQLiteRepository


@pytest.fixture
async def repo(tmp_path: Path):
    """Create a test repository with temporary database."""
    db_path = tmp_path / "test.db"
    repo = SQLiteRepository(db_path, pool_size=2)
    await repo.initialize()
    yield repo
    await repo.close()


async def test_initialize_creates_tables(repo: SQLiteRepository):
    """Test that initialize creates all required tables."""
    rows = await repo._fetch_all("SELECT name FROM sqlite_master WHERE type='table'", {})
    tables = {row["name"] for row in rows}

    for table in ("users", "companions", "tags", "companion_tags", "chats", "messages",
                  "chat_checkpoints", "search_history"):
        assert table in tables
    for fts in ("companions_fts", "users_fts", "messages_fts", "checkpoints_fts"):
        assert fts in tables


async def test_initialize_is_idempotent(repo: SQLiteRepository):
    """Running the schema twice keeps existing data."""
    await repo.insert_user(username="alice")
    await repo.initialize()

    rows = await repo.search_users('"alice"', caller_id="someone")
    assert len(rows) == 1


async def test_tag_text_is_searchable(repo: SQLiteRepository):
    """Attaching a tag makes its name match; detaching removes it."""
    owner = await repo.insert_user(username="owner")
    companion = await repo.insert_companion("Kai", owner, description="Loves poetry", is_public=True)
    tag = await repo.insert_tag("Romance")

    assert await repo.search_companions('"romance"', caller_id=owner) == []

    await repo.attach_tag(companion, tag)
    rows = await repo.search_companions('"romance"', caller_id=owner)
    assert [r["name"] for r in rows] == ["Kai"]
    assert rows[0]["tag_name"] == "Romance"
    assert rows[0]["score"] < 0  # bm25

    await repo.detach_tag(companion, tag)
    assert await repo.search_companions('"romance"', caller_id=owner) == []


async def test_companion_rows_join_every_tag(repo: SQLiteRepository):
    """One row per (companion, tag) pair."""
    owner = await repo.insert_user(username="owner")
    companion = await repo.insert_companion("Kai", owner, is_public=True)
    for name in ("Romance", "Conversational"):
        await repo.attach_tag(companion, await repo.insert_tag(name))

    rows = await repo.search_companions('"kai"', caller_id=owner)
    assert sorted(r["tag_name"] for r in rows) == ["Conversational", "Romance"]
    assert {r["id"] for r in rows} == {companion}


async def test_renaming_tag_updates_index(repo: SQLiteRepository):
    """Tag renames flow into the companion index."""
    owner = await repo.insert_user(username="owner")
    companion = await repo.insert_companion("Kai", owner, is_public=True)
    tag = await repo.insert_tag("Romance")
    await repo.attach_tag(companion, tag)

    await repo._execute_write([("UPDATE tags SET name = 'Adventure' WHERE id = :id", {"id": tag})])

    assert await repo.search_companions('"romance"', caller_id=owner) == []
    assert len(await repo.search_companions('"adventure"', caller_id=owner)) == 1


async def test_private_companion_visibility(repo: SQLiteRepository):
    """Private companions are only visible to their creator."""
    owner = await repo.insert_user(username="owner")
    other = await repo.insert_user(username="other")
    await repo.insert_companion("Sage", owner, is_public=False)

    assert await repo.search_companions('"sage"', caller_id=other) == []
    assert len(await repo.search_companions('"sage"', caller_id=owner)) == 1


async def test_search_users_excludes_caller(repo: SQLiteRepository):
    """The caller never matches their own profile."""
    alice = await repo.insert_user(username="alice", bio="writes code")
    bob = await repo.insert_user(username="bob", bio="writes code too")

    rows = await repo.search_users('"code"', caller_id=alice)
    assert [r["id"] for r in rows] == [bob]


async def test_search_messages_owned_chats_only(repo: SQLiteRepository):
    """Messages are scoped to chats the caller owns."""
    alice = await repo.insert_user(username="alice")
    bob = await repo.insert_user(username="bob")
    companion = await repo.insert_companion("Kai", alice, is_public=True)
    alice_chat = await repo.insert_chat(alice, companion, title="Mine")
    bob_chat = await repo.insert_chat(bob, companion, title="Theirs")
    await repo.insert_message(alice_chat, alice, "dinner plans tonight")
    await repo.insert_message(bob_chat, bob, "dinner plans tomorrow")

    rows = await repo.search_messages('"dinner"', caller_id=alice)
    assert len(rows) == 1
    assert rows[0]["chat_id"] == alice_chat
    assert rows[0]["companion_name"] == "Kai"


async def test_soft_deleted_messages_not_searchable(repo: SQLiteRepository):
    """Tombstoned messages are excluded."""
    alice = await repo.insert_user(username="alice")
    companion = await repo.insert_companion("Kai", alice)
    chat = await repo.insert_chat(alice, companion)
    message = await repo.insert_message(chat, alice, "secret recipe")

    assert await repo.soft_delete_message(message) is True
    assert await repo.search_messages('"recipe"', caller_id=alice) == []
    assert await repo.search_chat_messages('"recipe"', chat_id=chat) == []


async def test_search_tags_escapes_wildcards(repo: SQLiteRepository):
    """LIKE wildcards in the text are matched literally."""
    await repo.insert_tag("Romance")
    await repo.insert_tag("100%_real")

    assert [r["name"] for r in await repo.search_tags("%")] == ["100%_real"]
    assert [r["name"] for r in await repo.search_tags("ROM")] == ["Romance"]


async def test_list_tags_counts_companions(repo: SQLiteRepository):
    """Tag listing is alphabetical with companion counts."""
    owner = await repo.insert_user(username="owner")
    romance = await repo.insert_tag("Romance")
    await repo.insert_tag("Adventure")
    for name in ("Kai", "Sage"):
        await repo.attach_tag(await repo.insert_companion(name, owner), romance)

    rows = await repo.list_tags()
    assert [(r["name"], r["companion_count"]) for r in rows] == [("Adventure", 0), ("Romance", 2)]


async def test_duplicate_tag_raises_conflict(repo: SQLiteRepository):
    """Tag names are unique."""
    await repo.insert_tag("Romance")

    with pytest.raises(ConflictError):
        await repo.insert_tag("Romance")


async def test_malformed_match_raises_storage_error(repo: SQLiteRepository):
    """Query syntax errors surface as StorageError."""
    with pytest.raises(StorageError):
        await repo.search_users('"unterminated', caller_id="someone")


async def test_query_timeout(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Slow reads are abandoned after the query timeout."""
    repo = SQLiteRepository(tmp_path / "slow.db", pool_size=1, query_timeout=0.05)
    await repo.initialize()

    async def slow_fetchall(self, sql, parameters=None):
        await asyncio.sleep(1)
        return []

    monkeypatch.setattr(aiosqlite.Connection, "execute_fetchall", slow_fetchall)

    try:
        with pytest.raises(StorageTimeoutError):
            await repo.search_users('"alice"', caller_id="someone")
    finally:
        await repo.close()


async def test_timed_out_query_frees_its_connection(tmp_path: Path):
    """A runaway statement is interrupted so the pooled connection is usable again."""
    repo = SQLiteRepository(tmp_path / "runaway.db", pool_size=1, query_timeout=0.2)
    await repo.initialize()
    await repo.insert_user(username="alice")
    endless = """
        WITH RECURSIVE counter(n) AS (SELECT 1 UNION ALL SELECT n + 1 FROM counter)
        SELECT count(*) AS total FROM counter
    """

    try:
        with pytest.raises(StorageTimeoutError):
            await repo._fetch_all(endless, {})

        rows = await asyncio.wait_for(
            repo.search_users('"alice"', caller_id="someone"), timeout=2.0
        )
        assert [r["username"] for r in rows] == ["alice"]
    finally:
        await repo.close()


async def test_search_history_dedupes_and_prunes(repo: SQLiteRepository):
    """Repeated queries move to the front; oldest entries are pruned."""
    for query in ("one", "two", "three"):
        await repo.record_search("u1", query, max_entries=3)
    await repo.record_search("u1", "one", max_entries=3)
    await repo.record_search("u1", "four", max_entries=3)

    rows = await repo.list_search_history("u1")
    assert [r["query"] for r in rows] == ["four", "one", "three"]


async def test_search_history_is_per_user(repo: SQLiteRepository):
    """Deleting and clearing only touch the given user."""
    await repo.record_search("u1", "romance")
    await repo.record_search("u2", "romance")

    assert await repo.delete_search("u1", "romance") is True
    assert await repo.delete_search("u1", "romance") is False
    assert [r["query"] for r in await repo.list_search_history("u2")] == ["romance"]

    assert await repo.clear_searches("u2") == 1
    assert await repo.list_search_history("u2") == []
