"""
SQLite Repository - Companion/chat storage with FTS5 relevance search.

Features:
- Async operations via aiosqlite
- Bounded connection pool (WAL mode, concurrent readers)
- Full-text search with FTS5 + bm25 ranking
- Per-query timeout
- Owner-or-public visibility predicate shared by companion and checkpoint reads
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from harusearch.config.errors import (
    ConflictError,
    ErrorCode,
    StorageError,
    StorageTimeoutError,
)

logger = logging.getLogger(__name__)

__all__ = ["SQLiteRepository", "owner_or_public"]

_NOW = "strftime('%Y-%m-%dT%H:%M:%f', 'now')"

# Tag names of one companion, space separated, for the FTS tags column
_TAG_TEXT = """
    SELECT COALESCE(group_concat(t.name, ' '), '')
    FROM companion_tags ct JOIN tags t ON t.id = ct.tag_id
    WHERE ct.companion_id = {companion_id}
"""

SCHEMA = f"""
    -- Profiles
    CREATE TABLE IF NOT EXISTS users (
        id TEXT PRIMARY KEY,
        username TEXT UNIQUE,
        display_name TEXT,
        bio TEXT,
        image_url TEXT,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS companions (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        description TEXT,
        image_url TEXT,
        is_public INTEGER NOT NULL DEFAULT 0,
        creator_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS tags (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL UNIQUE,
        description TEXT,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS companion_tags (
        companion_id TEXT NOT NULL REFERENCES companions(id) ON DELETE CASCADE,
        tag_id TEXT NOT NULL REFERENCES tags(id) ON DELETE CASCADE,
        PRIMARY KEY (companion_id, tag_id)
    );

    CREATE TABLE IF NOT EXISTS chats (
        id TEXT PRIMARY KEY,
        title TEXT,
        user_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        companion_id TEXT NOT NULL REFERENCES companions(id) ON DELETE CASCADE,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS messages (
        id TEXT PRIMARY KEY,
        content TEXT,
        is_deleted INTEGER NOT NULL DEFAULT 0,
        chat_id TEXT NOT NULL REFERENCES chats(id) ON DELETE CASCADE,
        sender_id TEXT NOT NULL,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS chat_checkpoints (
        id TEXT PRIMARY KEY,
        title TEXT NOT NULL,
        description TEXT,
        usage_count INTEGER NOT NULL DEFAULT 0,
        is_public INTEGER NOT NULL DEFAULT 0,
        creator_id TEXT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        chat_id TEXT REFERENCES chats(id) ON DELETE SET NULL,
        created_at TEXT NOT NULL DEFAULT ({_NOW})
    );

    CREATE TABLE IF NOT EXISTS search_history (
        id TEXT PRIMARY KEY,
        user_id TEXT NOT NULL,
        query TEXT NOT NULL,
        category TEXT,
        seq INTEGER NOT NULL,
        created_at TEXT NOT NULL DEFAULT ({_NOW}),
        UNIQUE (user_id, query)
    );

    -- FTS5 tables (porter stemming, unicode case folding)
    CREATE VIRTUAL TABLE IF NOT EXISTS companions_fts USING fts5(
        companion_id UNINDEXED, name, description, tags,
        tokenize='porter unicode61'
    );
    CREATE VIRTUAL TABLE IF NOT EXISTS users_fts USING fts5(
        user_id UNINDEXED, username, display_name, bio,
        tokenize='porter unicode61'
    );
    CREATE VIRTUAL TABLE IF NOT EXISTS messages_fts USING fts5(
        message_id UNINDEXED, content,
        tokenize='porter unicode61'
    );
    CREATE VIRTUAL TABLE IF NOT EXISTS checkpoints_fts USING fts5(
        checkpoint_id UNINDEXED, title, description,
        tokenize='porter unicode61'
    );

    -- Triggers to keep FTS in sync
    CREATE TRIGGER IF NOT EXISTS companions_ai AFTER INSERT ON companions BEGIN
        INSERT INTO companions_fts(companion_id, name, description, tags)
        VALUES (new.id, new.name, COALESCE(new.description, ''), '');
    END;
    CREATE TRIGGER IF NOT EXISTS companions_au AFTER UPDATE OF name, description ON companions BEGIN
        UPDATE companions_fts SET name = new.name, description = COALESCE(new.description, '')
        WHERE companion_id = new.id;
    END;
    CREATE TRIGGER IF NOT EXISTS companions_ad AFTER DELETE ON companions BEGIN
        DELETE FROM companions_fts WHERE companion_id = old.id;
    END;

    CREATE TRIGGER IF NOT EXISTS companion_tags_ai AFTER INSERT ON companion_tags BEGIN
        UPDATE companions_fts SET tags = ({_TAG_TEXT.format(companion_id='new.companion_id')})
        WHERE companion_id = new.companion_id;
    END;
    CREATE TRIGGER IF NOT EXISTS companion_tags_ad AFTER DELETE ON companion_tags BEGIN
        UPDATE companions_fts SET tags = ({_TAG_TEXT.format(companion_id='old.companion_id')})
        WHERE companion_id = old.companion_id;
    END;
    CREATE TRIGGER IF NOT EXISTS tags_au AFTER UPDATE OF name ON tags BEGIN
        UPDATE companions_fts SET tags = ({_TAG_TEXT.format(companion_id='companions_fts.companion_id')})
        WHERE companion_id IN (SELECT companion_id FROM companion_tags WHERE tag_id = new.id);
    END;

    CREATE TRIGGER IF NOT EXISTS users_ai AFTER INSERT ON users BEGIN
        INSERT INTO users_fts(user_id, username, display_name, bio)
        VALUES (new.id, COALESCE(new.username, ''), COALESCE(new.display_name, ''), COALESCE(new.bio, ''));
    END;
    CREATE TRIGGER IF NOT EXISTS users_au AFTER UPDATE OF username, display_name, bio ON users BEGIN
        UPDATE users_fts SET
            username = COALESCE(new.username, ''),
            display_name = COALESCE(new.display_name, ''),
            bio = COALESCE(new.bio, '')
        WHERE user_id = new.id;
    END;
    CREATE TRIGGER IF NOT EXISTS users_ad AFTER DELETE ON users BEGIN
        DELETE FROM users_fts WHERE user_id = old.id;
    END;

    CREATE TRIGGER IF NOT EXISTS messages_ai AFTER INSERT ON messages BEGIN
        INSERT INTO messages_fts(message_id, content) VALUES (new.id, COALESCE(new.content, ''));
    END;
    CREATE TRIGGER IF NOT EXISTS messages_au AFTER UPDATE OF content ON messages BEGIN
        UPDATE messages_fts SET content = COALESCE(new.content, '') WHERE message_id = new.id;
    END;
    CREATE TRIGGER IF NOT EXISTS messages_ad AFTER DELETE ON messages BEGIN
        DELETE FROM messages_fts WHERE message_id = old.id;
    END;

    CREATE TRIGGER IF NOT EXISTS checkpoints_ai AFTER INSERT ON chat_checkpoints BEGIN
        INSERT INTO checkpoints_fts(checkpoint_id, title, description)
        VALUES (new.id, new.title, COALESCE(new.description, ''));
    END;
    CREATE TRIGGER IF NOT EXISTS checkpoints_au AFTER UPDATE OF title, description ON chat_checkpoints BEGIN
        UPDATE checkpoints_fts SET title = new.title, description = COALESCE(new.description, '')
        WHERE checkpoint_id = new.id;
    END;
    CREATE TRIGGER IF NOT EXISTS checkpoints_ad AFTER DELETE ON chat_checkpoints BEGIN
        DELETE FROM checkpoints_fts WHERE checkpoint_id = old.id;
    END;

    -- Indexes
    CREATE INDEX IF NOT EXISTS idx_companions_creator ON companions(creator_id);
    CREATE INDEX IF NOT EXISTS idx_companion_tags_tag ON companion_tags(tag_id);
    CREATE INDEX IF NOT EXISTS idx_chats_user ON chats(user_id);
    CREATE INDEX IF NOT EXISTS idx_messages_chat ON messages(chat_id);
    CREATE INDEX IF NOT EXISTS idx_checkpoints_creator ON chat_checkpoints(creator_id);
    CREATE INDEX IF NOT EXISTS idx_search_history_user ON search_history(user_id, seq);
"""


def owner_or_public(alias: str) -> str:
    """
    Visibility predicate for owned, possibly private records.

    A row is visible iff it is public or the caller created it. Expects the
    ``:caller_id`` named parameter to be bound by the query.
    """
    return f"({alias}.is_public = 1 OR {alias}.creator_id = :caller_id)"


def _companions_with_tags(ranked_sql: str, order_by: str) -> str:
    """Wrap a companion query so each row is joined to its tags (one row per pair)."""
    return f"""
        WITH ranked AS MATERIALIZED ({ranked_sql})
        SELECT ranked.*, t.id AS tag_id, t.name AS tag_name
        FROM ranked
        LEFT JOIN companion_tags ct ON ct.companion_id = ranked.id
        LEFT JOIN tags t ON t.id = ct.tag_id
        ORDER BY {order_by}, t.name
    """


_COMPANION_COLUMNS = """
    c.id, c.name, c.description, c.image_url, c.is_public, c.created_at,
    c.rowid AS seq,
    u.username AS creator_username,
    u.display_name AS creator_display_name
"""


def _timestamp(value: datetime | None) -> str | None:
    """Store timestamps in the same millisecond ISO form the schema defaults use."""
    if value is None:
        return None
    return value.isoformat(timespec="milliseconds")


def _new_id() -> str:
    return uuid.uuid4().hex


class SQLiteRepository:
    """
    SQLite repository for companions, profiles, chats and checkpoints.

    Example:
        >>> repo = SQLiteRepository("data/harusearch.db")
        >>> await repo.initialize()
        >>> user_id = await repo.insert_user(username="alice_codes")
        >>> rows = await repo.search_users('"alice"', caller_id="someone-else")
    """

    def __init__(
        self,
        db_path: str | Path,
        pool_size: int = 4,
        query_timeout: float = 5.0,
    ) -> None:
        """
        Initialize repository.

        Args:
            db_path: Path to SQLite database file
            pool_size: Number of pooled connections
            query_timeout: Seconds before a read is abandoned
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._pool_size = max(1, pool_size)
        self._query_timeout = query_timeout
        self._pool: asyncio.Queue[aiosqlite.Connection] | None = None
        self._connections: list[aiosqlite.Connection] = []
        self._pool_lock = asyncio.Lock()

    # --- Connection pool ---

    async def _connect(self) -> aiosqlite.Connection:
        """Open one pooled connection."""
        try:
            conn = await aiosqlite.connect(str(self.db_path))
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA foreign_keys = ON")
        except aiosqlite.Error as e:
            raise StorageError(
                f"Cannot open database: {e}",
                {"db_path": str(self.db_path)},
                code=ErrorCode.STORAGE_CONNECTION_FAILED,
            ) from e
        return conn

    async def _get_pool(self) -> asyncio.Queue[aiosqlite.Connection]:
        """Get or lazily create the connection pool."""
        if self._pool is None:
            async with self._pool_lock:
                if self._pool is None:
                    pool: asyncio.Queue[aiosqlite.Connection] = asyncio.Queue()
                    for _ in range(self._pool_size):
                        conn = await self._connect()
                        self._connections.append(conn)
                        pool.put_nowait(conn)
                    self._pool = pool
                    logger.debug("Opened %d connections to %s", self._pool_size, self.db_path)
        return self._pool

    @asynccontextmanager
    async def _acquire(self) -> AsyncIterator[aiosqlite.Connection]:
        """Borrow a connection from the pool."""
        pool = await self._get_pool()
        conn = await pool.get()
        try:
            yield conn
        finally:
            pool.put_nowait(conn)

    async def _fetch_all(self, sql: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        """Run a read query under the query timeout."""
        async with self._acquire() as conn:
            try:
                rows = await asyncio.wait_for(
                    conn.execute_fetchall(sql, params),
                    timeout=self._query_timeout,
                )
            except asyncio.TimeoutError as e:
                # The statement keeps running on the connection's worker
                # thread; stop it before the connection is reused.
                await conn.interrupt()
                raise StorageTimeoutError(
                    "Query timed out",
                    {"timeout_seconds": self._query_timeout},
                ) from e
            except aiosqlite.Error as e:
                raise StorageError(f"Query failed: {e}") from e

        return [dict(row) for row in rows]

    async def _fetch_one(self, sql: str, params: dict[str, Any]) -> dict[str, Any] | None:
        rows = await self._fetch_all(sql, params)
        return rows[0] if rows else None

    async def _execute_write(
        self, statements: Iterable[tuple[str, dict[str, Any]]]
    ) -> int:
        """
        Run write statements in one transaction.

        Returns:
            Row count of the last statement
        """
        rowcount = 0
        async with self._acquire() as conn:
            try:
                for sql, params in statements:
                    cursor = await conn.execute(sql, params)
                    rowcount = cursor.rowcount
                await conn.commit()
            except aiosqlite.IntegrityError as e:
                await conn.rollback()
                raise ConflictError(f"Constraint violated: {e}") from e
            except aiosqlite.Error as e:
                await conn.rollback()
                raise StorageError(
                    f"Write failed: {e}", code=ErrorCode.STORAGE_WRITE_FAILED
                ) from e
        return rowcount

    async def initialize(self) -> None:
        """Initialize database schema."""
        async with self._acquire() as conn:
            await conn.execute("PRAGMA journal_mode=WAL")
            await conn.executescript(SCHEMA)
            await conn.commit()

        logger.info("Database initialized: %s", self.db_path)

    async def close(self) -> None:
        """Close all pooled connections."""
        for conn in self._connections:
            await conn.close()
        self._connections = []
        self._pool = None

    # --- Writes (used by collaborators that own the records) ---

    async def insert_user(
        self,
        username: str | None = None,
        display_name: str | None = None,
        bio: str | None = None,
        image_url: str | None = None,
        user_id: str | None = None,
    ) -> str:
        """Insert a user profile. Returns the user ID."""
        user_id = user_id or _new_id()
        await self._execute_write([(
            """
            INSERT INTO users (id, username, display_name, bio, image_url)
            VALUES (:id, :username, :display_name, :bio, :image_url)
            """,
            {
                "id": user_id,
                "username": username,
                "display_name": display_name,
                "bio": bio,
                "image_url": image_url,
            },
        )])
        return user_id

    async def insert_companion(
        self,
        name: str,
        creator_id: str,
        description: str | None = None,
        image_url: str | None = None,
        is_public: bool = False,
        companion_id: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Insert a companion. Returns the companion ID."""
        companion_id = companion_id or _new_id()
        await self._execute_write([(
            f"""
            INSERT INTO companions (id, name, description, image_url, is_public, creator_id, created_at)
            VALUES (:id, :name, :description, :image_url, :is_public, :creator_id,
                    COALESCE(:created_at, {_NOW}))
            """,
            {
                "id": companion_id,
                "name": name,
                "description": description,
                "image_url": image_url,
                "is_public": int(is_public),
                "creator_id": creator_id,
                "created_at": _timestamp(created_at),
            },
        )])
        return companion_id

    async def insert_tag(
        self,
        name: str,
        description: str | None = None,
        tag_id: str | None = None,
    ) -> str:
        """
        Insert a tag.

        Raises:
            ConflictError: If a tag with this name already exists
        """
        tag_id = tag_id or _new_id()
        await self._execute_write([(
            "INSERT INTO tags (id, name, description) VALUES (:id, :name, :description)",
            {"id": tag_id, "name": name, "description": description},
        )])
        return tag_id

    async def attach_tag(self, companion_id: str, tag_id: str) -> None:
        """Associate a tag with a companion (no-op if already attached)."""
        await self._execute_write([(
            """
            INSERT OR IGNORE INTO companion_tags (companion_id, tag_id)
            VALUES (:companion_id, :tag_id)
            """,
            {"companion_id": companion_id, "tag_id": tag_id},
        )])

    async def detach_tag(self, companion_id: str, tag_id: str) -> None:
        """Remove a tag from a companion."""
        await self._execute_write([(
            "DELETE FROM companion_tags WHERE companion_id = :companion_id AND tag_id = :tag_id",
            {"companion_id": companion_id, "tag_id": tag_id},
        )])

    async def insert_chat(
        self,
        user_id: str,
        companion_id: str,
        title: str | None = None,
        chat_id: str | None = None,
    ) -> str:
        """Insert a chat owned by ``user_id``. Returns the chat ID."""
        chat_id = chat_id or _new_id()
        await self._execute_write([(
            """
            INSERT INTO chats (id, title, user_id, companion_id)
            VALUES (:id, :title, :user_id, :companion_id)
            """,
            {"id": chat_id, "title": title, "user_id": user_id, "companion_id": companion_id},
        )])
        return chat_id

    async def insert_message(
        self,
        chat_id: str,
        sender_id: str,
        content: str | None,
        message_id: str | None = None,
        created_at: datetime | None = None,
    ) -> str:
        """Insert a message. Returns the message ID."""
        message_id = message_id or _new_id()
        await self._execute_write([(
            f"""
            INSERT INTO messages (id, content, chat_id, sender_id, created_at)
            VALUES (:id, :content, :chat_id, :sender_id, COALESCE(:created_at, {_NOW}))
            """,
            {
                "id": message_id,
                "content": content,
                "chat_id": chat_id,
                "sender_id": sender_id,
                "created_at": _timestamp(created_at),
            },
        )])
        return message_id

    async def soft_delete_message(self, message_id: str) -> bool:
        """Tombstone a message: content is nulled and the row kept."""
        rowcount = await self._execute_write([(
            "UPDATE messages SET is_deleted = 1, content = NULL WHERE id = :id",
            {"id": message_id},
        )])
        return rowcount > 0

    async def insert_checkpoint(
        self,
        title: str,
        creator_id: str,
        description: str | None = None,
        usage_count: int = 0,
        is_public: bool = False,
        chat_id: str | None = None,
        checkpoint_id: str | None = None,
    ) -> str:
        """Insert a chat checkpoint. Returns the checkpoint ID."""
        checkpoint_id = checkpoint_id or _new_id()
        await self._execute_write([(
            """
            INSERT INTO chat_checkpoints
            (id, title, description, usage_count, is_public, creator_id, chat_id)
            VALUES (:id, :title, :description, :usage_count, :is_public, :creator_id, :chat_id)
            """,
            {
                "id": checkpoint_id,
                "title": title,
                "description": description,
                "usage_count": usage_count,
                "is_public": int(is_public),
                "creator_id": creator_id,
                "chat_id": chat_id,
            },
        )])
        return checkpoint_id

    # --- Ranked reads ---

    async def search_companions(
        self, match: str, caller_id: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """
        Rank visible companions by name, description and tag text.

        Returns one row per (companion, tag) pair, ordered by rank; companions
        without tags appear once with NULL tag columns.
        """
        ranked = f"""
            SELECT {_COMPANION_COLUMNS}, bm25(companions_fts) AS score
            FROM companions_fts
            JOIN companions c ON c.id = companions_fts.companion_id
            LEFT JOIN users u ON u.id = c.creator_id
            WHERE companions_fts MATCH :match AND {owner_or_public('c')}
            ORDER BY score, c.created_at, c.rowid
            LIMIT :limit
        """
        sql = _companions_with_tags(
            ranked, "ranked.score, ranked.created_at, ranked.seq"
        )
        return await self._fetch_all(
            sql, {"match": match, "caller_id": caller_id, "limit": limit}
        )

    async def search_companions_by_tag(
        self, tag_name: str, caller_id: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Visible companions bearing a tag (case-insensitive name), newest first."""
        matched = f"""
            SELECT {_COMPANION_COLUMNS}, 0.0 AS score
            FROM companions c
            LEFT JOIN users u ON u.id = c.creator_id
            WHERE {owner_or_public('c')}
              AND EXISTS (
                SELECT 1 FROM companion_tags ct JOIN tags t ON t.id = ct.tag_id
                WHERE ct.companion_id = c.id AND t.name = :tag_name COLLATE NOCASE
              )
            ORDER BY c.created_at DESC, c.rowid DESC
            LIMIT :limit
        """
        sql = _companions_with_tags(matched, "ranked.created_at DESC, ranked.seq DESC")
        return await self._fetch_all(
            sql, {"tag_name": tag_name, "caller_id": caller_id, "limit": limit}
        )

    async def search_users(
        self, match: str, caller_id: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Rank user profiles by username, display name and bio, excluding the caller."""
        sql = """
            SELECT u.id, u.username, u.display_name, u.bio, u.image_url,
                   bm25(users_fts) AS score
            FROM users_fts
            JOIN users u ON u.id = users_fts.user_id
            WHERE users_fts MATCH :match AND u.id != :caller_id
            ORDER BY score, u.created_at, u.rowid
            LIMIT :limit
        """
        return await self._fetch_all(
            sql, {"match": match, "caller_id": caller_id, "limit": limit}
        )

    async def search_messages(
        self, match: str, caller_id: str, limit: int = 50
    ) -> list[dict[str, Any]]:
        """Rank live messages in chats the caller owns, newest first on ties."""
        sql = """
            SELECT m.id, m.content, m.created_at,
                   ch.id AS chat_id, ch.title AS chat_title,
                   comp.name AS companion_name, comp.image_url AS companion_image_url,
                   bm25(messages_fts) AS score
            FROM messages_fts
            JOIN messages m ON m.id = messages_fts.message_id
            JOIN chats ch ON ch.id = m.chat_id
            JOIN companions comp ON comp.id = ch.companion_id
            WHERE messages_fts MATCH :match
              AND ch.user_id = :caller_id
              AND m.is_deleted = 0
              AND m.content IS NOT NULL
            ORDER BY score, m.created_at DESC, m.rowid
            LIMIT :limit
        """
        return await self._fetch_all(
            sql, {"match": match, "caller_id": caller_id, "limit": limit}
        )

    async def get_chat(self, chat_id: str) -> dict[str, Any] | None:
        """Get chat by ID."""
        return await self._fetch_one(
            "SELECT id, title, user_id, companion_id FROM chats WHERE id = :id",
            {"id": chat_id},
        )

    async def search_chat_messages(
        self, match: str, chat_id: str, limit: int = 100
    ) -> list[dict[str, Any]]:
        """Rank live messages of a single chat with sender profile columns."""
        sql = """
            SELECT m.id, m.content, m.created_at, m.sender_id,
                   u.username AS sender_username, u.display_name AS sender_display_name,
                   bm25(messages_fts) AS score
            FROM messages_fts
            JOIN messages m ON m.id = messages_fts.message_id
            LEFT JOIN users u ON u.id = m.sender_id
            WHERE messages_fts MATCH :match
              AND m.chat_id = :chat_id
              AND m.is_deleted = 0
              AND m.content IS NOT NULL
            ORDER BY score, m.created_at DESC, m.rowid
            LIMIT :limit
        """
        return await self._fetch_all(
            sql, {"match": match, "chat_id": chat_id, "limit": limit}
        )

    async def search_checkpoints(
        self, match: str, caller_id: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """Rank visible checkpoints by title and description, usage count on ties."""
        sql = f"""
            SELECT cp.id, cp.title, cp.description, cp.usage_count, cp.is_public,
                   u.username AS creator_username, u.display_name AS creator_display_name,
                   bm25(checkpoints_fts) AS score
            FROM checkpoints_fts
            JOIN chat_checkpoints cp ON cp.id = checkpoints_fts.checkpoint_id
            LEFT JOIN users u ON u.id = cp.creator_id
            WHERE checkpoints_fts MATCH :match AND {owner_or_public('cp')}
            ORDER BY score, cp.usage_count DESC, cp.created_at, cp.rowid
            LIMIT :limit
        """
        return await self._fetch_all(
            sql, {"match": match, "caller_id": caller_id, "limit": limit}
        )

    # --- Tag catalog ---

    _TAG_COUNTS = """
        SELECT t.id, t.name, t.description, COUNT(ct.companion_id) AS companion_count
        FROM tags t
        LEFT JOIN companion_tags ct ON ct.tag_id = t.id
        {where}
        GROUP BY t.id
        ORDER BY t.name COLLATE NOCASE, t.name
        {limit}
    """

    async def list_tags(self) -> list[dict[str, Any]]:
        """All tags alphabetically with companion counts."""
        sql = self._TAG_COUNTS.format(where="", limit="")
        return await self._fetch_all(sql, {})

    async def search_tags(self, text: str, limit: int = 10) -> list[dict[str, Any]]:
        """Tags whose name contains ``text`` (case-insensitive), alphabetically."""
        escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        sql = self._TAG_COUNTS.format(
            where="WHERE t.name LIKE :pattern ESCAPE '\\'",
            limit="LIMIT :limit",
        )
        return await self._fetch_all(sql, {"pattern": f"%{escaped}%", "limit": limit})

    async def get_tag(self, tag_id: str) -> dict[str, Any] | None:
        """Get a tag with its companion count."""
        sql = self._TAG_COUNTS.format(where="WHERE t.id = :id", limit="")
        return await self._fetch_one(sql, {"id": tag_id})

    # --- Search history ---

    async def record_search(
        self,
        user_id: str,
        query: str,
        category: str | None = None,
        max_entries: int = 20,
    ) -> None:
        """Move ``query`` to the front of the user's history and prune to ``max_entries``."""
        await self._execute_write([
            (
                f"""
                INSERT INTO search_history (id, user_id, query, category, seq)
                VALUES (:id, :user_id, :query, :category,
                        (SELECT COALESCE(MAX(seq), 0) + 1 FROM search_history))
                ON CONFLICT(user_id, query) DO UPDATE SET
                    category = excluded.category,
                    seq = excluded.seq,
                    created_at = {_NOW}
                """,
                {"id": _new_id(), "user_id": user_id, "query": query, "category": category},
            ),
            (
                """
                DELETE FROM search_history
                WHERE user_id = :user_id AND id NOT IN (
                    SELECT id FROM search_history
                    WHERE user_id = :user_id
                    ORDER BY seq DESC
                    LIMIT :keep
                )
                """,
                {"user_id": user_id, "keep": max_entries},
            ),
        ])

    async def list_search_history(
        self, user_id: str, limit: int = 20
    ) -> list[dict[str, Any]]:
        """User's search history, newest first."""
        return await self._fetch_all(
            """
            SELECT id, query, category, created_at
            FROM search_history
            WHERE user_id = :user_id
            ORDER BY seq DESC
            LIMIT :limit
            """,
            {"user_id": user_id, "limit": limit},
        )

    async def delete_search(self, user_id: str, query: str) -> bool:
        """Remove one query from the user's history."""
        rowcount = await self._execute_write([(
            "DELETE FROM search_history WHERE user_id = :user_id AND query = :query",
            {"user_id": user_id, "query": query},
        )])
        return rowcount > 0

    async def clear_searches(self, user_id: str) -> int:
        """Remove the user's whole history. Returns number of entries removed."""
        return await self._execute_write([(
            "DELETE FROM search_history WHERE user_id = :user_id",
            {"user_id": user_id},
        )])
