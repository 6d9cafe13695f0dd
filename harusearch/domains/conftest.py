"""Shared fixtures for domain tests."""

from pathlib import Path

import pytest

from harusearch.adapters.sqlite import SQLiteRepository


@pytest.fixture
async def repo(tmp_path: Path):
    """Empty, initialized repository on a temporary database."""
    repo = SQLiteRepository(tmp_path / "test.db", pool_size=2)
    await repo.initialize()
    yield repo
    await repo.close()


@pytest.fixture
async def seeded(repo: SQLiteRepository) -> dict[str, str]:
    """
    Two users with one public and one private companion.

    U2 owns public "Kai" (tagged Romance, Conversational) and private "Sage".
    U1 owns a chat with Kai.
    """
    u1 = await repo.insert_user(username="alice_codes", display_name="Alice", bio="Writes code")
    u2 = await repo.insert_user(username="bob_builds", display_name="Bob", bio="Builds companions")

    kai = await repo.insert_companion("Kai", u2, description="A warm listener", is_public=True)
    sage = await repo.insert_companion("Sage", u2, description="Quiet advisor", is_public=False)

    romance = await repo.insert_tag("Romance", "Love stories")
    conversational = await repo.insert_tag("Conversational")
    await repo.attach_tag(kai, romance)
    await repo.attach_tag(kai, conversational)

    chat = await repo.insert_chat(u1, kai, title="Evening talk")

    return {
        "u1": u1,
        "u2": u2,
        "kai": kai,
        "sage": sage,
        "romance": romance,
        "conversational": conversational,
        "chat": chat,
    }
