"""
Schema manager tests: idempotent creation and fatal failure at startup.
"""

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.services.db.engine import EmbeddedDriver
from app.services.db.errors import SchemaInitFailure, StorageUnavailable
from app.services.db.init_db import init_schema


class DiskFullDriver(EmbeddedDriver):
    """Answers pings but cannot create tables."""

    async def create_all(self, metadata):
        raise StorageUnavailable("database or disk is full")


async def table_names(storage):
    rows = await storage.query_many(
        "SELECT name FROM sqlite_master WHERE type = 'table' ORDER BY name"
    )
    return [row["name"] for row in rows]


async def test_creates_both_rating_tables(storage):
    await init_schema(storage)

    names = await table_names(storage)
    assert "song_ratings" in names
    assert "song_star_ratings" in names


@pytest.mark.parametrize("table", ["song_ratings", "song_star_ratings"])
async def test_rating_table_layout(storage, table):
    await init_schema(storage)

    columns = await storage.query_many(f"PRAGMA table_info({table})")
    indexes = await storage.query_many(f"PRAGMA index_list({table})")

    assert [c["name"] for c in columns] == [
        "id", "song_id", "user_id", "value", "created_at",
    ]
    assert f"ix_{table}_song_id" in {i["name"] for i in indexes}
    assert any(i["unique"] for i in indexes)


async def test_init_schema_is_idempotent_and_keeps_rows(storage):
    await init_schema(storage)
    await storage.execute(
        "INSERT INTO song_ratings (song_id, user_id, value) VALUES (?, ?, ?)",
        ("The Beatles_Hey Jude", "user_1", 1),
    )

    await init_schema(storage)
    await init_schema(storage)

    row = await storage.query_one("SELECT COUNT(*) AS n FROM song_ratings")
    assert row["n"] == 1


async def test_created_at_defaults_to_now(storage):
    await init_schema(storage)
    await storage.execute(
        "INSERT INTO song_star_ratings (song_id, user_id, value) VALUES (?, ?, ?)",
        ("Queen_Bohemian Rhapsody", "user_1", 5),
    )

    row = await storage.query_one("SELECT created_at FROM song_star_ratings")
    assert row["created_at"] is not None


async def test_failure_is_reported_as_schema_init_failure():
    driver = DiskFullDriver(":memory:")

    with pytest.raises(SchemaInitFailure) as exc_info:
        await init_schema(driver)

    assert "disk is full" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, StorageUnavailable)


def test_app_refuses_to_start_without_schema():
    app = create_app(storage=DiskFullDriver(":memory:"))

    with pytest.raises(SchemaInitFailure):
        with TestClient(app):
            pass
