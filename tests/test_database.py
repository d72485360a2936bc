"""Tests for the key/value store."""

from __future__ import annotations

import aiosqlite
import pytest

from zen_focus.storage.database import KeyValueStore, open_store


async def test_values_survive_reopen(tmp_path):
    path = tmp_path / "kv.db"
    store = await open_store(path)
    store.set_int("count", 3)
    store.set_string("theme", "dark")
    store.set_bool("sound", False)
    store.set_json("stats", {"2024-05-01": 60})
    await store.close()

    reopened = await open_store(path)
    try:
        assert reopened.get_int("count") == 3
        assert reopened.get_string("theme") == "dark"
        assert reopened.get_bool("sound") is False
        assert reopened.get_json("stats") == {"2024-05-01": 60}
    finally:
        await reopened.close()


async def test_reads_are_immediate(store):
    store.set_int("minutes", 50)
    assert store.get_int("minutes") == 50
    assert store.pending_writes >= 1

    await store.flush()
    assert store.pending_writes == 0


async def test_last_write_wins(tmp_path):
    path = tmp_path / "kv.db"
    store = await open_store(path)
    for value in range(10):
        store.set_int("n", value)
    store.remove("n")
    store.set_int("n", 42)
    await store.close()

    reopened = await open_store(path)
    assert reopened.get_int("n") == 42
    await reopened.close()


async def test_remove_is_persisted(tmp_path):
    path = tmp_path / "kv.db"
    store = await open_store(path)
    store.set_string("label", "x")
    await store.flush()
    store.remove("label")
    await store.close()

    reopened = await open_store(path)
    assert not reopened.contains("label")
    await reopened.close()


async def test_wrong_type_returns_default(store):
    store.set_string("minutes", "twenty")
    store.set_int("flag", 1)

    assert store.get_int("minutes", 25) == 25
    assert store.get_bool("flag", True) is True
    assert store.get_string("flag") is None
    assert store.get_int("missing") is None


async def test_unreadable_rows_are_ignored(tmp_path):
    path = tmp_path / "kv.db"
    store = await open_store(path)
    store.set_int("good", 1)
    await store.close()

    async with aiosqlite.connect(path) as conn:
        await conn.execute(
            "INSERT INTO preferences (key, value) VALUES (?, ?)", ("bad", "{not json")
        )
        await conn.commit()

    reopened = await open_store(path)
    assert reopened.get_int("good") == 1
    assert not reopened.contains("bad")
    await reopened.close()


async def test_write_before_open_raises(tmp_path):
    store = KeyValueStore(tmp_path / "kv.db")
    with pytest.raises(RuntimeError):
        store.set_int("n", 1)


async def test_schema_version_recorded(store):
    await store.flush()
    async with aiosqlite.connect(store.db_path) as conn:
        async with conn.execute("SELECT MAX(version) FROM schema_version") as cursor:
            row = await cursor.fetchone()
    assert row[0] == 1


async def test_write_after_close_raises(tmp_path):
    store = await open_store(tmp_path / "kv.db")
    store.set_int("n", 1)
    await store.close()

    assert store.get_int("n") == 1
    with pytest.raises(RuntimeError):
        store.set_int("n", 2)

