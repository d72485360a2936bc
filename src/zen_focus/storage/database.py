"""SQLite-backed key/value store with an in-memory read cache.

Every row is loaded once when the store opens; reads afterwards never touch
the disk. Writes update the cache immediately and are persisted by background
tasks that the caller does not await.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

logger = logging.getLogger(__name__)

# Schema version for migrations
SCHEMA_VERSION = 1

SCHEMA = """
-- Schema version tracking
CREATE TABLE IF NOT EXISTS schema_version (
    version INTEGER PRIMARY KEY,
    applied_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

-- JSON-encoded values keyed by stable preference names
CREATE TABLE IF NOT EXISTS preferences (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at DATETIME DEFAULT CURRENT_TIMESTAMP
);
"""

# Marker for a pending delete
_DELETED = object()


class KeyValueStore:
    """Durable key/value storage with synchronous reads and fire-and-forget writes.

    Usage:
        store = KeyValueStore(path)
        await store.open()

        store.set_int("timer_duration_minutes", 50)   # returns immediately
        store.get_int("timer_duration_minutes")       # 50, from memory

        await store.close()  # waits for pending writes
    """

    def __init__(self, db_path: Path):
        self.db_path = db_path
        self._connection: aiosqlite.Connection | None = None
        self._lock = asyncio.Lock()
        self._cache: dict[str, Any] = {}
        self._pending: set[asyncio.Task] = set()
        # Writes issued while no event loop was running
        self._queued: list[tuple[str, Any]] = []

    async def open(self) -> None:
        """Connect, initialize the schema and load every value into memory."""
        if self._connection is not None:
            return

        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self._connection = await aiosqlite.connect(self.db_path, isolation_level=None)

        await self._connection.execute("PRAGMA journal_mode=WAL")
        await self._connection.execute("PRAGMA synchronous=NORMAL")
        await self._connection.execute("PRAGMA busy_timeout=5000")

        await self._init_schema()
        await self._load()

        logger.info(f"Store opened: {self.db_path} ({len(self._cache)} keys)")

    async def _init_schema(self) -> None:
        if self._connection is None:
            raise RuntimeError("Store not opened")

        await self._connection.executescript(SCHEMA)

        async with self._connection.execute(
            "SELECT MAX(version) FROM schema_version"
        ) as cursor:
            row = await cursor.fetchone()
            current_version = row[0] if row and row[0] else 0

        if current_version < SCHEMA_VERSION:
            await self._connection.execute(
                "INSERT INTO schema_version (version) VALUES (?)",
                (SCHEMA_VERSION,),
            )
            logger.info(f"Schema updated to version {SCHEMA_VERSION}")

    async def _load(self) -> None:
        if self._connection is None:
            raise RuntimeError("Store not opened")

        self._cache.clear()
        async with self._connection.execute("SELECT key, value FROM preferences") as cursor:
            rows = await cursor.fetchall()

        for key, raw in rows:
            try:
                self._cache[key] = json.loads(raw)
            except json.JSONDecodeError as e:
                logger.warning(f"Ignoring unreadable value for {key!r}: {e}")

    async def flush(self) -> None:
        """Wait until every write issued so far has reached the database."""
        queued, self._queued = self._queued, []
        for key, value in queued:
            await self._write(key, value)

        while self._pending:
            await asyncio.gather(*list(self._pending))

    async def close(self) -> None:
        """Flush pending writes and close the connection."""
        if self._connection is None:
            return

        await self.flush()
        await self._connection.close()
        self._connection = None
        logger.info("Store closed")

    @property
    def pending_writes(self) -> int:
        """Number of writes not yet persisted."""
        return len(self._pending) + len(self._queued)

    # Reads

    def contains(self, key: str) -> bool:
        return key in self._cache

    def get_json(self, key: str, default: Any = None) -> Any:
        """Get a raw decoded value (dict, list, scalar)."""
        return self._cache.get(key, default)

    def get_int(self, key: str, default: int | None = None) -> int | None:
        value = self._cache.get(key)
        if value is None:
            return default
        if isinstance(value, bool) or not isinstance(value, int):
            logger.warning(f"Expected int for {key!r}, got {type(value).__name__}")
            return default
        return value

    def get_string(self, key: str, default: str | None = None) -> str | None:
        value = self._cache.get(key)
        if value is None:
            return default
        if not isinstance(value, str):
            logger.warning(f"Expected str for {key!r}, got {type(value).__name__}")
            return default
        return value

    def get_bool(self, key: str, default: bool | None = None) -> bool | None:
        value = self._cache.get(key)
        if value is None:
            return default
        if not isinstance(value, bool):
            logger.warning(f"Expected bool for {key!r}, got {type(value).__name__}")
            return default
        return value

    # Writes

    def set_int(self, key: str, value: int) -> None:
        self._set(key, int(value))

    def set_string(self, key: str, value: str) -> None:
        self._set(key, str(value))

    def set_bool(self, key: str, value: bool) -> None:
        self._set(key, bool(value))

    def set_json(self, key: str, value: Any) -> None:
        """Store any JSON-serializable structure."""
        self._set(key, value)

    def remove(self, key: str) -> None:
        if key not in self._cache:
            return
        del self._cache[key]
        self._schedule(key, _DELETED)

    def _set(self, key: str, value: Any) -> None:
        if self._connection is None:
            raise RuntimeError("Store not opened")
        encoded = json.dumps(value)
        self._cache[key] = value
        self._schedule(key, encoded)

    def _schedule(self, key: str, value: Any) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._queued.append((key, value))
            return

        task = loop.create_task(self._write(key, value))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _write(self, key: str, value: Any) -> None:
        # Lock is taken before any other await so writes land in issue order
        async with self._lock:
            if self._connection is None:
                logger.warning(f"Store closed, dropping write for {key!r}")
                return
            try:
                if value is _DELETED:
                    await self._connection.execute(
                        "DELETE FROM preferences WHERE key = ?", (key,)
                    )
                else:
                    await self._connection.execute(
                        """INSERT INTO preferences (key, value, updated_at)
                           VALUES (?, ?, CURRENT_TIMESTAMP)
                           ON CONFLICT(key) DO UPDATE SET value = ?, updated_at = CURRENT_TIMESTAMP""",
                        (key, value, value),
                    )
            except Exception as e:
                logger.error(f"Failed to persist {key!r}: {e}")


async def open_store(db_path: Path) -> KeyValueStore:
    """Create a store and load it."""
    store = KeyValueStore(db_path)
    await store.open()
    return store
