"""SQLite parser store.

Read failures (``aiosqlite.Error``) are caught internally and degrade to a
cache miss; they are logged with ``exc_info=True`` so they remain observable
via stderr. Write failures raise ``StorageError`` so the coordinator can
report the entry as not durably cached while still returning the freshly
generated parser to the caller.
"""

from __future__ import annotations

from datetime import UTC, datetime

import aiosqlite
import structlog

from parsercache.errors import StorageError
from parsercache.models.cache import CacheEntry

log = structlog.get_logger()

_CREATE_PARSER_TABLE = """
CREATE TABLE IF NOT EXISTS parser_cache (
    key        TEXT PRIMARY KEY,
    payload    TEXT NOT NULL,
    created_at TEXT NOT NULL
)
"""

_CREATE_PARSER_INDEX = (
    "CREATE INDEX IF NOT EXISTS idx_parser_created ON parser_cache(created_at)"
)


class SqliteEntryStore:
    """SQLite-backed parser store implementing EntryStoreProtocol."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create tables and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_PARSER_TABLE)
        await self._db.execute(_CREATE_PARSER_INDEX)
        await self._db.commit()

    async def get(self, key: str) -> CacheEntry | None:
        """Read an entry. Returns ``None`` on cache miss or read failure."""
        try:
            cursor = await self._db.execute(
                "SELECT key, payload, created_at FROM parser_cache WHERE key = ?",
                (key,),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            return _entry_from_row(row)
        except aiosqlite.Error:
            log.warning("cache_read_error", key=key, exc_info=True)
            return None
        except ValueError:
            log.warning("store_record_skipped", key=key, exc_info=True)
            return None

    async def set(self, key: str, payload: str) -> CacheEntry:
        """Write an entry, replacing any previous one. Raises StorageError on failure."""
        entry = CacheEntry(key=key, payload=payload, created_at=datetime.now(UTC))
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO parser_cache (key, payload, created_at) VALUES (?, ?, ?)",
                (entry.key, entry.payload, entry.created_at.isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error as exc:
            raise StorageError(f"Cannot save parser for {key!r}: {exc}") from exc
        return entry

    async def delete(self, key: str) -> bool:
        """Delete an entry. Returns False when the key is absent or on failure."""
        try:
            cursor = await self._db.execute("DELETE FROM parser_cache WHERE key = ?", (key,))
            await self._db.commit()
            return cursor.rowcount > 0
        except aiosqlite.Error:
            log.warning("cache_delete_error", key=key, exc_info=True)
            return False

    async def list(self, limit: int = 10) -> list[CacheEntry]:
        """Return up to *limit* entries, newest first. Unparseable rows are skipped."""
        if limit <= 0:
            return []
        try:
            cursor = await self._db.execute(
                "SELECT key, payload, created_at FROM parser_cache ORDER BY created_at DESC"
            )
            rows = await cursor.fetchall()
        except aiosqlite.Error:
            log.warning("cache_list_error", exc_info=True)
            return []

        entries: list[CacheEntry] = []
        for row in rows:
            try:
                entries.append(_entry_from_row(row))
            except ValueError:
                log.warning("store_record_skipped", key=row[0], exc_info=True)
                continue
            if len(entries) >= limit:
                break
        return entries

    async def count(self) -> int:
        try:
            cursor = await self._db.execute("SELECT COUNT(*) FROM parser_cache")
            row = await cursor.fetchone()
        except aiosqlite.Error:
            log.warning("cache_count_error", exc_info=True)
            return 0
        return int(row[0]) if row is not None else 0


def _entry_from_row(row: aiosqlite.Row | tuple) -> CacheEntry:
    return CacheEntry(
        key=row[0],
        payload=row[1],
        created_at=datetime.fromisoformat(row[2]),
    )
