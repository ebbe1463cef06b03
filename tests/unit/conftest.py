"""Unit test fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import aiosqlite
import pytest

from parsercache.cache import SqliteEntryStore

if TYPE_CHECKING:
    from collections.abc import AsyncIterator


@pytest.fixture()
async def sqlite_store() -> AsyncIterator[SqliteEntryStore]:
    """SqliteEntryStore over an in-memory database."""
    async with aiosqlite.connect(":memory:") as db:
        store = SqliteEntryStore(db)
        await store.init_db()
        yield store
