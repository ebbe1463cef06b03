"""Unit tests for the disk and in-memory parser stores."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

import pytest

from parsercache.errors import ErrorCode, StorageError
from parsercache.models.cache import CacheEntry
from parsercache.store import DiskEntryStore, record_filename, sanitize_key

if TYPE_CHECKING:
    from pathlib import Path

    from parsercache.store import InMemoryEntryStore

# ---------------------------------------------------------------------------
# Key → file name
# ---------------------------------------------------------------------------


class TestSanitizeKey:
    def test_replaces_unsafe_characters(self) -> None:
        assert sanitize_key("example.com/users/{id}") == "example.com_users_id"

    def test_collapses_and_trims_separators(self) -> None:
        assert sanitize_key("/a//b{}") == "a_b"

    def test_record_filename_is_bounded(self) -> None:
        name = record_filename("example.com/" + "x" * 300)
        prefix, _, rest = name.rpartition("-")
        assert len(prefix) == 100
        assert rest.endswith(".json")

    def test_colliding_sanitised_keys_get_distinct_files(self) -> None:
        assert sanitize_key("a.b/x") == sanitize_key("a.b_x")
        assert record_filename("a.b/x") != record_filename("a.b_x")

    def test_record_filename_is_deterministic(self) -> None:
        assert record_filename("example.com/users/{id}") == record_filename(
            "example.com/users/{id}"
        )


# ---------------------------------------------------------------------------
# DiskEntryStore
# ---------------------------------------------------------------------------


class TestDiskEntryStore:
    async def test_get_missing_returns_none(self, disk_store: DiskEntryStore) -> None:
        assert await disk_store.get("example.com/users/{id}") is None

    async def test_set_then_get(self, disk_store: DiskEntryStore) -> None:
        written = await disk_store.set("example.com/users/{id}", "return 1;")
        read = await disk_store.get("example.com/users/{id}")
        assert read == written
        assert read is not None
        assert read.payload == "return 1;"
        assert read.created_at.tzinfo is not None

    async def test_set_creates_directory(self, disk_store: DiskEntryStore) -> None:
        assert not disk_store.directory.exists()
        await disk_store.set("example.com", "return 1;")
        assert disk_store.directory.is_dir()

    async def test_record_is_json_with_literal_key(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com/users/{id}", "return 1;")
        path = disk_store.directory / record_filename("example.com/users/{id}")
        record = json.loads(path.read_text(encoding="utf-8"))
        assert record["key"] == "example.com/users/{id}"
        assert record["payload"] == "return 1;"
        assert "created_at" in record

    async def test_set_overwrites(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com", "first")
        await disk_store.set("example.com", "second")
        entry = await disk_store.get("example.com")
        assert entry is not None
        assert entry.payload == "second"
        assert await disk_store.count() == 1

    async def test_no_temp_files_left_behind(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com", "return 1;")
        assert [p.suffix for p in disk_store.directory.iterdir()] == [".json"]

    async def test_colliding_keys_do_not_overwrite(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("a.b/x", "slash")
        await disk_store.set("a.b_x", "underscore")
        slash = await disk_store.get("a.b/x")
        underscore = await disk_store.get("a.b_x")
        assert slash is not None and slash.payload == "slash"
        assert underscore is not None and underscore.payload == "underscore"

    async def test_key_mismatch_is_a_miss(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com/a", "return 1;")
        source = disk_store.directory / record_filename("example.com/a")
        target = disk_store.directory / record_filename("example.com/b")
        source.rename(target)
        assert await disk_store.get("example.com/b") is None

    async def test_corrupt_record_is_a_miss(self, disk_store: DiskEntryStore) -> None:
        disk_store.directory.mkdir(parents=True)
        (disk_store.directory / record_filename("example.com")).write_text("{not json")
        assert await disk_store.get("example.com") is None

    async def test_set_failure_raises_storage_error(self, tmp_path: Path) -> None:
        blocker = tmp_path / "parsers"
        blocker.write_text("not a directory")
        store = DiskEntryStore(blocker)
        with pytest.raises(StorageError) as exc_info:
            await store.set("example.com", "return 1;")
        assert exc_info.value.code == ErrorCode.STORAGE_FAILED

    async def test_delete(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com", "return 1;")
        assert await disk_store.delete("example.com") is True
        assert await disk_store.get("example.com") is None
        assert await disk_store.delete("example.com") is False

    async def test_list_newest_first(self, disk_store: DiskEntryStore) -> None:
        for key in ("example.com/a", "example.com/b", "example.com/c"):
            await disk_store.set(key, "return 1;")
            await asyncio.sleep(0.01)
        entries = await disk_store.list(limit=2)
        assert [entry.key for entry in entries] == ["example.com/c", "example.com/b"]

    async def test_list_skips_corrupt_records(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com/a", "return 1;")
        (disk_store.directory / "broken-0000000000000000.json").write_text("{")
        entries = await disk_store.list(limit=10)
        assert [entry.key for entry in entries] == ["example.com/a"]

    @pytest.mark.parametrize("limit", [0, -1])
    async def test_list_non_positive_limit(self, disk_store: DiskEntryStore, limit: int) -> None:
        await disk_store.set("example.com/a", "return 1;")
        await disk_store.set("example.com/b", "return 2;")
        assert await disk_store.list(limit=limit) == []

    async def test_list_and_count_without_directory(self, disk_store: DiskEntryStore) -> None:
        assert await disk_store.list() == []
        assert await disk_store.count() == 0

    async def test_count(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com/a", "return 1;")
        await disk_store.set("example.com/b", "return 2;")
        assert await disk_store.count() == 2

    async def test_survives_reopen(self, disk_store: DiskEntryStore) -> None:
        await disk_store.set("example.com/users/{id}", "return 1;")
        reopened = DiskEntryStore(disk_store.directory)
        entry = await reopened.get("example.com/users/{id}")
        assert entry is not None
        assert entry.payload == "return 1;"


# ---------------------------------------------------------------------------
# InMemoryEntryStore
# ---------------------------------------------------------------------------


class TestInMemoryEntryStore:
    async def test_set_get_delete(self, memory_store: InMemoryEntryStore) -> None:
        assert await memory_store.get("k") is None
        entry = await memory_store.set("k", "return 1;")
        assert await memory_store.get("k") == entry
        assert await memory_store.delete("k") is True
        assert await memory_store.delete("k") is False

    async def test_list_and_count(self, memory_store: InMemoryEntryStore) -> None:
        await memory_store.set("old", "return 1;")
        await asyncio.sleep(0.01)
        await memory_store.set("new", "return 2;")
        assert await memory_store.count() == 2
        assert [entry.key for entry in await memory_store.list()] == ["new", "old"]
        assert [entry.key for entry in await memory_store.list(limit=1)] == ["new"]


    @pytest.mark.parametrize("limit", [0, -1])
    async def test_list_non_positive_limit(
        self, memory_store: InMemoryEntryStore, limit: int
    ) -> None:
        await memory_store.set("a", "return 1;")
        await memory_store.set("b", "return 2;")
        assert await memory_store.list(limit=limit) == []


class TestCacheEntry:
    def test_is_frozen(self) -> None:
        entry = CacheEntry(key="k", payload="p", created_at=datetime.now(UTC))
        with pytest.raises(ValueError):
            entry.payload = "changed"  # type: ignore[misc]

    def test_json_round_trip_keeps_timezone(self) -> None:
        created = datetime.now(UTC) - timedelta(days=1)
        entry = CacheEntry(key="k", payload="p", created_at=created)
        assert CacheEntry.model_validate_json(entry.model_dump_json()).created_at == created
