"""File-backed and in-memory parser stores.

``DiskEntryStore`` keeps one JSON record per URL pattern. Record file names
are derived from the key on every access, so no index file is needed:

    example.com/users/{id}  →  example.com_users_id-<sha256[:16]>.json

The digest suffix keeps keys that sanitise to the same prefix (``a.b/x`` and
``a.b_x``) in separate files; the literal key is stored inside the record and
checked on read.

Blocking file I/O runs in worker threads via ``asyncio.to_thread``.
"""

from __future__ import annotations

import asyncio
import hashlib
import os
import re
import secrets
import sys
from contextlib import suppress
from datetime import UTC, datetime
from pathlib import Path

import structlog

from parsercache.errors import StorageError
from parsercache.models.cache import CacheEntry

log = structlog.get_logger()

_UNSAFE_CHARS_RE = re.compile(r"[^a-zA-Z0-9.-]")
_REPEATED_SEPARATOR_RE = re.compile(r"_+")
_MAX_SANITIZED_LENGTH = 100
_RECORD_SUFFIX = ".json"


def sanitize_key(key: str) -> str:
    """Map a URL pattern to a filesystem-safe name fragment.

    Characters outside ``[A-Za-z0-9.-]`` become ``_``, runs of ``_`` collapse
    to one, and leading/trailing ``_`` are trimmed.
    """
    sanitized = _UNSAFE_CHARS_RE.sub("_", key)
    sanitized = _REPEATED_SEPARATOR_RE.sub("_", sanitized)
    return sanitized.strip("_")


def record_filename(key: str) -> str:
    """Return the record file name for *key*: sanitised prefix + key digest."""
    digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:16]
    prefix = sanitize_key(key)[:_MAX_SANITIZED_LENGTH]
    if not prefix:
        return f"{digest}{_RECORD_SUFFIX}"
    return f"{prefix}-{digest}{_RECORD_SUFFIX}"


class DiskEntryStore:
    """JSON-file parser store implementing EntryStoreProtocol."""

    def __init__(self, directory: Path) -> None:
        self._dir = directory

    @property
    def directory(self) -> Path:
        return self._dir

    def _path_for(self, key: str) -> Path:
        return self._dir / record_filename(key)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, key: str) -> CacheEntry | None:
        """Read the entry for *key*. Returns ``None`` on miss or read failure."""
        path = self._path_for(key)
        try:
            entry = await asyncio.to_thread(_read_record, path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError):
            log.warning("cache_read_error", key=key, path=str(path), exc_info=True)
            return None

        if entry.key != key:
            log.warning("cache_key_mismatch", key=key, stored_key=entry.key, path=str(path))
            return None
        return entry

    async def list(self, limit: int = 10) -> list[CacheEntry]:
        """Return up to *limit* entries, newest first.

        Records that cannot be read or parsed are logged and skipped.
        """
        return await asyncio.to_thread(self._list_sync, limit)

    def _list_sync(self, limit: int) -> list[CacheEntry]:
        if limit <= 0 or not self._dir.is_dir():
            return []

        entries: list[CacheEntry] = []
        for path in sorted(self._dir.glob(f"*{_RECORD_SUFFIX}")):
            try:
                entries.append(_read_record(path))
            except (OSError, ValueError):
                log.warning("store_record_skipped", path=str(path), exc_info=True)

        entries.sort(key=lambda entry: entry.created_at, reverse=True)
        return entries[:limit]

    async def count(self) -> int:
        return await asyncio.to_thread(self._count_sync)

    def _count_sync(self) -> int:
        if not self._dir.is_dir():
            return 0
        return sum(1 for _ in self._dir.glob(f"*{_RECORD_SUFFIX}"))

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def set(self, key: str, payload: str) -> CacheEntry:
        """Write (or overwrite) the entry for *key*. Raises StorageError on failure."""
        entry = CacheEntry(key=key, payload=payload, created_at=datetime.now(UTC))
        path = self._path_for(key)
        try:
            await asyncio.to_thread(self._write_sync, path, entry)
        except OSError as exc:
            raise StorageError(f"Cannot save parser for {key!r}: {exc}") from exc
        return entry

    def _write_sync(self, path: Path, entry: CacheEntry) -> None:
        self._dir.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_name(f"{path.name}.{secrets.token_hex(4)}.tmp")
        try:
            _write_bytes_fsync(tmp_path, entry.model_dump_json(indent=2).encode("utf-8"))
            os.replace(tmp_path, path)
            _fsync_directory(self._dir)
        finally:
            with suppress(OSError):
                tmp_path.unlink(missing_ok=True)

    async def delete(self, key: str) -> bool:
        """Delete the entry for *key*. Returns False if there was nothing to delete."""
        path = self._path_for(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError:
            log.warning("cache_delete_error", key=key, path=str(path), exc_info=True)
            return False
        return True


class InMemoryEntryStore:
    """Dict-backed parser store. Contents do not survive a restart."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def set(self, key: str, payload: str) -> CacheEntry:
        entry = CacheEntry(key=key, payload=payload, created_at=datetime.now(UTC))
        self._entries[key] = entry
        return entry

    async def delete(self, key: str) -> bool:
        return self._entries.pop(key, None) is not None

    async def list(self, limit: int = 10) -> list[CacheEntry]:
        if limit <= 0:
            return []
        entries = sorted(self._entries.values(), key=lambda entry: entry.created_at, reverse=True)
        return entries[:limit]

    async def count(self) -> int:
        return len(self._entries)


def _read_record(path: Path) -> CacheEntry:
    return CacheEntry.model_validate_json(path.read_bytes())


def _write_bytes_fsync(path: Path, data: bytes) -> None:
    with path.open("wb") as file_obj:
        file_obj.write(data)
        file_obj.flush()
        os.fsync(file_obj.fileno())


def _fsync_directory(path: Path) -> None:
    if sys.platform == "win32":
        return  # Windows does not support fsync on directory handles
    directory_fd = os.open(path, os.O_RDONLY)
    try:
        os.fsync(directory_fd)
    finally:
        os.close(directory_fd)
