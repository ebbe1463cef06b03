"""Coalescing get-or-generate coordinator.

Wraps a persistent parser store with an in-memory table of in-flight
generations so that, for any URL pattern, at most one generation call runs at
a time no matter how many requests ask for it concurrently:

    caller A ─┐
    caller B ─┼─► store miss ─► in-flight table ─► one generate() ─► store.set
    caller C ─┘                  (A starts it, B and C await the same task)

Errors from generate() are never retried here; every coalesced caller sees the
same exception and the next call starts over. A failed store write after a
successful generation is logged and the generated parser is still returned.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING

import structlog

from parsercache.errors import InputError, StorageError
from parsercache.models.cache import CacheEntry, ResolveResult
from parsercache.patterns import build_pattern

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from parsercache.protocols import DictionaryProtocol, EntryStoreProtocol, GeneratorProtocol

log = structlog.get_logger()


class ParserCoordinator:
    """Single-flight parser cache over an injected store and generator."""

    def __init__(
        self,
        store: EntryStoreProtocol,
        generator: GeneratorProtocol | None = None,
        *,
        dictionary: DictionaryProtocol | None = None,
    ) -> None:
        self._store = store
        self._generator = generator
        self._dictionary = dictionary
        self._in_flight: dict[str, asyncio.Task[CacheEntry]] = {}
        self._lock = asyncio.Lock()

    @property
    def store(self) -> EntryStoreProtocol:
        return self._store

    @property
    def dictionary(self) -> DictionaryProtocol | None:
        return self._dictionary

    @property
    def in_flight_count(self) -> int:
        return len(self._in_flight)

    # ------------------------------------------------------------------
    # Caller-facing resolution
    # ------------------------------------------------------------------

    async def resolve(
        self,
        url: str,
        markup: str,
        *,
        force_regenerate: bool = False,
    ) -> ResolveResult:
        """Return the parser for *url*, generating one from *markup* on a miss."""
        if not url or not url.strip():
            raise InputError("url is required")
        if not markup or not markup.strip():
            raise InputError("html is required")
        if self._generator is None:
            raise RuntimeError("ParserCoordinator was created without a generator")

        generator = self._generator
        key = build_pattern(url, dictionary=self._dictionary)

        entry, cache_hit = await self._lookup_or_generate(
            key,
            lambda: generator.generate(url, markup),
            skip_cache_read=force_regenerate,
        )
        return ResolveResult(
            url_pattern=key,
            payload=entry.payload,
            created_at=entry.created_at,
            cache_hit=cache_hit,
        )

    async def get_or_create(
        self,
        key: str,
        generate: Callable[[], Awaitable[str]],
        *,
        skip_cache_read: bool = False,
    ) -> CacheEntry:
        """Return the cached entry for *key*, or run ``generate()`` once to create it.

        Concurrent calls for the same key share a single ``generate()`` call
        and all receive the same entry or the same exception. This holds even
        when *skip_cache_read* is set: a forced regeneration joins a
        generation that is already running instead of starting another.
        """
        entry, _ = await self._lookup_or_generate(key, generate, skip_cache_read=skip_cache_read)
        return entry

    async def _lookup_or_generate(
        self,
        key: str,
        generate: Callable[[], Awaitable[str]],
        *,
        skip_cache_read: bool,
    ) -> tuple[CacheEntry, bool]:
        bound = log.bind(key=key)

        if not skip_cache_read:
            cached = await self._store.get(key)
            if cached is not None:
                bound.info("cache_hit")
                return cached, True

        async with self._lock:
            task = self._in_flight.get(key)
            if task is not None:
                bound.info("generation_coalesced", skip_cache_read=skip_cache_read)
            else:
                bound.info("cache_miss", skip_cache_read=skip_cache_read)
                task = asyncio.create_task(self._generate_and_store(key, generate))
                task.add_done_callback(_retrieve_exception)
                self._in_flight[key] = task

        # Shielded: a caller that gives up must not cancel the generation the
        # other coalesced callers are waiting on.
        entry = await asyncio.shield(task)
        return entry, False

    async def _generate_and_store(
        self,
        key: str,
        generate: Callable[[], Awaitable[str]],
    ) -> CacheEntry:
        bound = log.bind(key=key)
        bound.info("generation_started")
        try:
            try:
                payload = await generate()
            except Exception:
                bound.warning("generation_failed", exc_info=True)
                raise

            try:
                entry = await self._store.set(key, payload)
            except StorageError:
                bound.warning("cache_write_error", exc_info=True)
                entry = CacheEntry(key=key, payload=payload, created_at=datetime.now(UTC))

            bound.info("generation_complete", payload_length=len(payload))
            return entry
        finally:
            # Deregister before waiters wake so a follow-up call never joins
            # a finished generation.
            async with self._lock:
                if self._in_flight.get(key) is asyncio.current_task():
                    del self._in_flight[key]

    # ------------------------------------------------------------------
    # Administrative operations
    # ------------------------------------------------------------------

    async def list_entries(self, limit: int = 10) -> list[CacheEntry]:
        return await self._store.list(limit)

    async def delete(self, key: str) -> bool:
        deleted = await self._store.delete(key)
        log.info("parser_deleted" if deleted else "parser_delete_missing", key=key)
        return deleted

    async def count(self) -> int:
        return await self._store.count()


def _retrieve_exception(task: asyncio.Task[CacheEntry]) -> None:
    # Marks the exception as retrieved when every caller was cancelled.
    if not task.cancelled():
        task.exception()
