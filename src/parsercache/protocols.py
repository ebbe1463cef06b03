"""Protocol interfaces for swappable components.

The coordinator, tool handlers and AppState reference these protocols, not the
concrete implementations. This allows:
- Tests to use lightweight in-memory stores, stub generators and word lists
- Storage backends (disk, SQLite, memory) to be swapped via configuration
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from parsercache.models.cache import CacheEntry


class DictionaryProtocol(Protocol):
    """Word-likelihood oracle used by the segment classifier.

    Must be case-insensitive and must never raise.
    """

    def is_known_word(self, token: str) -> bool: ...


class EntryStoreProtocol(Protocol):
    """Interface for the persistent parser store."""

    async def get(self, key: str) -> CacheEntry | None: ...

    async def set(self, key: str, payload: str) -> CacheEntry: ...

    async def delete(self, key: str) -> bool: ...

    async def list(self, limit: int = 10) -> list[CacheEntry]: ...

    async def count(self) -> int: ...


class GeneratorProtocol(Protocol):
    """Interface for the parser generation backend."""

    async def generate(self, url: str, markup: str) -> str: ...
