"""Shared test fixtures for the parsercache test suite."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

import pytest

from parsercache.dictionary import WordListDictionary
from parsercache.store import DiskEntryStore, InMemoryEntryStore

if TYPE_CHECKING:
    from pathlib import Path

# Small, fixed vocabulary so classification tests do not depend on the
# contents of a spell-check word list.
TEST_WORDS = [
    "about",
    "articles",
    "awesome",
    "blog",
    "breaking",
    "doe",
    "items",
    "john",
    "my",
    "news",
    "post",
    "posts",
    "products",
    "profile",
    "story",
    "user",
    "users",
    "wiki",
]


class StubGenerator:
    """Generator double that counts calls and can be held open or made to fail."""

    def __init__(self, payload: str = "return { title: document.title };") -> None:
        self.payload = payload
        self.calls: list[tuple[str, str]] = []
        self.release = asyncio.Event()
        self.release.set()
        self.error: Exception | None = None

    def hold(self) -> None:
        """Block every generate() call until ``release`` is set."""
        self.release.clear()

    async def generate(self, url: str, markup: str) -> str:
        self.calls.append((url, markup))
        await self.release.wait()
        if self.error is not None:
            raise self.error
        return self.payload


@pytest.fixture()
def dictionary() -> WordListDictionary:
    return WordListDictionary(TEST_WORDS)


@pytest.fixture()
def memory_store() -> InMemoryEntryStore:
    return InMemoryEntryStore()


@pytest.fixture()
def disk_store(tmp_path: Path) -> DiskEntryStore:
    return DiskEntryStore(tmp_path / "parsers")


@pytest.fixture()
def stub_generator() -> StubGenerator:
    return StubGenerator()
