"""Integration test fixtures.

Provides a fully wired AppState over an in-memory store, a stub generator and
the fixed test vocabulary from tests/conftest.py.
"""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from parsercache.config import Settings
from parsercache.coordinator import ParserCoordinator
from parsercache.state import AppState

if TYPE_CHECKING:
    from pathlib import Path

    from parsercache.dictionary import WordListDictionary
    from parsercache.store import InMemoryEntryStore


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Baseline env dict for subprocess-based MCP integration tests.

    Forces stdio transport and an isolated on-disk store, and points the
    generation backend at an address nothing listens on.
    """
    env = os.environ.copy()
    env["PARSERCACHE__SERVER__TRANSPORT"] = "stdio"
    env["PARSERCACHE__STORAGE__BACKEND"] = "disk"
    env["PARSERCACHE__STORAGE__DIR"] = str(tmp_path / "parsers")
    env["PARSERCACHE__GENERATOR__BASE_URL"] = "http://127.0.0.1:1/v1"
    env["PARSERCACHE__GENERATOR__TIMEOUT_SECONDS"] = "2"
    env["PARSERCACHE__LOGGING__LEVEL"] = "WARNING"
    return env


@pytest.fixture()
def app_state(
    memory_store: InMemoryEntryStore,
    stub_generator,
    dictionary: WordListDictionary,
) -> AppState:
    """AppState wired with in-memory storage and a stub generator."""
    coordinator = ParserCoordinator(memory_store, stub_generator, dictionary=dictionary)
    return AppState(
        settings=Settings(),
        store=memory_store,
        coordinator=coordinator,
        dictionary=dictionary,
    )
