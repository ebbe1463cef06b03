"""MCP server entrypoint.

Responsibilities (and nothing more):
- Configure structlog
- Create AppState via the FastMCP lifespan context manager
- Register tools
- Start the correct transport (stdio or HTTP)
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import aiosqlite
import structlog
from mcp.server.fastmcp import Context, FastMCP
from mcp.types import CallToolResult, TextContent

import parsercache.tools.analyze_patterns as t_analyze
import parsercache.tools.get_parser as t_get_parser
import parsercache.tools.manage_parsers as t_manage
from parsercache import __version__
from parsercache.cache import SqliteEntryStore
from parsercache.config import Settings
from parsercache.coordinator import ParserCoordinator
from parsercache.dictionary import default_dictionary
from parsercache.errors import ParserCacheError
from parsercache.generator import LLMGenerator, build_http_client
from parsercache.state import AppState
from parsercache.store import DiskEntryStore, InMemoryEntryStore
from parsercache.transport import run_http_server

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Awaitable

    from parsercache.protocols import EntryStoreProtocol

log = structlog.get_logger()


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(settings: Settings) -> None:
    """Configure structlog. Called once at startup before any log statements."""
    log_level = logging.getLevelNamesMapping()[settings.logging.level]

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if settings.logging.format == "json":
        processors = [
            *shared_processors,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors = [*shared_processors, structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        # Logs go to stderr: stdout is reserved for the MCP JSON-RPC stream
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=True,
    )


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


async def _open_store(settings: Settings) -> tuple[EntryStoreProtocol, aiosqlite.Connection | None]:
    """Build the configured parser store. Returns the SQLite connection to close, if any."""
    backend = settings.storage.backend

    if backend == "memory":
        return InMemoryEntryStore(), None

    if backend == "sqlite":
        db_path = Path(settings.storage.db_path).expanduser()
        db_path.parent.mkdir(parents=True, exist_ok=True)
        db = await aiosqlite.connect(str(db_path))
        store = SqliteEntryStore(db)
        await store.init_db()
        return store, db

    storage_dir = Path(settings.storage.dir).expanduser()
    storage_dir.mkdir(parents=True, exist_ok=True)
    return DiskEntryStore(storage_dir), None


@asynccontextmanager
async def lifespan(server: FastMCP) -> AsyncGenerator[AppState, None]:
    """Create and tear down all shared resources for the server's lifetime."""
    settings = Settings()
    _setup_logging(settings)

    log.info(
        "server_starting",
        version=__version__,
        transport=settings.server.transport,
        storage_backend=settings.storage.backend,
    )

    if not settings.generator.api_key:
        log.warning("generator_api_key_missing", base_url=settings.generator.base_url)

    store, db = await _open_store(settings)
    # Word list loading is blocking file I/O
    dictionary = await asyncio.to_thread(default_dictionary)
    http_client = build_http_client(settings.generator)
    generator = LLMGenerator(http_client, settings.generator)
    coordinator = ParserCoordinator(store, generator, dictionary=dictionary)

    state = AppState(
        settings=settings,
        store=store,
        coordinator=coordinator,
        dictionary=dictionary,
        http_client=http_client,
    )

    log.info(
        "server_started",
        version=__version__,
        transport=settings.server.transport,
        stored_parsers=await store.count(),
    )

    try:
        yield state
    finally:
        await http_client.aclose()
        if db is not None:
            await db.close()
        log.info("server_stopping")


# ---------------------------------------------------------------------------
# FastMCP instance and tool registration
# ---------------------------------------------------------------------------

mcp = FastMCP("parsercache", lifespan=lifespan)
# FastMCP doesn't expose a version kwarg, so set it on the underlying Server
# so the MCP initialize handshake reports our version, not the SDK's.
mcp._mcp_server.version = __version__  # pyright: ignore[reportPrivateUsage]


def _serialise_tool_error(error: ParserCacheError) -> CallToolResult:
    """Convert a ParserCacheError to the MCP tool error result envelope."""
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(error.to_dict()))],
        isError=True,
    )


async def _run_tool(tool: str, call: Awaitable[dict]) -> object:
    try:
        return await call
    except ParserCacheError as exc:
        log.warning(
            "tool_error",
            tool=tool,
            code=exc.code,
            message=exc.message,
            recoverable=exc.recoverable,
        )
        return _serialise_tool_error(exc)
    except Exception:
        log.error("tool_unexpected_error", tool=tool, exc_info=True)
        raise


@mcp.tool()
async def get_parser(url: str, html: str, ctx: Context, force_regenerate: bool = False) -> object:
    """Return an HTML parser for the page at url, generating one from html if needed.

    Parsers are cached per URL pattern (e.g. example.com/users/{id}), so any
    page with the same structure reuses the same parser. Set force_regenerate
    to replace a cached parser.
    """
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool("get_parser", t_get_parser.handle(url, html, force_regenerate, state))


@mcp.tool()
async def list_parsers(ctx: Context, limit: int = 10) -> object:
    """List stored parsers (URL pattern and creation time), newest first."""
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool("list_parsers", t_manage.handle_list(limit, state))


@mcp.tool()
async def delete_parser(url_pattern: str, ctx: Context) -> object:
    """Delete the stored parser for a URL pattern so the next request regenerates it."""
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool("delete_parser", t_manage.handle_delete(url_pattern, state))


@mcp.tool()
async def analyze_url_patterns(urls: list[str], ctx: Context) -> object:
    """Group URLs by domain and show which cache pattern each one maps to."""
    state: AppState = ctx.request_context.lifespan_context
    return await _run_tool("analyze_url_patterns", t_analyze.handle(urls, state))


# ---------------------------------------------------------------------------
# Entrypoint
# ---------------------------------------------------------------------------


def main() -> None:
    settings = Settings()

    if settings.server.transport == "http":
        _setup_logging(settings)
        run_http_server(mcp, settings)
        return

    mcp.run()


if __name__ == "__main__":
    main()
