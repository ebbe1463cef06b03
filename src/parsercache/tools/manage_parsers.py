"""Tool handlers for list_parsers and delete_parser.

Administrative access to the parser store, routed through the coordinator.
No MCP or FastMCP imports: server.py handles the MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parsercache.errors import ErrorCode, InputError, ParserCacheError
from parsercache.models.tools import (
    DeleteParserInput,
    DeleteParserOutput,
    ListParsersInput,
    ListParsersOutput,
    ParserSummary,
)

if TYPE_CHECKING:
    from parsercache.state import AppState


async def handle_list(limit: int, state: AppState) -> dict:
    """Handle a list_parsers tool call."""
    log = structlog.get_logger().bind(tool="list_parsers", limit=limit)
    log.info("handler_called")

    limit_max = state.settings.storage.list_limit_max
    try:
        validated = ListParsersInput(limit=limit)
    except ValueError as exc:
        raise InputError(
            str(exc), suggestion=f"Provide a limit between 1 and {limit_max}."
        ) from exc

    entries = await state.coordinator.list_entries(min(validated.limit, limit_max))
    total = await state.coordinator.count()

    output = ListParsersOutput(
        total=total,
        parsers=[ParserSummary(url_pattern=e.key, created_at=e.created_at) for e in entries],
    )
    return output.model_dump(mode="json")


async def handle_delete(url_pattern: str, state: AppState) -> dict:
    """Handle a delete_parser tool call."""
    log = structlog.get_logger().bind(tool="delete_parser", url_pattern=url_pattern)
    log.info("handler_called")

    try:
        validated = DeleteParserInput(url_pattern=url_pattern)
    except ValueError as exc:
        raise InputError(
            str(exc),
            suggestion="Provide the url_pattern exactly as returned by get_parser or list_parsers.",
        ) from exc

    deleted = await state.coordinator.delete(validated.url_pattern)
    if not deleted:
        raise ParserCacheError(
            code=ErrorCode.PARSER_NOT_FOUND,
            message=f"No parser stored for pattern '{validated.url_pattern}'.",
            suggestion="Call list_parsers to see stored patterns.",
            recoverable=False,
        )

    output = DeleteParserOutput(deleted=True, url_pattern=validated.url_pattern)
    return output.model_dump(mode="json")
