"""Tool handler for get_parser.

Receives AppState, validates input and delegates to the coordinator, which
owns cache lookup, generation coalescing and persistence. Returns a
structured dict. No MCP or FastMCP imports: server.py handles the MCP wiring.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parsercache.errors import InputError
from parsercache.models.tools import GetParserInput, GetParserOutput

if TYPE_CHECKING:
    from parsercache.state import AppState


async def handle(url: str, html: str, force_regenerate: bool, state: AppState) -> dict:
    """Handle a get_parser tool call."""
    log = structlog.get_logger().bind(tool="get_parser", url=url)
    log.info("handler_called", force_regenerate=force_regenerate, html_length=len(html))

    # Validate input
    try:
        validated = GetParserInput(url=url, html=html, force_regenerate=force_regenerate)
    except ValueError as exc:
        raise InputError(
            str(exc),
            suggestion="Provide a non-empty url (max 2048 chars) and the page's raw html.",
        ) from exc

    result = await state.coordinator.resolve(
        validated.url,
        validated.html,
        force_regenerate=validated.force_regenerate,
    )
    log.info("resolve_complete", url_pattern=result.url_pattern, cached=result.cache_hit)

    output = GetParserOutput(
        url_pattern=result.url_pattern,
        parser=result.payload,
        created_at=result.created_at,
        cached=result.cache_hit,
    )
    return output.model_dump(mode="json")
