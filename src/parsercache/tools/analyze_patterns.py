"""Tool handler for analyze_url_patterns.

Runs the URL pattern analysis over a caller-supplied URL list so patterns can
be previewed before any parser is generated. No MCP or FastMCP imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from parsercache.analysis import analyze_urls
from parsercache.errors import InputError
from parsercache.models.tools import AnalyzeUrlPatternsInput, AnalyzeUrlPatternsOutput

if TYPE_CHECKING:
    from parsercache.state import AppState


async def handle(urls: list[str], state: AppState) -> dict:
    """Handle an analyze_url_patterns tool call."""
    log = structlog.get_logger().bind(tool="analyze_url_patterns")
    log.info("handler_called", url_count=len(urls))

    try:
        validated = AnalyzeUrlPatternsInput(urls=urls)
    except ValueError as exc:
        raise InputError(str(exc), suggestion="Provide between 1 and 10000 URLs.") from exc

    domains = analyze_urls(validated.urls, dictionary=state.dictionary)
    log.info("analysis_complete", domain_count=len(domains))

    output = AnalyzeUrlPatternsOutput(
        total_urls=sum(domain.total_urls for domain in domains),
        domains=domains,
    )
    return output.model_dump(mode="json")
