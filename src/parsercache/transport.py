"""Streamable HTTP transport and request policy for the MCP server.

Every HTTP request passes ``MCPSecurityMiddleware`` before it reaches the
FastMCP app. The policy comes from ``ServerSettings``:

  - bearer key authentication (``auth_enabled`` / ``auth_key``)
  - Origin allowlist: localhost plus ``allowed_origins``
  - ``MCP-Protocol-Version`` must be one this server speaks
  - request bodies (get_parser carries whole HTML pages) are capped at
    ``max_request_bytes``
"""

from __future__ import annotations

import re
import secrets
from typing import TYPE_CHECKING

import structlog
import uvicorn
from starlette.datastructures import Headers
from starlette.responses import Response

if TYPE_CHECKING:
    from collections.abc import Iterable

    from mcp.server.fastmcp import FastMCP
    from starlette.types import ASGIApp, Message, Receive, Scope, Send

    from parsercache.config import ServerSettings, Settings

log = structlog.get_logger()

SUPPORTED_PROTOCOL_VERSIONS: frozenset[str] = frozenset({"2025-11-25", "2025-06-18", "2025-03-26"})
_LOCALHOST_ORIGIN = re.compile(r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$")


class MCPSecurityMiddleware:
    """Pure ASGI middleware enforcing the HTTP request policy.

    Pure ASGI (not BaseHTTPMiddleware) so SSE responses stream unbuffered.
    Request bodies without a Content-Length are buffered up to the size cap
    and replayed to the app.
    """

    def __init__(
        self,
        app: ASGIApp,
        *,
        auth_enabled: bool,
        auth_key: str | None = None,
        allowed_origins: Iterable[str] = (),
        max_request_bytes: int | None = None,
    ) -> None:
        self.app = app
        self.auth_enabled = auth_enabled
        self.auth_key = auth_key
        self.allowed_origins = frozenset(origin.rstrip("/") for origin in allowed_origins)
        self.max_request_bytes = max_request_bytes

    @classmethod
    def from_settings(
        cls, app: ASGIApp, settings: ServerSettings, auth_key: str | None
    ) -> MCPSecurityMiddleware:
        return cls(
            app,
            auth_enabled=settings.auth_enabled,
            auth_key=auth_key,
            allowed_origins=settings.allowed_origins,
            max_request_bytes=settings.max_request_bytes,
        )

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        rejection = self._check_headers(headers)
        if rejection is not None:
            status, reason, body = rejection
            log.warning(
                "http_request_rejected", path=scope.get("path"), status=status, reason=reason
            )
            await Response(body, status_code=status)(scope, receive, send)
            return

        if self.max_request_bytes is not None and "content-length" not in headers:
            buffered = await self._buffer_body(receive, self.max_request_bytes)
            if buffered is None:
                log.warning(
                    "http_request_rejected",
                    path=scope.get("path"),
                    status=413,
                    reason="body_too_large",
                )
                await Response("Request body too large", status_code=413)(scope, receive, send)
                return
            receive = _replay(buffered, receive)

        await self.app(scope, receive, send)

    def _check_headers(self, headers: Headers) -> tuple[int, str, str] | None:
        if self.auth_enabled:
            auth_header = headers.get("authorization", "")
            supplied = auth_header[7:] if auth_header.startswith("Bearer ") else ""
            if not self.auth_key or not secrets.compare_digest(supplied, self.auth_key):
                return 401, "unauthorized", "Unauthorized"

        origin = headers.get("origin", "")
        if origin and not self._origin_allowed(origin):
            return 403, "origin_not_allowed", "Forbidden"

        proto_version = headers.get("mcp-protocol-version", "")
        if proto_version and proto_version not in SUPPORTED_PROTOCOL_VERSIONS:
            message = f"Unsupported protocol version: {proto_version}"
            return 400, "unsupported_protocol_version", message

        if self.max_request_bytes is not None:
            content_length = headers.get("content-length")
            if content_length is not None:
                if not content_length.isdigit():
                    return 400, "invalid_content_length", "Invalid Content-Length"
                if int(content_length) > self.max_request_bytes:
                    return 413, "body_too_large", "Request body too large"

        return None

    def _origin_allowed(self, origin: str) -> bool:
        return bool(_LOCALHOST_ORIGIN.match(origin)) or origin.rstrip("/") in self.allowed_origins

    @staticmethod
    async def _buffer_body(receive: Receive, limit: int) -> list[Message] | None:
        """Read request body messages; None once more than *limit* bytes arrive."""
        messages: list[Message] = []
        size = 0
        while True:
            message = await receive()
            messages.append(message)
            if message["type"] != "http.request":
                return messages
            size += len(message.get("body", b""))
            if size > limit:
                return None
            if not message.get("more_body", False):
                return messages


def _replay(messages: list[Message], receive: Receive) -> Receive:
    pending = list(messages)

    async def replayed() -> Message:
        if pending:
            return pending.pop(0)
        return await receive()

    return replayed


def run_http_server(mcp: FastMCP, settings: Settings) -> None:
    """Start the MCP server with Streamable HTTP transport."""
    server_settings = settings.server
    http_log = log.bind(transport="http")

    auth_key: str | None = server_settings.auth_key or None

    if server_settings.auth_enabled and not auth_key:
        auth_key = secrets.token_urlsafe(32)
        http_log.warning("http_auth_key_auto_generated", auth_key=auth_key)

    if not server_settings.auth_enabled:
        http_log.warning("http_auth_disabled")

    secured_app = MCPSecurityMiddleware.from_settings(
        mcp.streamable_http_app(), server_settings, auth_key
    )
    http_log.info(
        "http_server_starting",
        host=server_settings.host,
        port=server_settings.port,
        allowed_origins=sorted(secured_app.allowed_origins),
        max_request_bytes=server_settings.max_request_bytes,
    )

    uvicorn.run(
        secured_app,
        host=server_settings.host,
        port=server_settings.port,
        log_config=None,  # structlog handles logging
    )
