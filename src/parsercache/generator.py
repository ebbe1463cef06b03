"""Parser generation via an OpenAI-compatible chat completions endpoint.

The LLMGenerator receives an httpx.AsyncClient via constructor injection;
the lifespan owns the client lifecycle. Every failure mode (network error,
non-2xx status, malformed body, empty answer) surfaces as GenerationError.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

import httpx
import structlog

from parsercache import __version__
from parsercache.errors import GenerationError
from parsercache.markup import prepare_markup

if TYPE_CHECKING:
    from parsercache.config import GeneratorSettings

log = structlog.get_logger()

_CODE_FENCE_RE = re.compile(r"```(?:javascript|js|typescript|ts)?\s*\n(.*?)\n```", re.DOTALL)
_FUNCTION_BODY_RE = re.compile(r"^function\s+\w+\s*\([^)]*\)\s*\{(.*)\}", re.DOTALL)
_ARROW_BODY_RE = re.compile(
    r"^(?:const|let|var)?\s*\w+\s*=\s*\([^)]*\)\s*=>\s*\{(.*)\}", re.DOTALL
)

SYSTEM_PROMPT = """\
You write HTML parsers. Given a page URL, a structural summary and a sample of
the page's main content, write the body of a JavaScript function that receives
the full page HTML as the string `html` and returns a JSON-serialisable object
with the page's meaningful data (title, main text, lists, links, metadata).
The function must work for every page sharing this URL structure, not only
this one. Use only standard DOM APIs available to `new DOMParser()`.
Reply with code only."""


def build_http_client(settings: GeneratorSettings) -> httpx.AsyncClient:
    """Create the shared httpx client for the generation backend."""
    headers = {"User-Agent": f"parsercache/{__version__}"}
    if settings.api_key:
        headers["Authorization"] = f"Bearer {settings.api_key}"
    return httpx.AsyncClient(
        base_url=settings.base_url.rstrip("/") + "/",
        timeout=httpx.Timeout(settings.timeout_seconds, connect=10.0),
        headers=headers,
        limits=httpx.Limits(
            max_connections=10,
            max_keepalive_connections=5,
        ),
    )


def build_messages(url: str, markup: str, max_sample_chars: int) -> list[dict[str, str]]:
    """Build the chat messages for a generation request."""
    prepared = prepare_markup(markup, max_chars=max_sample_chars)
    structure = prepared.structure
    user_prompt = "\n".join(
        [
            f"URL: {url}",
            f"Title: {structure.title}",
            f"Headings: {json.dumps(structure.headings)}",
            f"Forms: {structure.forms}, links: {structure.links}, images: {structure.images}",
            f"Main content excerpt: {structure.main_content}",
            "",
            "Sample HTML:",
            prepared.sample_html,
        ]
    )
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": user_prompt},
    ]


def extract_routine(answer: str) -> str:
    """Reduce a model answer to a runnable function body.

    Strips a Markdown code fence, then unwraps a ``function name(...) {…}``
    declaration or an arrow function assignment. Anything else is returned
    trimmed, as-is.
    """
    fenced = _CODE_FENCE_RE.search(answer)
    routine = fenced.group(1).strip() if fenced else answer.strip()

    if routine.startswith("function"):
        body = _FUNCTION_BODY_RE.match(routine)
        if body and body.group(1).strip():
            return body.group(1).strip()

    if "=>" in routine:
        body = _ARROW_BODY_RE.match(routine)
        if body and body.group(1).strip():
            return body.group(1).strip()

    return routine


class LLMGenerator:
    """Generation backend implementing GeneratorProtocol."""

    def __init__(self, client: httpx.AsyncClient, settings: GeneratorSettings) -> None:
        self._client = client
        self._settings = settings

    async def generate(self, url: str, markup: str) -> str:
        """Ask the model for a parser routine for pages shaped like *url*.

        Raises GenerationError on any failure.
        """
        request_body = {
            "model": self._settings.model,
            "temperature": self._settings.temperature,
            "messages": build_messages(url, markup, self._settings.max_sample_chars),
        }

        try:
            response = await self._client.post("chat/completions", json=request_body)
        except httpx.HTTPError as exc:
            raise GenerationError(f"Network error calling generation backend: {exc}") from exc

        if not response.is_success:
            raise GenerationError(
                f"Generation backend returned HTTP {response.status_code}",
                suggestion=(
                    "Check generator.api_key and generator.model."
                    if response.status_code in (401, 403, 404)
                    else ""
                ),
            )

        try:
            data = response.json()
            answer = data["choices"][0]["message"]["content"]
            if not isinstance(answer, str):
                raise TypeError("message content is not a string")
        except (ValueError, KeyError, IndexError, TypeError) as exc:
            raise GenerationError(f"Malformed generation response: {exc}") from exc

        routine = extract_routine(answer)
        if not routine:
            raise GenerationError("Generation backend returned an empty parser")

        usage = data.get("usage") or {}
        log.info(
            "generation_response",
            url=url,
            model=self._settings.model,
            routine_length=len(routine),
            prompt_tokens=usage.get("prompt_tokens"),
            completion_tokens=usage.get("completion_tokens"),
        )
        return routine
