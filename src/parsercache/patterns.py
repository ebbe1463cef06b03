"""URL → cache key derivation.

``build_pattern`` collapses concrete URLs into a stable pattern string:
``https://example.com:8080/users/123?tab=posts`` → ``example.com/users/{id}``.
It is total: malformed input degrades to the raw string, never an exception.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

import structlog

from parsercache.classifier import SegmentKind, classify_segment
from parsercache.dictionary import default_dictionary

if TYPE_CHECKING:
    from parsercache.protocols import DictionaryProtocol

log = structlog.get_logger()

ID_PLACEHOLDER = "{id}"
# UUIDs and other identifiers share one placeholder: both mean "variable segment".
UUID_PLACEHOLDER = ID_PLACEHOLDER

_VALID_HOSTNAME_RE = re.compile(r"^[a-z0-9._~%!$&'()*+,;=:\[\]-]+$")


def normalise_url(url: str) -> str:
    """Prefix ``https://`` when the URL carries no http(s) scheme."""
    if url.startswith(("http://", "https://")):
        return url
    return f"https://{url}"


def ascii_hostname(hostname: str) -> str:
    """Return *hostname* in its ASCII (punycode) form, as browsers send it.

    Raises UnicodeError (a ValueError) for labels IDNA cannot encode.
    """
    if hostname.isascii():
        return hostname
    return hostname.encode("idna").decode("ascii")


def build_pattern(url: str, *, dictionary: DictionaryProtocol | None = None) -> str:
    """Derive the cache key for *url*.

    Steps:
      1. Normalise the scheme and parse; query, fragment and port are dropped,
         internationalised hostnames are punycoded
      2. Split the path on "/", discarding empty segments
      3. Replace variable segments with placeholders, keep literals verbatim
      4. Join as "<hostname>/<seg>/<seg>", or just "<hostname>" for the root
    """
    try:
        parts = urlsplit(normalise_url(url))
        hostname = ascii_hostname(parts.hostname or "")
        # Reading .port raises ValueError for a non-numeric or out-of-range port
        parts.port  # noqa: B018
        if not hostname or not _VALID_HOSTNAME_RE.match(hostname):
            raise ValueError(f"invalid hostname in {url!r}")
    except ValueError:
        log.debug("url_pattern_fallback", url=url, exc_info=True)
        return url

    oracle = dictionary if dictionary is not None else default_dictionary()
    segments = [segment for segment in parts.path.split("/") if segment]
    pattern_segments = [_pattern_segment(segment, oracle) for segment in segments]

    if not pattern_segments:
        return hostname
    return f"{hostname}/{'/'.join(pattern_segments)}"


def _pattern_segment(segment: str, dictionary: DictionaryProtocol) -> str:
    kind = classify_segment(segment, dictionary)
    if kind is SegmentKind.UUID:
        return UUID_PLACEHOLDER
    if kind is SegmentKind.ID:
        return ID_PLACEHOLDER
    return segment
