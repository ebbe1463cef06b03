"""URL path segment classifier.

Pure business logic. Decides whether a single path segment is a literal,
semantic token (``/users``, ``/my-awesome-post``) or a variable identifier
(``/123``, ``/abc123def456``, ``/Prometheus``). The only collaborator is an
injected dictionary; no I/O, no logging, no state.
"""

from __future__ import annotations

import re
from enum import StrEnum
from typing import TYPE_CHECKING
from urllib.parse import unquote

if TYPE_CHECKING:
    from parsercache.protocols import DictionaryProtocol

_DIGITS_RE = re.compile(r"^\d+$")
_HEX_ID_RE = re.compile(r"^[a-f0-9-]{8,}$")
_PRINTABLE_ASCII_RE = re.compile(r"^[\x20-\x7e]*$")
_LETTER_RE = re.compile(r"[a-zA-Z]")
_PASCAL_CASE_RE = re.compile(r"^([A-Z][a-z]+)+[A-Z]?$")
_PASCAL_WORD_RE = re.compile(r"[A-Z][a-z]*")
_ALNUM_8_RE = re.compile(r"^[a-zA-Z0-9]{8,}$")
_LOWER_HYPHEN_RE = re.compile(r"^[a-z-]+$")
_UNDERSCORE_DOT_RE = re.compile(r"[_.]")

LONG_SEGMENT_LENGTH = 20
SHORT_SEGMENT_LENGTH = 8
MIN_LETTER_RATIO = 0.7

# Path words that are always literal, regardless of dictionary lookup.
COMMON_PATH_WORDS: frozenset[str] = frozenset(
    {
        "about",
        "contact",
        "services",
        "products",
        "support",
        "help",
        "login",
        "register",
        "profile",
        "account",
        "settings",
        "dashboard",
        "admin",
        "manage",
        "create",
        "edit",
        "delete",
        "update",
        "search",
        "filter",
        "category",
        "categories",
        "archive",
        "archives",
        "download",
        "downloads",
        "upload",
        "uploads",
        "media",
        "images",
        "videos",
        "files",
        "document",
        "documents",
        "report",
        "reports",
        "analytics",
        "statistics",
        "metrics",
        "overview",
        "summary",
        "details",
        "preview",
        "history",
        "timeline",
        "calendar",
        "schedule",
        "events",
        "notifications",
        "messages",
        "inbox",
        "outbox",
        "trash",
        "recycle",
        "backup",
        "restore",
        "export",
        "import",
        "sync",
        "connect",
        "disconnect",
        "configure",
        "configuration",
        "preferences",
        "options",
        "advanced",
        "security",
        "privacy",
        "terms",
        "conditions",
        "policy",
        "policies",
        "legal",
        "copyright",
        "trademark",
        "patent",
        "license",
        "licenses",
        "agreement",
        "contract",
    }
)


class SegmentKind(StrEnum):
    LITERAL = "literal"
    ID = "id"
    UUID = "uuid"


def classify_segment(segment: str, dictionary: DictionaryProtocol) -> SegmentKind:
    """Classify one URL path segment.

    Rules are applied in order, first match wins:
      1. All decimal digits               → ID
      2. Lowercase hex/hyphens, 8+ chars  → UUID
      3. 20+ chars                        → ID
      4. Word-likelihood heuristic        → ID or LITERAL
    """
    if _DIGITS_RE.match(segment):
        return SegmentKind.ID
    if _HEX_ID_RE.match(segment):
        return SegmentKind.UUID
    if len(segment) >= LONG_SEGMENT_LENGTH:
        return SegmentKind.ID
    if is_likely_id(segment, dictionary):
        return SegmentKind.ID
    return SegmentKind.LITERAL


def is_likely_word(token: str, dictionary: DictionaryProtocol) -> bool:
    """Return True if *token* is mostly letters and a known dictionary word."""
    if not token:
        return False
    letters = len(_LETTER_RE.findall(token))
    if letters / len(token) < MIN_LETTER_RATIO:
        return False
    return dictionary.is_known_word(token.lower())


def is_likely_id(segment: str, dictionary: DictionaryProtocol) -> bool:
    """Word-likelihood heuristic for segments not settled by the structural rules."""
    decoded = unquote(segment)

    # Non-printable or non-ASCII content is treated as opaque encoded data.
    if not _PRINTABLE_ASCII_RE.match(decoded):
        return True

    if len(decoded) < SHORT_SEGMENT_LENGTH:
        return not is_likely_word(decoded, dictionary)

    if decoded.lower() in COMMON_PATH_WORDS:
        return False

    tokens = _split_tokens(decoded)
    if tokens is not None:
        # A single capitalised word ("Prometheus") names a specific thing.
        if len(tokens) == 1 and _PASCAL_CASE_RE.match(decoded):
            return True
        return not all(is_likely_word(token, dictionary) for token in tokens)

    # "abc123def" or "user12345", but not "userprofile"
    if _ALNUM_8_RE.match(decoded) and not _LOWER_HYPHEN_RE.match(decoded):
        return True

    return not is_likely_word(decoded, dictionary)


def _split_tokens(segment: str) -> list[str] | None:
    """Split a kebab, snake, dotted or PascalCase segment into words.

    Returns None when the segment has no recognisable word boundaries.
    """
    if "-" in segment:
        return segment.split("-")
    if "_" in segment or "." in segment:
        return _UNDERSCORE_DOT_RE.split(segment)
    if _PASCAL_CASE_RE.match(segment):
        return _PASCAL_WORD_RE.findall(segment)
    return None
