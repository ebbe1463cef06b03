"""Word-likelihood dictionaries for URL segment classification.

The classifier only asks one question: "is this token a known word?".
``SpellCheckerDictionary`` answers it from pyspellchecker's English frequency
list; ``WordListDictionary`` answers it from a fixed set and is what tests and
custom deployments inject.
"""

from __future__ import annotations

from collections.abc import Iterable
from functools import lru_cache

from spellchecker import SpellChecker

# Terms that show up constantly in URL paths but are missing from general
# purpose English word lists.
WEB_VOCABULARY: frozenset[str] = frozenset(
    {
        "api",
        "app",
        "apps",
        "auth",
        "blog",
        "blogs",
        "cart",
        "checkout",
        "config",
        "docs",
        "faq",
        "faqs",
        "feed",
        "feeds",
        "homepage",
        "html",
        "json",
        "login",
        "logout",
        "oauth",
        "rss",
        "signin",
        "signup",
        "sitemap",
        "tag",
        "tags",
        "username",
        "webhook",
        "webhooks",
        "wiki",
        "www",
    }
)


class WordListDictionary:
    """Dictionary backed by a static word list."""

    def __init__(self, words: Iterable[str]) -> None:
        self._words = frozenset(word.lower() for word in words)

    def is_known_word(self, token: str) -> bool:
        return token.lower() in self._words


class SpellCheckerDictionary:
    """Dictionary backed by pyspellchecker plus ``WEB_VOCABULARY``."""

    def __init__(self, language: str = "en", extra_words: Iterable[str] = WEB_VOCABULARY) -> None:
        self._spell = SpellChecker(language=language)
        self._extra = frozenset(word.lower() for word in extra_words)

    def is_known_word(self, token: str) -> bool:
        lowered = token.lower()
        if not lowered:
            return False
        return lowered in self._extra or lowered in self._spell


@lru_cache(maxsize=1)
def default_dictionary() -> SpellCheckerDictionary:
    """Return the process-wide default dictionary, loading it on first use."""
    return SpellCheckerDictionary()
