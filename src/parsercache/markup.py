"""HTML preprocessing for parser generation prompts.

Raw pages are far larger than a generation prompt can afford. This module
reduces a page to a structural summary plus a compact HTML sample of its main
content region:

  1. Drop non-content elements (script, style, nav, header, footer, …) and comments
  2. Summarise: title, first h1–h3 headings, element counts, main text excerpt
  3. Pick the main content region (``<main>``, ``<article>``, ``#content``, …)
  4. Collapse whitespace; if still too long, strip all but one identifying
     attribute per tag; truncate

Parsing uses BeautifulSoup with the stdlib ``html.parser`` backend, which
repairs unclosed tags instead of rejecting the page.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from bs4 import BeautifulSoup, Comment, Tag

MAX_SAMPLE_HTML_LENGTH = 3000
MAX_HEADINGS = 10
MAX_MAIN_TEXT_LENGTH = 500

NOISE_TAGS = ("script", "style", "noscript", "iframe", "embed", "object", "nav", "header", "footer")
HEADING_TAGS = ("h1", "h2", "h3")

# Main content candidates, most specific first.
MAIN_CONTENT_SELECTORS = (
    "main",
    "article",
    ".content",
    ".post",
    ".entry",
    "#content",
    "#main",
    ".main-content",
    "[role=main]",
)

# Attributes that tend to identify an element, in no particular order; scored below.
_IDENTIFYING_ATTRIBUTES = (
    "name",
    "data-name",
    "data-id",
    "data-value",
    "data-label",
    "data-cy",
    "data-test",
    "data-qa",
    "data-automation",
    "aria-label",
    "aria-labelledby",
    "for",
    "type",
    "value",
)

_WHITESPACE_RE = re.compile(r"\s+")
_BETWEEN_TAGS_RE = re.compile(r">\s+<")


@dataclass
class PageStructure:
    title: str = ""
    headings: list[str] = field(default_factory=list)
    main_content: str = ""
    forms: int = 0
    links: int = 0
    images: int = 0


@dataclass
class PreparedMarkup:
    structure: PageStructure
    sample_html: str


def parse_markup(markup: str) -> BeautifulSoup:
    return BeautifulSoup(markup, "html.parser")


def prepare_markup(markup: str, max_chars: int = MAX_SAMPLE_HTML_LENGTH) -> PreparedMarkup:
    """Reduce a raw HTML page to a structure summary and a compact sample."""
    soup = parse_markup(markup)
    strip_noise(soup)
    region = main_content_region(soup)

    structure = PageStructure(
        title=_text(soup.title) if soup.title is not None else "",
        headings=[_text(heading) for heading in soup.find_all(HEADING_TAGS, limit=MAX_HEADINGS)],
        main_content=_text(region)[:MAX_MAIN_TEXT_LENGTH],
        forms=len(soup.find_all("form")),
        links=len(soup.find_all("a", href=True)),
        images=len(soup.find_all("img", src=True)),
    )

    sample = collapse_whitespace(str(region))
    if len(sample) > max_chars:
        reduce_attributes(region)
        sample = collapse_whitespace(str(region))

    return PreparedMarkup(structure=structure, sample_html=sample[:max_chars])


def strip_noise(soup: BeautifulSoup) -> None:
    """Remove comments and non-content elements in place."""
    for element in soup.find_all(NOISE_TAGS):
        element.decompose()
    for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
        comment.extract()


def collapse_whitespace(markup: str) -> str:
    collapsed = _WHITESPACE_RE.sub(" ", markup)
    return _BETWEEN_TAGS_RE.sub("><", collapsed).strip()


def main_content_region(soup: BeautifulSoup) -> Tag:
    """Return the first main-content candidate, else ``<body>``, else the whole document."""
    for selector in MAIN_CONTENT_SELECTORS:
        region = soup.select_one(selector)
        if region is not None:
            return region
    return soup.body if soup.body is not None else soup


def reduce_attributes(element: Tag) -> None:
    """Keep at most one identifying attribute on *element* and its descendants.

    Preference: ``id``, then ``data-test-id``, then the most specific class,
    then the best scoring of ``_IDENTIFYING_ATTRIBUTES``.
    """
    for tag in [element, *element.find_all(True)]:
        attributes = {
            name.lower(): " ".join(value) if isinstance(value, list) else str(value)
            for name, value in tag.attrs.items()
        }
        kept = _pick_attribute(attributes)
        tag.attrs = {} if kept is None else {kept[0]: kept[1]}


def _pick_attribute(attributes: dict[str, str]) -> tuple[str, str] | None:
    if not attributes:
        return None
    if attributes.get("id"):
        return "id", attributes["id"]
    if attributes.get("data-test-id"):
        return "data-test-id", attributes["data-test-id"]

    classes = attributes.get("class", "").split()
    if classes:
        best = classes[0]
        for candidate in classes[1:]:
            if len(candidate) > len(best) or (
                len(candidate) == len(best) and "-" in candidate and "-" not in best
            ):
                best = candidate
        return "class", best

    best_attribute: tuple[str, str] | None = None
    best_score = 0
    for name in _IDENTIFYING_ATTRIBUTES:
        value = attributes.get(name)
        if not value:
            continue
        score = len(value)
        if name.startswith("data-"):
            score += 10
        if "test" in name or "cy" in name or "qa" in name:
            score += 5
        if "-" in value or "_" in value:
            score += 3
        if score > best_score:
            best_score = score
            best_attribute = (name, value)
    return best_attribute


def _text(element: Tag) -> str:
    return _WHITESPACE_RE.sub(" ", element.get_text(" ", strip=True)).strip()
