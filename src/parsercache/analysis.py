"""URL pattern analysis.

Groups a batch of URLs by hostname and reports how ``build_pattern`` buckets
them, so classifier behaviour can be checked against real crawl data before
parsers are generated for a site. Pure business logic, no I/O.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from urllib.parse import urlsplit

from parsercache.models.analysis import DomainAnalysis, PatternQuality, PatternStats
from parsercache.patterns import ascii_hostname, build_pattern, normalise_url

if TYPE_CHECKING:
    from collections.abc import Iterable

    from parsercache.protocols import DictionaryProtocol

MIN_PATTERNS_PER_DOMAIN = 2
MAX_PATTERNS_PER_DOMAIN = 10
MAX_SAMPLE_URLS = 3


@dataclass
class _DomainBucket:
    urls: list[str] = field(default_factory=list)
    patterns: Counter[str] = field(default_factory=Counter)
    samples: dict[str, list[str]] = field(default_factory=dict)


def extract_domain(url: str) -> str:
    """Return the hostname of *url*, or ``"unknown"`` if it has none."""
    try:
        hostname = urlsplit(normalise_url(url)).hostname
        if hostname:
            hostname = ascii_hostname(hostname)
    except ValueError:
        hostname = None
    if hostname:
        return hostname
    head = url.split("/")[0]
    return head if "." in head else "unknown"


def assess_quality(pattern_count: int, total_urls: int) -> PatternQuality:
    """Flag domains whose URLs collapse into too few or too many patterns."""
    is_too_generic = pattern_count < MIN_PATTERNS_PER_DOMAIN and total_urls > 1
    is_too_specific = pattern_count > MAX_PATTERNS_PER_DOMAIN

    if is_too_generic:
        recommendation = (
            f"Too few patterns ({pattern_count}). Consider making patterns more specific "
            "to capture different URL structures."
        )
    elif is_too_specific:
        recommendation = (
            f"Too many patterns ({pattern_count}). Consider making patterns more generic "
            "to group similar URLs together."
        )
    else:
        recommendation = f"Good pattern balance ({pattern_count} patterns for {total_urls} URLs)."

    return PatternQuality(
        is_too_generic=is_too_generic,
        is_too_specific=is_too_specific,
        recommendation=recommendation,
    )


def analyze_urls(
    urls: Iterable[str],
    *,
    dictionary: DictionaryProtocol | None = None,
) -> list[DomainAnalysis]:
    """Analyse how *urls* map onto patterns, one report per hostname.

    Blank entries are skipped. Domains are ordered by URL count and patterns
    within a domain by frequency, both descending.
    """
    buckets: dict[str, _DomainBucket] = {}

    for raw in urls:
        url = raw.strip()
        if not url:
            continue
        pattern = build_pattern(url, dictionary=dictionary)
        bucket = buckets.setdefault(extract_domain(url), _DomainBucket())
        bucket.urls.append(url)
        bucket.patterns[pattern] += 1
        samples = bucket.samples.setdefault(pattern, [])
        if len(samples) < MAX_SAMPLE_URLS:
            samples.append(url)

    analyses: list[DomainAnalysis] = []
    for domain, bucket in buckets.items():
        total = len(bucket.urls)
        patterns = [
            PatternStats(
                pattern=pattern,
                count=count,
                percentage=count / total * 100,
                sample_urls=bucket.samples[pattern],
            )
            for pattern, count in bucket.patterns.most_common()
        ]
        analyses.append(
            DomainAnalysis(
                domain=domain,
                total_urls=total,
                unique_patterns=len(patterns),
                patterns=patterns,
                differences=_describe_differences([p.pattern for p in patterns]),
                quality=assess_quality(len(patterns), total),
            )
        )

    analyses.sort(key=lambda analysis: analysis.total_urls, reverse=True)
    return analyses


def _describe_differences(patterns: list[str]) -> list[str]:
    # Pairwise, so only the most frequent patterns are compared.
    top = patterns[:MAX_PATTERNS_PER_DOMAIN]
    lines: list[str] = []
    for i, first in enumerate(top):
        for second in top[i + 1 :]:
            diff = pattern_differences(first, second)
            if diff:
                lines.append(f"{first} vs {second}: {', '.join(diff)}")
    return lines


def pattern_differences(first: str, second: str) -> list[str]:
    """Describe segment-level differences between two patterns."""
    left = first.split("/")
    right = second.split("/")
    differences: list[str] = []

    if len(left) != len(right):
        differences.append(f"segment count {len(left)} vs {len(right)}")

    for index, (a, b) in enumerate(zip(left, right, strict=False)):
        if a != b:
            differences.append(f"segment {index}: {a!r} vs {b!r}")

    return differences
