from __future__ import annotations

from pydantic import BaseModel


class PatternStats(BaseModel):
    """One URL pattern observed on a domain."""

    pattern: str
    count: int
    percentage: float  # 0.0–100.0 of the domain's URLs
    sample_urls: list[str]


class PatternQuality(BaseModel):
    is_too_generic: bool
    is_too_specific: bool
    recommendation: str


class DomainAnalysis(BaseModel):
    """Pattern breakdown for a single hostname."""

    domain: str
    total_urls: int
    unique_patterns: int
    patterns: list[PatternStats]
    differences: list[str] = []  # "<a> vs <b>: <diffs>" for pattern pairs
    quality: PatternQuality
