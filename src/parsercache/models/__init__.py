from __future__ import annotations

from parsercache.models.analysis import DomainAnalysis, PatternQuality, PatternStats
from parsercache.models.cache import CacheEntry, ResolveResult
from parsercache.models.tools import (
    AnalyzeUrlPatternsInput,
    AnalyzeUrlPatternsOutput,
    DeleteParserInput,
    DeleteParserOutput,
    GetParserInput,
    GetParserOutput,
    ListParsersInput,
    ListParsersOutput,
    ParserSummary,
)

__all__ = [
    # cache
    "CacheEntry",
    "ResolveResult",
    # analysis
    "DomainAnalysis",
    "PatternQuality",
    "PatternStats",
    # tools
    "GetParserInput",
    "GetParserOutput",
    "ListParsersInput",
    "ListParsersOutput",
    "ParserSummary",
    "DeleteParserInput",
    "DeleteParserOutput",
    "AnalyzeUrlPatternsInput",
    "AnalyzeUrlPatternsOutput",
]
