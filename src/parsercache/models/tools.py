from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from parsercache.models.analysis import DomainAnalysis

# ---------------------------------------------------------------------------
# get_parser
# ---------------------------------------------------------------------------


class GetParserInput(BaseModel):
    url: str = Field(max_length=2048)
    html: str
    force_regenerate: bool = False

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("url must not be empty")
        return v

    @field_validator("html")
    @classmethod
    def validate_html(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("html must not be empty")
        return v


class GetParserOutput(BaseModel):
    url_pattern: str
    parser: str
    created_at: datetime
    cached: bool


# ---------------------------------------------------------------------------
# list_parsers / delete_parser
# ---------------------------------------------------------------------------


class ListParsersInput(BaseModel):
    limit: int = Field(default=10, ge=1)


class ParserSummary(BaseModel):
    url_pattern: str
    created_at: datetime


class ListParsersOutput(BaseModel):
    total: int
    parsers: list[ParserSummary]


class DeleteParserInput(BaseModel):
    url_pattern: str = Field(min_length=1, max_length=2048)


class DeleteParserOutput(BaseModel):
    deleted: bool
    url_pattern: str


# ---------------------------------------------------------------------------
# analyze_url_patterns
# ---------------------------------------------------------------------------


class AnalyzeUrlPatternsInput(BaseModel):
    urls: list[str] = Field(min_length=1, max_length=10_000)


class AnalyzeUrlPatternsOutput(BaseModel):
    total_urls: int
    domains: list[DomainAnalysis]
