from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class CacheEntry(BaseModel):
    """A generated parser persisted under its URL pattern."""

    model_config = ConfigDict(frozen=True)

    key: str  # URL pattern, e.g. "example.com/users/{id}"
    payload: str  # Generated parser routine, opaque to this package
    created_at: datetime


class ResolveResult(BaseModel):
    """Outcome of resolving a (url, markup) pair to a parser."""

    url_pattern: str
    payload: str
    created_at: datetime
    cache_hit: bool
