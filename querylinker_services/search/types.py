from __future__ import annotations

from dataclasses import dataclass, field

SNIPPET_CHARS = 280


@dataclass(frozen=True)
class SearchRequest:
    """One search submission. Built per request and discarded after the response."""
    query: str
    target_systems: tuple[str, ...]
    max_results: int = 10
    use_semantic_ranking: bool = True


@dataclass(frozen=True)
class SearchResult:
    system: str
    title: str
    id: str
    snippet: str
    link: str
    score: float | None = None
    external_url: str | None = None
    author: str | None = None
    created_date: str | None = None


@dataclass
class SearchOutcome:
    results: list[SearchResult]
    total_found: int
    search_keywords: list[str]
    search_time_ms: int
    source: str
    failed_systems: list[str] = field(default_factory=list)


def make_snippet(text: str | None, limit: int = SNIPPET_CHARS) -> str:
    text = " ".join((text or "").split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "…"
