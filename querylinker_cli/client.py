"""
HTTP client for the enhanced-search endpoint.

One request per call: no retries, no caching, no pagination.
"""

from __future__ import annotations

from typing import Sequence

import requests

from querylinker_services.search.types import SearchResult

RESULT_FIELDS = ("system", "title", "id", "snippet", "link", "score", "external_url", "author", "created_date")


class QueryLinkerClient:
    def __init__(self, base_url: str = "http://localhost:8000", timeout: float = 15.0,
                 session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()

    def enhanced_search(self, query: str, systems: Sequence[str] = (), max_results: int = 10,
                        use_semantic: bool = True) -> list[SearchResult]:
        r = self.http.post(
            f"{self.base_url}/api/querylinker/enhanced-search",
            json={
                "query": query,
                "systems": list(systems),
                "maxResults": max_results,
                "use_semantic": use_semantic,
            },
            timeout=self.timeout,
        )
        r.raise_for_status()
        return [
            SearchResult(**{k: item.get(k) for k in RESULT_FIELDS})
            for item in r.json().get("suggestions", [])
        ]
