from __future__ import annotations

from typing import Callable

import numpy as np
from sqlalchemy.orm import Session

from querylinker_services.search import solution_store
from querylinker_services.search.types import SearchRequest, SearchResult


class SearchAdapter:
    """Searches one connected system. Implementations may raise; the orchestrator isolates failures."""

    system: str = ""

    def search(self, request: SearchRequest, query_vector: np.ndarray | None = None) -> list[SearchResult]:
        raise NotImplementedError


class SolutionStoreAdapter(SearchAdapter):
    """Searches the locally synced solutions of one system."""

    def __init__(self, system: str, session_factory: Callable[[], Session], min_relevance: float):
        self.system = system
        self._session_factory = session_factory
        self._min_relevance = min_relevance

    def search(self, request: SearchRequest, query_vector: np.ndarray | None = None) -> list[SearchResult]:
        # one session per call: adapters run on worker threads
        with self._session_factory() as db:
            if query_vector is not None:
                hits = solution_store.vector_search(
                    db, query_vector, request.query,
                    system=self.system, limit=request.max_results, min_relevance=self._min_relevance,
                )
                if hits:
                    return hits
            # vectors not indexed yet (or nothing relevant): plain keyword match
            return solution_store.keyword_search(db, request.query, system=self.system, limit=request.max_results)
