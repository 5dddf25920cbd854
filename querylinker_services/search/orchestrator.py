"""
Search orchestrator: fans one query out to per-system adapters, aggregates the
results and optionally ranks them by embedding similarity.
"""

from __future__ import annotations

import dataclasses
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Iterable, Mapping

import numpy as np
from sqlalchemy.orm import Session

from querylinker_core.config import Settings
from querylinker_core.errors import InvalidSearchRequest
from querylinker_services.embeddings.embedder import Embedder
from querylinker_services.embeddings.vectors import cosine_scores
from querylinker_services.search.adapters import SearchAdapter, SolutionStoreAdapter
from querylinker_services.search.connectors import build_connectors
from querylinker_services.search.solution_store import MIN_RELEVANCE_HASH, MIN_RELEVANCE_SEMANTIC
from querylinker_services.search.systems import SYSTEMS, normalize_system
from querylinker_services.search.types import SearchOutcome, SearchRequest, SearchResult

logger = logging.getLogger(__name__)


class SearchOrchestrator:
    def __init__(self, adapters: Mapping[str, SearchAdapter], embedder: Embedder, max_workers: int = 4):
        self.adapters = dict(adapters)
        self.embedder = embedder
        self.max_workers = max_workers

    @property
    def systems(self) -> list[str]:
        return list(self.adapters)

    def build_request(self, query: str, systems: Iterable[str] | None = None, max_results: int = 10,
                      use_semantic: bool = True) -> SearchRequest:
        query = (query or "").strip()
        if not query:
            raise InvalidSearchRequest("Search query is required")
        if max_results < 1:
            raise InvalidSearchRequest("maxResults must be at least 1")

        targets: list[str] = []
        for s in systems or []:
            key = normalize_system(s)
            if key not in self.adapters:
                raise InvalidSearchRequest(f"Unknown system '{s}'")
            if key not in targets:
                targets.append(key)
        return SearchRequest(
            query=query,
            target_systems=tuple(targets or self.systems),
            max_results=max_results,
            use_semantic_ranking=use_semantic,
        )

    def search(self, request: SearchRequest) -> SearchOutcome:
        t0 = time.perf_counter()

        query_vector = None
        if request.use_semantic_ranking:
            # EmbeddingProviderError propagates: a degraded ranking is not silently substituted
            query_vector = self.embedder.embed([request.query])[0]

        per_system, failed = self._fan_out(request, query_vector)
        results = [r for system in request.target_systems for r in per_system.get(system, [])]

        if query_vector is not None:
            results = self._rank(results, query_vector)

        return SearchOutcome(
            results=results[: request.max_results],
            total_found=len(results),
            search_keywords=request.query.split(),
            search_time_ms=int((time.perf_counter() - t0) * 1000),
            source="semantic" if request.use_semantic_ranking else "keyword",
            failed_systems=failed,
        )

    def _fan_out(self, request: SearchRequest,
                 query_vector: np.ndarray | None) -> tuple[dict[str, list[SearchResult]], list[str]]:
        systems = request.target_systems
        per_system: dict[str, list[SearchResult]] = {}
        failed: list[str] = []
        workers = max(1, min(self.max_workers, len(systems)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="search") as pool:
            futures = {s: pool.submit(self.adapters[s].search, request, query_vector) for s in systems}
            for system, fut in futures.items():
                try:
                    per_system[system] = list(fut.result())[: request.max_results]
                except Exception:
                    # one broken system must not fail the whole search
                    logger.warning("Search adapter %s failed", system, exc_info=True)
                    failed.append(system)
        return per_system, failed

    def _rank(self, results: list[SearchResult], query_vector: np.ndarray) -> list[SearchResult]:
        unscored = [i for i, r in enumerate(results) if r.score is None]
        if unscored:
            texts = [f"{results[i].title} {results[i].snippet}" for i in unscored]
            scores = cosine_scores(query_vector, self.embedder.embed(texts))
            for i, score in zip(unscored, scores):
                results[i] = dataclasses.replace(results[i], score=round(float(score), 4))
        # sorted() is stable, so equal scores keep adapter order
        return sorted(results, key=lambda r: r.score or 0.0, reverse=True)


def build_adapters(settings: Settings, session_factory: Callable[[], Session],
                   embedder: Embedder) -> dict[str, SearchAdapter]:
    """Live connector where configured, local solution store for everything else."""
    min_relevance = MIN_RELEVANCE_SEMANTIC if embedder.is_semantic else MIN_RELEVANCE_HASH
    connectors = build_connectors(settings)
    adapters: dict[str, SearchAdapter] = {}
    for key in SYSTEMS:
        adapters[key] = connectors.get(key) or SolutionStoreAdapter(key, session_factory, min_relevance)
    return adapters
