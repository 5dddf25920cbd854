"""
Search across connected systems.

This module provides:
- Search request/result types
- Per-system adapters (live REST connectors and the local solution store)
- The orchestrator that fans out, aggregates and ranks
"""

from querylinker_services.search.types import SearchRequest, SearchResult, SearchOutcome
from querylinker_services.search.adapters import SearchAdapter, SolutionStoreAdapter
from querylinker_services.search.orchestrator import SearchOrchestrator, build_adapters

__all__ = [
    "SearchRequest",
    "SearchResult",
    "SearchOutcome",
    "SearchAdapter",
    "SolutionStoreAdapter",
    "SearchOrchestrator",
    "build_adapters",
]
