"""Tests for the local knowledge store and its search adapter."""

import numpy as np

from querylinker_core.models import Solution, SolutionChunk
from querylinker_services.search.adapters import SolutionStoreAdapter
from querylinker_services.search.solution_store import keyword_search, upsert_solution, vector_search
from querylinker_services.search.types import SearchRequest

DB_TIMEOUT = dict(
    system="JIRA",
    external_id="OPS-1",
    title="Database connection timeout",
    content="Checkout requests fail with a connection timeout. Increase the pool size and restart the service.",
    url="https://jira.example.com/browse/OPS-1",
    author="dana",
    tags=["db", "timeout"],
)

VPN_DROPS = dict(
    system="JIRA",
    external_id="OPS-2",
    title="VPN drops every hour",
    content="Users lose VPN connectivity hourly. Renew the gateway certificate.",
)


def test_upsert_indexes_chunks(db_session, embedder):
    sol, num_chunks, unchanged = upsert_solution(db_session, embedder, **DB_TIMEOUT)
    db_session.commit()

    assert unchanged is False
    assert num_chunks >= 1
    chunks = db_session.query(SolutionChunk).filter_by(solution_id=sol.id).all()
    assert len(chunks) == num_chunks
    assert all(len(c.embedding) == 256 for c in chunks)
    assert all(c.model == "hash-256" for c in chunks)
    assert sol.snippet.startswith("Checkout requests fail")


def test_upsert_unchanged_content_skips_reindex(db_session, embedder):
    sol, _, _ = upsert_solution(db_session, embedder, **DB_TIMEOUT)
    db_session.commit()
    again, num_chunks, unchanged = upsert_solution(db_session, embedder, **DB_TIMEOUT)

    assert unchanged is True
    assert again.id == sol.id
    assert num_chunks >= 1


def test_upsert_changed_content_reindexes(db_session, embedder):
    sol, _, _ = upsert_solution(db_session, embedder, **DB_TIMEOUT)
    db_session.commit()
    changed = dict(DB_TIMEOUT, content="Rotate the database credentials.")
    again, _, unchanged = upsert_solution(db_session, embedder, **changed)
    db_session.commit()

    assert unchanged is False
    assert again.id == sol.id
    assert db_session.query(Solution).count() == 1
    texts = [c.text for c in db_session.query(SolutionChunk).filter_by(solution_id=sol.id)]
    assert any("Rotate the database credentials." in t for t in texts)
    assert not any("pool size" in t for t in texts)


def test_vector_search_exact_match_ranks_first(db_session, embedder):
    upsert_solution(db_session, embedder, **DB_TIMEOUT)
    upsert_solution(db_session, embedder, **VPN_DROPS)
    db_session.commit()

    query = f"{VPN_DROPS['title']}. {VPN_DROPS['content']}"
    qvec = embedder.embed([query])[0]
    results = vector_search(db_session, qvec, query, system="JIRA", limit=5, min_relevance=0.0)

    assert results[0].id == "OPS-2"
    # plain cosine similarity, the keyword boost is not added to the score
    assert 0.99 < results[0].score <= 1.0001
    assert results[0].link.startswith("/solution/")


def test_vector_search_skips_other_dimensions(db_session, embedder):
    upsert_solution(db_session, embedder, **DB_TIMEOUT)
    db_session.commit()
    qvec = np.ones(8, dtype=np.float32)
    assert vector_search(db_session, qvec, "timeout", system="JIRA", limit=5, min_relevance=0.0) == []


def test_keyword_search(db_session, embedder):
    upsert_solution(db_session, embedder, **DB_TIMEOUT)
    upsert_solution(db_session, embedder, **VPN_DROPS)
    db_session.commit()

    results = keyword_search(db_session, "gateway certificate", system="JIRA", limit=5)
    assert [r.id for r in results] == ["OPS-2"]
    assert keyword_search(db_session, "gateway", system="GITHUB", limit=5) == []


def test_adapter_falls_back_to_keyword_search(session_factory, embedder):
    with session_factory() as db:
        upsert_solution(db, embedder, **DB_TIMEOUT)
        db.commit()

    # nothing can clear this threshold, so the adapter must use keyword matching
    adapter = SolutionStoreAdapter("JIRA", session_factory, min_relevance=5.0)
    req = SearchRequest(query="pool size", target_systems=("JIRA",))
    results = adapter.search(req, embedder.embed(["pool size"])[0])

    assert [r.id for r in results] == ["OPS-1"]
    assert results[0].score is None
    assert results[0].external_url == "https://jira.example.com/browse/OPS-1"
