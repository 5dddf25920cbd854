"""
Local knowledge store: solutions synced from the connected systems, chunked and
embedded so they can be searched without calling the remote system.
"""

from __future__ import annotations

import logging

import numpy as np
from sqlalchemy import select, delete, or_
from sqlalchemy.orm import Session

from querylinker_core.models import Solution, SolutionChunk, utcnow
from querylinker_services.embeddings.embedder import Embedder
from querylinker_services.embeddings.vectors import cosine_scores, embedding_to_list
from querylinker_services.ingestion.chunker import chunk_text
from querylinker_services.ingestion.text_cleaning import content_sha1, keyword_tokens, normalize_text
from querylinker_services.search.types import SearchResult, make_snippet

logger = logging.getLogger(__name__)

VECTOR_CANDIDATE_CHUNKS = 60
KEYWORD_BOOST_PER_HIT = 0.02
KEYWORD_BOOST_CAP = 0.2
# hash vectors score lower than real embeddings for the same match
MIN_RELEVANCE_SEMANTIC = 0.6
MIN_RELEVANCE_HASH = 0.25


def upsert_solution(session: Session, embedder: Embedder, *, system: str, external_id: str, title: str,
                    content: str, url: str | None = None, author: str | None = None,
                    tags: list[str] | None = None) -> tuple[Solution, int, bool]:
    """
    Insert or update a solution and (re)index its chunks.

    Returns:
        (solution, num_chunks, unchanged) where unchanged means the content hash
        matched and embedding was skipped.
    """
    norm = normalize_text(content)
    h = content_sha1(f"{title}\n{norm}")
    sol = session.scalar(
        select(Solution).where(Solution.system == system, Solution.external_id == external_id)
    )
    if sol is not None and sol.content_hash == h and sol.chunks:
        return sol, len(sol.chunks), True

    if sol is None:
        sol = Solution(system=system, external_id=external_id)
        session.add(sol)
    sol.title = title
    sol.content = norm
    sol.snippet = make_snippet(norm)
    sol.external_url = url
    sol.author = author
    sol.tags = tags or []
    sol.sync_status = "active"
    sol.content_hash = h
    sol.updated_at = utcnow()
    session.flush()

    num_chunks = index_solution(session, embedder, sol)
    return sol, num_chunks, False


def index_solution(session: Session, embedder: Embedder, sol: Solution) -> int:
    session.execute(delete(SolutionChunk).where(SolutionChunk.solution_id == sol.id))
    chunks = chunk_text(f"{sol.title}. {sol.content}")
    if not chunks:
        return 0
    vecs = embedder.embed(chunks)
    for i, (text, vec) in enumerate(zip(chunks, vecs)):
        session.add(SolutionChunk(
            solution_id=sol.id, idx=i, text=text,
            embedding=embedding_to_list(vec), model=embedder.model_id,
        ))
    session.flush()
    session.expire(sol, ["chunks"])
    logger.info("Indexed %s/%s into %d chunks", sol.system, sol.external_id, len(chunks))
    return len(chunks)


def _to_result(sol: Solution, snippet: str | None = None, score: float | None = None) -> SearchResult:
    return SearchResult(
        system=sol.system,
        title=sol.title,
        id=sol.external_id,
        snippet=make_snippet(snippet or sol.snippet or sol.content),
        link=f"/solution/{sol.id}",
        score=score,
        external_url=sol.external_url,
        author=sol.author,
        created_date=sol.updated_at.isoformat() if sol.updated_at else None,
    )


def vector_search(session: Session, query_vector: np.ndarray, query: str, *, system: str,
                  limit: int, min_relevance: float) -> list[SearchResult]:
    """
    Best chunk per solution by cosine similarity.

    Keyword overlap boosts a solution when applying min_relevance and picking
    the top `limit`; the returned score is the plain cosine similarity so it
    ranks on the same scale as results from other systems.
    """
    rows = session.execute(
        select(SolutionChunk.solution_id, SolutionChunk.text, SolutionChunk.embedding)
        .join(Solution, Solution.id == SolutionChunk.solution_id)
        .where(Solution.system == system, Solution.sync_status == "active")
    ).all()
    dim = int(query_vector.shape[0])
    rows = [r for r in rows if r.embedding and len(r.embedding) == dim]
    if not rows:
        return []

    matrix = np.asarray([r.embedding for r in rows], dtype=np.float32)
    scores = cosine_scores(query_vector.astype(np.float32), matrix)
    order = np.argsort(-scores, kind="stable")[:VECTOR_CANDIDATE_CHUNKS]

    best: dict[int, tuple[float, str]] = {}
    for i in order:
        sid, text = rows[i].solution_id, rows[i].text
        if sid not in best or scores[i] > best[sid][0]:
            best[sid] = (float(scores[i]), text)

    solutions = session.scalars(select(Solution).where(Solution.id.in_(list(best)))).all()
    q_tokens = keyword_tokens(query)
    ranked: list[tuple[float, SearchResult]] = []
    for sol in solutions:
        score, chunk = best[sol.id]
        hay = f"{sol.title} {sol.snippet or ''} {sol.content}".lower()
        hits = sum(1 for t in q_tokens if t in hay)
        boosted = score + min(hits * KEYWORD_BOOST_PER_HIT, KEYWORD_BOOST_CAP)
        if boosted < min_relevance:
            continue
        ranked.append((boosted, _to_result(sol, snippet=chunk, score=round(score, 4))))

    ranked.sort(key=lambda pair: pair[0], reverse=True)
    return [r for _, r in ranked[:limit]]


def keyword_search(session: Session, query: str, *, system: str, limit: int) -> list[SearchResult]:
    tokens = keyword_tokens(query)
    if not tokens:
        return []
    clauses = []
    for t in tokens:
        like = f"%{t}%"
        clauses.extend([Solution.title.ilike(like), Solution.content.ilike(like)])
    stmt = (
        select(Solution)
        .where(Solution.system == system, Solution.sync_status == "active")
        .where(or_(*clauses))
        .order_by(Solution.updated_at.desc())
        .limit(limit)
    )
    return [_to_result(sol) for sol in session.scalars(stmt)]
