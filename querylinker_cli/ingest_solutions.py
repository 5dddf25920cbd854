#!/usr/bin/env python3
"""
Load solutions into the local knowledge store from a JSON-lines file.

Each line is an object with: system, external_id, title, content, and
optionally url, author, tags.

Example:
    python -m querylinker_cli.ingest_solutions solutions.jsonl
    python -m querylinker_cli.ingest_solutions - < export.jsonl
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Iterator, TextIO

from querylinker_core.config import settings
from querylinker_core.db import Base, SessionLocal, engine
from querylinker_core.logging_utils import setup_logging
from querylinker_services.embeddings.embedder import build_embedder
from querylinker_services.search.solution_store import upsert_solution
from querylinker_services.search.systems import SYSTEMS, normalize_system

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("system", "external_id", "title", "content")


def read_records(stream: TextIO) -> Iterator[tuple[int, dict]]:
    for lineno, line in enumerate(stream, 1):
        line = line.strip()
        if not line:
            continue
        try:
            yield lineno, json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning("Line %d: invalid JSON (%s), skipped", lineno, e)


def main() -> None:
    parser = argparse.ArgumentParser(description="Ingest solutions (JSON lines) into the knowledge store.")
    parser.add_argument("path", help="JSON-lines file, or '-' for stdin.")
    parser.add_argument("--commit-every", type=int, default=50, help="Commit after this many records.")
    args = parser.parse_args()

    setup_logging()
    Base.metadata.create_all(bind=engine)
    embedder = build_embedder(settings)

    stream = sys.stdin if args.path == "-" else open(args.path, encoding="utf-8")
    indexed = unchanged = skipped = 0
    db = SessionLocal()
    try:
        for n, (lineno, rec) in enumerate(read_records(stream), 1):
            missing = [f for f in REQUIRED_FIELDS if not rec.get(f)]
            system = normalize_system(rec.get("system", ""))
            if missing or system not in SYSTEMS:
                logger.warning("Line %d: missing %s or unknown system %r, skipped", lineno, missing, rec.get("system"))
                skipped += 1
                continue

            sol, num_chunks, same = upsert_solution(
                db, embedder,
                system=system,
                external_id=str(rec["external_id"]),
                title=rec["title"],
                content=rec["content"],
                url=rec.get("url"),
                author=rec.get("author"),
                tags=rec.get("tags"),
            )
            if same:
                unchanged += 1
            else:
                indexed += 1
                logger.debug("Line %d: %s/%s -> %d chunks", lineno, system, sol.external_id, num_chunks)
            if n % args.commit_every == 0:
                db.commit()
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
        if stream is not sys.stdin:
            stream.close()

    print(f"Ingested: {indexed} indexed, {unchanged} unchanged, {skipped} skipped")


if __name__ == "__main__":
    main()
