#!/usr/bin/env python3
"""
Pull recently updated items from the configured connectors into the knowledge store.

Suitable for a cron job; the API's trigger-sync endpoint runs the same sync.

Example:
    python -m querylinker_cli.sync_solutions
    python -m querylinker_cli.sync_solutions --system JIRA --limit 200
"""

from __future__ import annotations

import argparse
import sys

from querylinker_core.config import settings
from querylinker_core.db import Base, SessionLocal, engine
from querylinker_core.errors import ConfigurationMissing
from querylinker_core.logging_utils import setup_logging
from querylinker_services.embeddings.embedder import build_embedder
from querylinker_services.search.connectors import build_connectors
from querylinker_services.search.sync import DEFAULT_SYNC_LIMIT, SolutionSyncService
from querylinker_services.search.systems import normalize_system


def main() -> None:
    parser = argparse.ArgumentParser(description="Sync solutions from the connected systems.")
    parser.add_argument("--system", help="Only this system (default: every configured connector).")
    parser.add_argument("--limit", type=int, default=DEFAULT_SYNC_LIMIT, help="Items to pull per system.")
    args = parser.parse_args()

    setup_logging()
    Base.metadata.create_all(bind=engine)
    service = SolutionSyncService(build_connectors(settings), SessionLocal, build_embedder(settings), limit=args.limit)

    try:
        targets = service.resolve(normalize_system(args.system) if args.system else None)
    except ConfigurationMissing as e:
        sys.exit(str(e))

    failed = 0
    for report in service.sync_systems(targets):
        if report.status == "success":
            print(f"{report.system}: {report.fetched} fetched, {report.indexed} indexed, {report.unchanged} unchanged")
        else:
            failed += 1
            print(f"{report.system}: sync failed: {report.error}")
    if failed:
        sys.exit(1)


if __name__ == "__main__":
    main()
