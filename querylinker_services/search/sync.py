"""
Solution sync: pulls recently updated items from the live connectors into the
local solution store, so they are chunked, embedded and searchable offline.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Iterable, Mapping

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from querylinker_core.errors import ConfigurationMissing
from querylinker_core.models import Solution, SystemSyncState, utcnow
from querylinker_services.embeddings.embedder import Embedder
from querylinker_services.search.connectors import HttpConnector
from querylinker_services.search.solution_store import upsert_solution
from querylinker_services.search.systems import SYSTEMS

logger = logging.getLogger(__name__)

DEFAULT_SYNC_LIMIT = 50


@dataclass
class SyncReport:
    system: str
    status: str  # success | error
    fetched: int = 0
    indexed: int = 0
    unchanged: int = 0
    error: str | None = None


class SolutionSyncService:
    def __init__(self, connectors: Mapping[str, HttpConnector], session_factory: Callable[[], Session],
                 embedder: Embedder, limit: int = DEFAULT_SYNC_LIMIT):
        self.connectors = dict(connectors)
        self._session_factory = session_factory
        self.embedder = embedder
        self.limit = limit
        # one sync at a time; concurrent upserts of the same item would collide
        self._lock = threading.Lock()

    def resolve(self, system: str | None) -> list[str]:
        """Systems a trigger applies to; raises when no connector can serve it."""
        if system is None:
            if not self.connectors:
                raise ConfigurationMissing("No live connectors are configured")
            return list(self.connectors)
        if system not in self.connectors:
            raise ConfigurationMissing(f"No live connector configured for {system}")
        return [system]

    def sync_systems(self, systems: Iterable[str]) -> list[SyncReport]:
        return [self.sync_system(s) for s in systems]

    def sync_system(self, system: str) -> SyncReport:
        connector = self.connectors.get(system)
        if connector is None:
            raise ConfigurationMissing(f"No live connector configured for {system}")

        with self._lock:
            logger.info("Syncing %s (limit %d)", system, self.limit)
            try:
                report = self._pull(system, connector)
            except Exception as e:
                # recorded in the sync state; the next trigger retries
                logger.warning("Sync of %s failed", system, exc_info=True)
                report = SyncReport(system=system, status="error", error=str(e) or type(e).__name__)
            self._record(report)

        logger.info("Sync of %s finished: %s (%d fetched, %d indexed, %d unchanged)",
                    system, report.status, report.fetched, report.indexed, report.unchanged)
        return report

    def _pull(self, system: str, connector: HttpConnector) -> SyncReport:
        docs = connector.fetch_recent(self.limit)
        report = SyncReport(system=system, status="success", fetched=len(docs))
        with self._session_factory() as db:
            for doc in docs:
                _, _, unchanged = upsert_solution(
                    db, self.embedder,
                    system=system,
                    external_id=doc.external_id,
                    title=doc.title,
                    content=doc.content or doc.title,
                    url=doc.external_url,
                    author=doc.author,
                    tags=doc.tags,
                )
                if unchanged:
                    report.unchanged += 1
                else:
                    report.indexed += 1
            db.commit()
        return report

    def _record(self, report: SyncReport) -> None:
        with self._session_factory() as db:
            state = db.get(SystemSyncState, report.system)
            if state is None:
                state = SystemSyncState(system=report.system, total_synced=0)
                db.add(state)
            state.last_sync = utcnow()
            state.last_sync_status = report.status
            state.last_sync_error = report.error
            state.total_synced = (state.total_synced or 0) + report.indexed
            db.commit()

    def status(self, db: Session) -> list[dict]:
        """Sync state of every known system, including the ones never synced."""
        states = {s.system: s for s in db.scalars(select(SystemSyncState))}
        counts = dict(db.execute(
            select(Solution.system, func.count(Solution.id))
            .where(Solution.sync_status == "active")
            .group_by(Solution.system)
        ).all())
        out = []
        for key in SYSTEMS:
            state = states.get(key)
            out.append({
                "system": key,
                "has_connector": key in self.connectors,
                "last_sync": state.last_sync if state else None,
                "last_sync_status": state.last_sync_status if state else "never",
                "last_sync_error": state.last_sync_error if state else None,
                "total_synced": state.total_synced if state else 0,
                "solutions": counts.get(key, 0),
            })
        return out
