"""Tests for pulling connector items into the local solution store."""

import pytest
import requests

from querylinker_core.errors import ConfigurationMissing
from querylinker_core.models import Solution, SystemSyncState
from querylinker_services.search.adapters import SolutionStoreAdapter
from querylinker_services.search.sync import SolutionSyncService
from querylinker_services.search.types import SearchRequest

from tests.utils.fakes import JIRA_DOCS, StaticConnector


def test_sync_indexes_recent_items(sync_service, db_session):
    report = sync_service.sync_system("JIRA")

    assert report.status == "success"
    assert (report.fetched, report.indexed, report.unchanged) == (2, 2, 0)
    rows = db_session.query(Solution).filter_by(system="JIRA").order_by(Solution.external_id).all()
    assert [r.external_id for r in rows] == ["OPS-31", "OPS-32"]
    assert rows[0].external_url == "https://jira.example.test/browse/OPS-31"
    assert rows[0].tags == ["redis"]
    assert rows[0].chunks


def test_resync_skips_unchanged_items(sync_service, db_session):
    sync_service.sync_system("JIRA")
    report = sync_service.sync_system("JIRA")

    assert (report.indexed, report.unchanged) == (0, 2)
    state = db_session.get(SystemSyncState, "JIRA")
    assert state.last_sync_status == "success"
    assert state.total_synced == 2


def test_sync_limit_passed_to_connector(session_factory, embedder):
    jira = StaticConnector("JIRA", JIRA_DOCS)
    service = SolutionSyncService({"JIRA": jira}, session_factory, embedder, limit=1)
    report = service.sync_system("JIRA")

    assert jira.fetches == [1]
    assert report.indexed == 1


def test_failed_sync_is_recorded(session_factory, embedder, db_session):
    broken = StaticConnector("GITHUB", error=requests.ConnectionError("github unreachable"))
    service = SolutionSyncService({"GITHUB": broken}, session_factory, embedder)
    report = service.sync_system("GITHUB")

    assert report.status == "error"
    assert "unreachable" in report.error
    state = db_session.get(SystemSyncState, "GITHUB")
    assert state.last_sync_status == "error"
    assert state.last_sync_error == report.error
    assert db_session.query(Solution).count() == 0


def test_resolve_targets(sync_service, session_factory, embedder):
    assert sync_service.resolve(None) == ["JIRA"]
    assert sync_service.resolve("JIRA") == ["JIRA"]
    with pytest.raises(ConfigurationMissing):
        sync_service.resolve("SLACK")
    with pytest.raises(ConfigurationMissing):
        SolutionSyncService({}, session_factory, embedder).resolve(None)


def test_status_lists_every_system(sync_service, db_session):
    sync_service.sync_system("JIRA")
    status = {s["system"]: s for s in sync_service.status(db_session)}

    assert set(status) == {"JIRA", "CONFLUENCE", "GITHUB", "SN_KB", "SLACK"}
    assert status["JIRA"]["has_connector"] is True
    assert status["JIRA"]["last_sync_status"] == "success"
    assert status["JIRA"]["solutions"] == 2
    assert status["SLACK"]["last_sync_status"] == "never"
    assert status["SLACK"]["has_connector"] is False


def test_synced_items_are_searchable_offline(sync_service, session_factory, embedder):
    sync_service.sync_system("JIRA")
    adapter = SolutionStoreAdapter("JIRA", session_factory, min_relevance=0.0)
    results = adapter.search(SearchRequest(query="tls handshake", target_systems=("JIRA",)), None)

    assert [r.id for r in results] == ["OPS-32"]
