"""Tests for the live REST connectors, using a fake requests session."""

import pytest
import requests

from querylinker_core.config import Settings
from querylinker_core.errors import ConfigurationMissing
from querylinker_services.search.connectors import (
    ConfluenceConnector,
    GitHubConnector,
    JiraConnector,
    ServiceNowKBConnector,
    build_connectors,
)
from querylinker_services.search.types import SearchRequest


class FakeResponse:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


class FakeSession:
    def __init__(self, payload, status=200):
        self.response = FakeResponse(payload, status)
        self.calls = []

    def get(self, url, params=None, timeout=None, **kwargs):
        self.calls.append({"url": url, "params": params, "timeout": timeout, **kwargs})
        return self.response


def request(query="db timeout", max_results=5):
    return SearchRequest(query=query, target_systems=("JIRA",), max_results=max_results)


def test_jira_search():
    http = FakeSession({"issues": [{
        "key": "OPS-12",
        "fields": {
            "summary": "Database timeout in checkout",
            "description": "Pool exhausted under load",
            "created": "2024-05-01T10:00:00.000+0000",
            "reporter": {"displayName": "Dana"},
        },
    }]})
    conn = JiraConnector("https://jira.example.com/", "bot", "key", session=http, timeout=3)
    results = conn.search(request('db "timeout"'))

    call = http.calls[0]
    assert call["url"] == "https://jira.example.com/rest/api/2/search"
    assert call["params"]["jql"] == 'text ~ "db \\"timeout\\""'
    assert call["auth"] == ("bot", "key")
    assert call["timeout"] == 3

    assert len(results) == 1
    r = results[0]
    assert r.system == "JIRA"
    assert r.id == "OPS-12"
    assert r.title == "Database timeout in checkout"
    assert r.external_url == "https://jira.example.com/browse/OPS-12"
    assert r.author == "Dana"
    assert r.score is None


def test_confluence_search_strips_markup():
    http = FakeSession({"results": [{
        "id": 991,
        "title": "Runbook: DB failover",
        "excerpt": "<b>Step 1</b> promote the replica",
        "_links": {"webui": "/spaces/OPS/pages/991"},
        "version": {"by": {"displayName": "Lee"}, "when": "2024-01-02"},
    }]})
    conn = ConfluenceConnector("https://wiki.example.com", "bot", "key", session=http)
    results = conn.search(request())

    assert "cql" in http.calls[0]["params"]
    assert results[0].snippet == "Step 1 promote the replica"
    assert results[0].external_url == "https://wiki.example.com/spaces/OPS/pages/991"


def test_github_search_scopes_repo():
    http = FakeSession({"items": [{
        "number": 7,
        "title": "Timeout when DB is cold",
        "body": "Add warmup",
        "html_url": "https://github.com/acme/app/issues/7",
        "user": {"login": "octo"},
        "created_at": "2024-02-03T00:00:00Z",
    }]})
    conn = GitHubConnector("ghp_token", repo="acme/app", session=http)
    results = conn.search(request())

    assert http.calls[0]["params"]["q"] == "db timeout repo:acme/app"
    assert http.calls[0]["headers"]["Authorization"] == "token ghp_token"
    assert results[0].id == "ISSUE-7"
    assert results[0].author == "octo"


def test_servicenow_search():
    http = FakeSession({"result": [{
        "sys_id": "abc123",
        "short_description": "Reset VPN token",
        "text": "<p>Open the portal</p>",
        "sys_created_by": "admin",
        "sys_created_on": "2024-03-04 10:00:00",
    }]})
    conn = ServiceNowKBConnector("https://acme.service-now.com", "bot", "key", session=http)
    results = conn.search(request("vpn^token"))

    assert http.calls[0]["url"].endswith("/api/now/table/kb_knowledge")
    assert "^" not in http.calls[0]["params"]["sysparm_query"].replace("^OR", "")
    assert results[0].snippet == "Open the portal"
    assert results[0].external_url == "https://acme.service-now.com/kb_view.do?sysparm_article=abc123"


def test_http_error_propagates():
    conn = JiraConnector("https://jira.example.com", "bot", "key", session=FakeSession({}, status=401))
    with pytest.raises(requests.HTTPError):
        conn.search(request())


def test_results_capped_to_max_results():
    http = FakeSession({"items": [
        {"number": i, "title": f"issue {i}", "body": "", "html_url": None, "user": None}
        for i in range(10)
    ]})
    conn = GitHubConnector("t", session=http)
    assert len(conn.search(request(max_results=4))) == 4


def test_build_connectors_only_when_configured():
    settings = Settings(
        _env_file=None,
        JIRA_BASE_URL="https://jira.example.com", JIRA_USERNAME="bot", JIRA_API_KEY="key",
        CONFLUENCE_BASE_URL="https://wiki.example.com",  # incomplete: no credentials
        GITHUB_TOKEN="ghp_token",
    )
    connectors = build_connectors(settings, session=FakeSession({}))
    assert sorted(connectors) == ["GITHUB", "JIRA"]


def test_jira_fetch_recent_keeps_full_description():
    description = "Pool exhausted under load. " * 30
    http = FakeSession({"issues": [{
        "key": "OPS-12",
        "fields": {"summary": "Database timeout", "description": description, "labels": ["db"]},
    }]})
    conn = JiraConnector("https://jira.example.com", "bot", "key", session=http)
    docs = conn.fetch_recent(25)

    assert http.calls[0]["params"]["jql"] == "order by updated DESC"
    assert http.calls[0]["params"]["maxResults"] == 25
    assert docs[0].content == description
    assert docs[0].tags == ["db"]
    # search results only carry a snippet of the same text
    assert len(conn.search(request())[0].snippet) < len(description)


def test_confluence_fetch_recent_uses_page_body():
    http = FakeSession({"results": [{
        "id": 5,
        "title": "Runbook",
        "excerpt": "short",
        "body": {"storage": {"value": "<p>Promote the <b>replica</b></p>"}},
    }]})
    conn = ConfluenceConnector("https://wiki.example.com", "bot", "key", session=http)
    docs = conn.fetch_recent(10)

    assert "body.storage" in http.calls[0]["params"]["expand"]
    assert docs[0].content == "Promote the replica"


def test_github_fetch_recent_requires_repo():
    with pytest.raises(ConfigurationMissing):
        GitHubConnector("t", session=FakeSession({})).fetch_recent(10)

    http = FakeSession({"items": [{"number": 3, "title": "Fix cache", "body": "Warm it", "labels": [{"name": "bug"}]}]})
    docs = GitHubConnector("t", repo="acme/app", session=http).fetch_recent(10)
    assert http.calls[0]["params"]["q"] == "repo:acme/app is:issue is:closed"
    assert http.calls[0]["params"]["sort"] == "updated"
    assert docs[0].external_id == "ISSUE-3"
    assert docs[0].tags == ["bug"]


def test_servicenow_fetch_recent_orders_by_update():
    http = FakeSession({"result": [{"sys_id": "kb1", "short_description": "VPN", "text": "<p>Reset</p>"}]})
    docs = ServiceNowKBConnector("https://acme.service-now.com", "bot", "key", session=http).fetch_recent(5)

    assert "ORDERBYDESCsys_updated_on" in http.calls[0]["params"]["sysparm_query"]
    assert docs[0].content == "Reset"
