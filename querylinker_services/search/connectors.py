"""
Live search against the REST APIs of the connected systems.

A connector is only built when its credentials are configured; otherwise the
system is served from the local solution store. Connectors also feed the
store: fetch_recent() pulls the most recently updated items for syncing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import numpy as np
import requests

from querylinker_core.config import Settings
from querylinker_core.errors import ConfigurationMissing
from querylinker_services.ingestion.text_cleaning import strip_markup
from querylinker_services.search.adapters import SearchAdapter
from querylinker_services.search.types import SearchRequest, SearchResult, make_snippet

logger = logging.getLogger(__name__)

USER_AGENT = "QueryLinker/1.0"


def _quote_query(query: str) -> str:
    return query.replace("\\", "\\\\").replace('"', '\\"')


@dataclass(frozen=True)
class RemoteDocument:
    """One issue, page or article as returned by a connected system."""
    external_id: str
    title: str
    content: str
    external_url: str | None = None
    author: str | None = None
    created_date: str | None = None
    tags: list[str] = field(default_factory=list)

    def to_result(self, system: str) -> SearchResult:
        return SearchResult(
            system=system,
            title=self.title,
            id=self.external_id,
            snippet=make_snippet(self.content),
            link=f"/solution/{self.external_id}",
            external_url=self.external_url,
            author=self.author,
            created_date=self.created_date,
        )


class HttpConnector(SearchAdapter):
    def __init__(self, base_url: str, timeout: float = 15.0, session: requests.Session | None = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.http = session or requests.Session()
        self.headers = {"User-Agent": USER_AGENT, "Accept": "application/json"}
        self.auth: tuple[str, str] | None = None

    def _get(self, path: str, params: dict) -> dict:
        r = self.http.get(f"{self.base_url}{path}", params=params, headers=self.headers,
                          timeout=self.timeout, auth=self.auth)
        r.raise_for_status()
        return r.json()

    def search(self, request: SearchRequest, query_vector: np.ndarray | None = None) -> list[SearchResult]:
        docs = self.search_documents(request.query, request.max_results)
        return [d.to_result(self.system) for d in docs[: request.max_results]]

    def search_documents(self, query: str, limit: int) -> list[RemoteDocument]:
        raise NotImplementedError

    def fetch_recent(self, limit: int) -> list[RemoteDocument]:
        """Most recently updated items, newest first."""
        raise NotImplementedError


class JiraConnector(HttpConnector):
    system = "JIRA"
    FIELDS = "summary,description,created,reporter,labels"

    def __init__(self, base_url: str, username: str, api_key: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self.auth = (username, api_key)

    def _issues(self, jql: str, limit: int) -> list[RemoteDocument]:
        data = self._get("/rest/api/2/search", {"jql": jql, "maxResults": limit, "fields": self.FIELDS})
        out = []
        for issue in data.get("issues", [])[:limit]:
            fields = issue.get("fields") or {}
            key = issue["key"]
            out.append(RemoteDocument(
                external_id=key,
                title=fields.get("summary") or key,
                content=fields.get("description") or "",
                external_url=f"{self.base_url}/browse/{key}",
                author=(fields.get("reporter") or {}).get("displayName"),
                created_date=fields.get("created"),
                tags=list(fields.get("labels") or []),
            ))
        return out

    def search_documents(self, query: str, limit: int) -> list[RemoteDocument]:
        return self._issues(f'text ~ "{_quote_query(query)}"', limit)

    def fetch_recent(self, limit: int) -> list[RemoteDocument]:
        return self._issues("order by updated DESC", limit)


class ConfluenceConnector(HttpConnector):
    system = "CONFLUENCE"

    def __init__(self, base_url: str, username: str, api_key: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self.auth = (username, api_key)

    def _pages(self, cql: str, limit: int, expand: str) -> list[RemoteDocument]:
        data = self._get("/rest/api/content/search", {"cql": cql, "limit": limit, "expand": expand})
        out = []
        for page in data.get("results", [])[:limit]:
            page_id = str(page["id"])
            webui = (page.get("_links") or {}).get("webui")
            version = page.get("version") or {}
            body = ((page.get("body") or {}).get("storage") or {}).get("value")
            out.append(RemoteDocument(
                external_id=page_id,
                title=page.get("title") or page_id,
                content=strip_markup(body or page.get("excerpt", "")),
                external_url=f"{self.base_url}{webui}" if webui else f"{self.base_url}/pages/{page_id}",
                author=(version.get("by") or {}).get("displayName"),
                created_date=version.get("when"),
            ))
        return out

    def search_documents(self, query: str, limit: int) -> list[RemoteDocument]:
        return self._pages(f'text ~ "{_quote_query(query)}"', limit, "version")

    def fetch_recent(self, limit: int) -> list[RemoteDocument]:
        return self._pages("type = page order by lastmodified desc", limit, "version,body.storage")


class GitHubConnector(HttpConnector):
    system = "GITHUB"

    def __init__(self, token: str, repo: str | None = None, base_url: str = "https://api.github.com", **kwargs):
        super().__init__(base_url, **kwargs)
        self.repo = repo
        self.headers.update({
            "Authorization": f"token {token}",
            "Accept": "application/vnd.github.v3+json",
        })

    def _issues(self, params: dict, limit: int) -> list[RemoteDocument]:
        data = self._get("/search/issues", dict(params, per_page=limit))
        out = []
        for issue in data.get("items", [])[:limit]:
            ident = f"ISSUE-{issue['number']}"
            out.append(RemoteDocument(
                external_id=ident,
                title=issue.get("title") or ident,
                content=issue.get("body") or "",
                external_url=issue.get("html_url"),
                author=(issue.get("user") or {}).get("login"),
                created_date=issue.get("created_at"),
                tags=[label["name"] for label in issue.get("labels") or [] if label.get("name")],
            ))
        return out

    def search_documents(self, query: str, limit: int) -> list[RemoteDocument]:
        q = f"{query} repo:{self.repo}" if self.repo else query
        return self._issues({"q": q}, limit)

    def fetch_recent(self, limit: int) -> list[RemoteDocument]:
        if not self.repo:
            raise ConfigurationMissing("GITHUB_REPO is required to sync GitHub issues")
        return self._issues({"q": f"repo:{self.repo} is:issue is:closed", "sort": "updated", "order": "desc"}, limit)


class ServiceNowKBConnector(HttpConnector):
    system = "SN_KB"
    FIELDS = "sys_id,short_description,text,sys_created_on,sys_created_by"

    def __init__(self, base_url: str, username: str, api_key: str, **kwargs):
        super().__init__(base_url, **kwargs)
        self.auth = (username, api_key)

    def _articles(self, sysparm_query: str, limit: int) -> list[RemoteDocument]:
        data = self._get(
            "/api/now/table/kb_knowledge",
            {"sysparm_query": sysparm_query, "sysparm_fields": self.FIELDS, "sysparm_limit": limit},
        )
        out = []
        for article in data.get("result", [])[:limit]:
            sys_id = article["sys_id"]
            out.append(RemoteDocument(
                external_id=sys_id,
                title=article.get("short_description") or sys_id,
                content=strip_markup(article.get("text", "")),
                external_url=f"{self.base_url}/kb_view.do?sysparm_article={sys_id}",
                author=article.get("sys_created_by"),
                created_date=article.get("sys_created_on"),
            ))
        return out

    def search_documents(self, query: str, limit: int) -> list[RemoteDocument]:
        # ^ separates conditions in an encoded query
        q = query.replace("^", " ")
        return self._articles(f"short_descriptionLIKE{q}^ORtextLIKE{q}", limit)

    def fetch_recent(self, limit: int) -> list[RemoteDocument]:
        return self._articles("workflow_state=published^ORDERBYDESCsys_updated_on", limit)


def build_connectors(settings: Settings, session: requests.Session | None = None) -> dict[str, HttpConnector]:
    """Connectors for every system whose credentials are fully configured."""
    timeout = settings.HTTP_TIMEOUT_SECONDS
    connectors: dict[str, HttpConnector] = {}
    if settings.JIRA_BASE_URL and settings.JIRA_USERNAME and settings.JIRA_API_KEY:
        connectors["JIRA"] = JiraConnector(
            settings.JIRA_BASE_URL, settings.JIRA_USERNAME, settings.JIRA_API_KEY,
            timeout=timeout, session=session,
        )
    if settings.CONFLUENCE_BASE_URL and settings.CONFLUENCE_USERNAME and settings.CONFLUENCE_API_KEY:
        connectors["CONFLUENCE"] = ConfluenceConnector(
            settings.CONFLUENCE_BASE_URL, settings.CONFLUENCE_USERNAME, settings.CONFLUENCE_API_KEY,
            timeout=timeout, session=session,
        )
    if settings.GITHUB_TOKEN:
        connectors["GITHUB"] = GitHubConnector(
            settings.GITHUB_TOKEN, repo=settings.GITHUB_REPO, timeout=timeout, session=session,
        )
    if settings.SERVICENOW_INSTANCE_URL and settings.SERVICENOW_USERNAME and settings.SERVICENOW_API_KEY:
        connectors["SN_KB"] = ServiceNowKBConnector(
            settings.SERVICENOW_INSTANCE_URL, settings.SERVICENOW_USERNAME, settings.SERVICENOW_API_KEY,
            timeout=timeout, session=session,
        )
    for key in connectors:
        logger.info("Live connector enabled for %s", key)
    return connectors
