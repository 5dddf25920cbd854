"""Connected systems QueryLinker knows how to search."""

from dataclasses import dataclass


@dataclass(frozen=True)
class SystemInfo:
    key: str
    name: str
    icon: str
    features: tuple[str, ...]


SYSTEMS: dict[str, SystemInfo] = {
    "JIRA": SystemInfo("JIRA", "Jira", "🔧", ("Issue search", "Project filters", "Link to incident")),
    "CONFLUENCE": SystemInfo("CONFLUENCE", "Confluence", "📋", ("KB search", "How-to docs")),
    "GITHUB": SystemInfo("GITHUB", "GitHub", "🐙", ("Issues/PRs", "Code fixes")),
    "SN_KB": SystemInfo("SN_KB", "ServiceNow KB", "📚", ("Knowledge articles", "Troubleshooting guides")),
    "SLACK": SystemInfo("SLACK", "Slack", "💬", ("Channel message search", "Thread tracking")),
}


def normalize_system(key: str) -> str:
    return key.strip().upper().replace("-", "_").replace(" ", "_")


def icon_for(system: str) -> str:
    info = SYSTEMS.get(system)
    return info.icon if info else "📄"
