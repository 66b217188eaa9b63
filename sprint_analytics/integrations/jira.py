"""
Jira Integration for Sprint Analytics

Fetches work logs recorded against Jira issues.
"""

import os
from dataclasses import dataclass
from datetime import date
from typing import Optional

import httpx

from ..errors import IntegrationError
from ..logging import get_logger

logger = get_logger(__name__)


@dataclass
class WorkLog:
    """Time logged by one person against an issue on one day."""
    id: str
    issue_key: str
    time_spent_hours: float
    logged_date: Optional[date]
    author: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "issue_key": self.issue_key,
            "time_spent_hours": round(self.time_spent_hours, 2),
            "logged_date": self.logged_date.isoformat() if self.logged_date else None,
            "author": self.author,
        }


def parse_worklog(issue_key: str, entry: dict) -> WorkLog:
    """Map a Jira worklog entry; `started` looks like 2024-01-02T09:00:00.000+0000."""
    started = entry.get("started")
    author = entry.get("author") or {}
    return WorkLog(
        id=str(entry["id"]),
        issue_key=issue_key,
        time_spent_hours=(entry.get("timeSpentSeconds") or 0) / 3600,
        logged_date=date.fromisoformat(started[:10]) if started else None,
        author=author.get("displayName"),
    )


class JiraClient:
    """
    Jira Cloud API client for fetching issue work logs.

    Usage:
        client = JiraClient(
            url="https://company.atlassian.net",
            email="user@company.com",
            token="api_token"
        )
        worklogs = await client.get_issue_worklogs("PROJ-123")
    """

    def __init__(
        self,
        url: Optional[str] = None,
        email: Optional[str] = None,
        token: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.url = (url or os.getenv("JIRA_URL", "")).rstrip("/")
        self.email = email or os.getenv("JIRA_EMAIL")
        self.token = token or os.getenv("JIRA_TOKEN")
        self.timeout = timeout
        self.transport = transport

        if not all([self.url, self.email, self.token]):
            raise ValueError(
                "Jira credentials required. Set JIRA_URL, JIRA_EMAIL, JIRA_TOKEN env vars "
                "or pass them as parameters."
            )

        self.auth = (self.email, self.token)

    @classmethod
    def from_config(cls, config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "JiraClient":
        """Build a client from an EngineConfig."""
        return cls(
            url=config.jira_url,
            email=config.jira_email,
            token=config.jira_token,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        endpoint: str,
        params: Optional[dict] = None
    ) -> dict:
        """Make authenticated request to Jira API."""
        async with httpx.AsyncClient(transport=self.transport) as client:
            try:
                response = await client.request(
                    method,
                    f"{self.url}/rest/api/3{endpoint}",
                    auth=self.auth,
                    params=params,
                    headers={"Accept": "application/json"},
                    timeout=self.timeout
                )
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                raise IntegrationError(
                    "jira", f"{method} {endpoint} returned {e.response.status_code}", e.response.status_code
                ) from e
            except httpx.HTTPError as e:
                raise IntegrationError("jira", f"{method} {endpoint} failed: {e}") from e

            return response.json() if response.content else {}

    async def get_issue_worklogs(self, issue_key: str) -> list[WorkLog]:
        """All work logs recorded against an issue."""
        result = await self._request("GET", f"/issue/{issue_key}/worklog")
        worklogs = [parse_worklog(issue_key, entry) for entry in result.get("worklogs", [])]
        logger.debug("worklogs_fetched", issue=issue_key, count=len(worklogs))
        return worklogs
