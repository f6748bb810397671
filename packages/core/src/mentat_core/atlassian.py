"""Jira and Confluence client used by the context gatherer."""

from __future__ import annotations

import logging
import re
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")


class AtlassianError(RuntimeError):
    """An Atlassian REST call failed."""


class AtlassianClient:
    """Minimal Jira (REST v2) and Confluence (content search) client.

    Atlassian Cloud API tokens use Basic auth with ``email:token``.
    """

    def __init__(self, base_url: str, email: str, api_token: str, timeout: float = 30.0):
        if not base_url:
            raise ValueError("Atlassian base URL required. Set ATLASSIAN_BASE_URL or atlassian_url in .mentat.yml.")
        if not email or not api_token:
            raise ValueError("Atlassian credentials required. Set ATLASSIAN_EMAIL and ATLASSIAN_API_TOKEN.")
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(
            base_url=self.base_url,
            auth=(email, api_token),
            headers={"Accept": "application/json"},
            timeout=timeout,
        )

    @classmethod
    def from_config(cls, config: dict) -> Optional["AtlassianClient"]:
        """Build a client from resolved config, or None when Atlassian is not configured."""
        url = config.get("atlassian_url")
        email = config.get("atlassian_email")
        token = config.get("atlassian_api_token")
        if not (url and email and token):
            return None
        return cls(url, email, token)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def close(self) -> None:
        self.client.close()

    def _request(self, method: str, endpoint: str, **kwargs) -> dict[str, Any]:
        try:
            response = self.client.request(method, endpoint, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise AtlassianError(f"{method} {endpoint} returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise AtlassianError(f"{method} {endpoint} failed: {e}") from e
        return response.json()

    def get_issue(self, key: str) -> dict[str, Any]:
        """Return a flattened Jira issue: key, summary, status, type, description, url."""
        data = self._request(
            "GET",
            f"/rest/api/2/issue/{key}",
            params={"fields": "summary,status,issuetype,description"},
        )
        fields = data.get("fields") or {}
        return {
            "key": data.get("key", key),
            "summary": fields.get("summary") or "",
            "status": (fields.get("status") or {}).get("name"),
            "type": (fields.get("issuetype") or {}).get("name"),
            "description": fields.get("description") or "",
            "url": f"{self.base_url}/browse/{data.get('key', key)}",
        }

    def search_pages(self, query: str, limit: int = 3) -> list[dict[str, Any]]:
        """Full-text search Confluence and return ``[{id, title, excerpt, url}]``."""
        escaped = query.replace('"', '\\"')
        data = self._request(
            "GET",
            "/wiki/rest/api/content/search",
            params={"cql": f'type=page AND text ~ "{escaped}"', "limit": limit, "expand": "body.view"},
        )
        pages = []
        for result in data.get("results", []):
            body = ((result.get("body") or {}).get("view") or {}).get("value", "")
            pages.append(
                {
                    "id": result.get("id"),
                    "title": result.get("title", ""),
                    "excerpt": _TAG_RE.sub("", body)[:2000],
                    "url": f"{self.base_url}/wiki{(result.get('_links') or {}).get('webui', '')}",
                }
            )
        return pages
