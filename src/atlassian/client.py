"""Thin Jira Cloud / Confluence Cloud REST client over httpx."""

from __future__ import annotations

import logging
from typing import Any, cast

import httpx

from src.errors import AuthError, NotFoundError, UpstreamError

logger = logging.getLogger(__name__)

API_GATEWAY = "https://api.atlassian.com"


def to_adf(text: str) -> dict[str, Any]:
    """Wrap plain text as an Atlassian Document Format document.

    Blank lines separate paragraphs; an empty string yields one empty paragraph.
    """
    paragraphs = [p.strip() for p in text.split("\n\n") if p.strip()] or [""]
    content: list[dict[str, Any]] = []
    for para in paragraphs:
        node: dict[str, Any] = {"type": "paragraph", "content": []}
        if para:
            node["content"].append({"type": "text", "text": para})
        content.append(node)
    return {"type": "doc", "version": 1, "content": content}


class AtlassianClient:
    """Authenticated calls against one Atlassian cloud site.

    Requests go through the ``api.atlassian.com`` gateway with the user's
    bearer token. Any non-2xx response raises: 401 as ``AuthError``, 404 as
    ``NotFoundError``, everything else as ``UpstreamError``.
    """

    def __init__(
        self,
        access_token: str,
        cloud_id: str,
        site_url: str = "",
        http: httpx.Client | None = None,
    ) -> None:
        self.cloud_id = cloud_id
        self.site_url = site_url.rstrip("/")
        self._owns_http = http is None
        self.http = http or httpx.Client(timeout=30.0)
        self._headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> AtlassianClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    @property
    def jira_base(self) -> str:
        return f"{API_GATEWAY}/ex/jira/{self.cloud_id}/rest/api/3"

    @property
    def confluence_base(self) -> str:
        return f"{API_GATEWAY}/ex/confluence/{self.cloud_id}/wiki/api/v2"

    def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = self.http.request(method, url, headers=self._headers, **kwargs)
        except httpx.HTTPError as exc:
            raise UpstreamError(
                f"Atlassian request failed: {method} {url}", provider="atlassian", details=str(exc)
            ) from exc

        if response.status_code == 401:
            raise AuthError("Atlassian rejected the access token")
        if response.status_code == 404:
            raise NotFoundError(f"Atlassian resource not found: {method} {url}")
        if response.status_code >= 400:
            logger.error("Atlassian %s %s -> %s: %s", method, url, response.status_code, response.text)
            raise UpstreamError(
                "Atlassian API request failed",
                provider="atlassian",
                status=response.status_code,
                details=response.text,
            )
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    # ------------------------------------------------------------------
    # Jira
    # ------------------------------------------------------------------

    def create_issue(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Create an issue; returns ``{id, key, self}``."""
        return cast(dict[str, Any], self._request("POST", f"{self.jira_base}/issue", json={"fields": fields}))

    def update_issue(self, issue_key: str, fields: dict[str, Any]) -> None:
        self._request("PUT", f"{self.jira_base}/issue/{issue_key}", json={"fields": fields})

    def delete_issue(self, issue_key: str) -> None:
        self._request("DELETE", f"{self.jira_base}/issue/{issue_key}")

    def find_account_id(self, query: str) -> str | None:
        """Return the account id of the first user matching ``query``."""
        users = self._request("GET", f"{self.jira_base}/user/search", params={"query": query})
        if not users:
            return None
        return cast(str | None, users[0].get("accountId"))

    def list_projects(self) -> list[dict[str, Any]]:
        data = self._request("GET", f"{self.jira_base}/project/search")
        return cast(list[dict[str, Any]], (data or {}).get("values", []))

    def issue_url(self, issue_key: str) -> str | None:
        return f"{self.site_url}/browse/{issue_key}" if self.site_url else None

    # ------------------------------------------------------------------
    # Confluence
    # ------------------------------------------------------------------

    def list_spaces(self) -> list[dict[str, Any]]:
        data = self._request("GET", f"{self.confluence_base}/spaces")
        return cast(list[dict[str, Any]], (data or {}).get("results", []))

    def get_space_id(self, space_key: str) -> str:
        data = self._request("GET", f"{self.confluence_base}/spaces", params={"keys": space_key})
        results = (data or {}).get("results", [])
        if not results:
            raise NotFoundError(f"Confluence space {space_key} not found")
        return str(results[0]["id"])

    def find_page_id(self, title: str, space_id: str | None = None) -> str:
        params: dict[str, Any] = {"title": title}
        if space_id:
            params["space-id"] = space_id
        data = self._request("GET", f"{self.confluence_base}/pages", params=params)
        results = (data or {}).get("results", [])
        if not results:
            raise NotFoundError(f"Confluence page '{title}' not found")
        return str(results[0]["id"])

    def get_page(self, page_id: str) -> dict[str, Any]:
        return cast(
            dict[str, Any],
            self._request(
                "GET", f"{self.confluence_base}/pages/{page_id}", params={"body-format": "storage"}
            ),
        )

    def create_page(
        self, space_id: str, title: str, body_html: str, parent_id: str | None = None
    ) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "spaceId": space_id,
            "status": "current",
            "title": title,
            "body": {"representation": "storage", "value": body_html},
        }
        if parent_id:
            payload["parentId"] = parent_id
        return cast(dict[str, Any], self._request("POST", f"{self.confluence_base}/pages", json=payload))

    def update_page(
        self, page_id: str, title: str | None = None, body_html: str | None = None
    ) -> dict[str, Any]:
        """Update a page, bumping its version number.

        ``None`` keeps the current title or body.
        """
        page = self.get_page(page_id)
        current_body = page.get("body", {}).get("storage", {}).get("value", "")
        payload = {
            "id": page_id,
            "status": "current",
            "title": title or page.get("title", ""),
            "body": {
                "representation": "storage",
                "value": body_html if body_html is not None else current_body,
            },
            "version": {"number": int(page.get("version", {}).get("number", 1)) + 1},
        }
        return cast(
            dict[str, Any], self._request("PUT", f"{self.confluence_base}/pages/{page_id}", json=payload)
        )

    def delete_page(self, page_id: str) -> None:
        self._request("DELETE", f"{self.confluence_base}/pages/{page_id}")

    def page_url(self, page: dict[str, Any]) -> str | None:
        webui = page.get("_links", {}).get("webui")
        if webui and self.site_url:
            return f"{self.site_url}/wiki{webui}"
        if self.site_url and page.get("id"):
            return f"{self.site_url}/wiki/pages/viewpage.action?pageId={page['id']}"
        return None
