"""Atlassian OAuth 2.0 (3LO) authorization-code flow helpers."""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import Any, cast
from urllib.parse import urlencode

import httpx

from src.config import settings
from src.errors import AuthError, NotConfiguredError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

AUTHORIZE_URL = "https://auth.atlassian.com/authorize"
TOKEN_URL = "https://auth.atlassian.com/oauth/token"
ACCESSIBLE_RESOURCES_URL = "https://api.atlassian.com/oauth/token/accessible-resources"

SCOPES: list[str] = [
    "read:jira-work",
    "write:jira-work",
    "read:jira-user",
    "read:me",
    "read:account",
    "write:confluence-content",
    "read:confluence-content.summary",
    "read:confluence-space.summary",
]


@dataclass
class OAuthTokens:
    access_token: str
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None
    token_type: str = "Bearer"

    def to_dict(self) -> dict[str, Any]:
        return {
            "access_token": self.access_token,
            "refresh_token": self.refresh_token,
            "expires_in": self.expires_in,
            "scope": self.scope,
            "token_type": self.token_type,
        }


def new_state() -> str:
    """Return an unguessable value for the OAuth ``state`` parameter."""
    return secrets.token_urlsafe(16)


def _require_client() -> None:
    if not settings.atlassian_client_id or not settings.atlassian_client_secret:
        raise NotConfiguredError(
            "Atlassian OAuth is not configured: set ATLASSIAN_CLIENT_ID and ATLASSIAN_CLIENT_SECRET."
        )


def build_authorize_url(state: str, redirect_uri: str | None = None) -> str:
    """Build the consent URL for the fixed scope list."""
    if not settings.atlassian_client_id:
        raise NotConfiguredError("Atlassian OAuth is not configured: set ATLASSIAN_CLIENT_ID.")
    params = {
        "audience": "api.atlassian.com",
        "client_id": settings.atlassian_client_id,
        "scope": " ".join(SCOPES),
        "redirect_uri": redirect_uri or settings.atlassian_redirect_uri,
        "state": state,
        "response_type": "code",
        "prompt": "consent",
    }
    return f"{AUTHORIZE_URL}?{urlencode(params)}"


def exchange_code(
    code: str,
    redirect_uri: str | None = None,
    http: httpx.Client | None = None,
) -> OAuthTokens:
    """Exchange an authorization code for access/refresh tokens.

    Raises:
        ValidationError: ``code`` is empty.
        AuthError: Atlassian rejected the code (4xx).
        UpstreamError: Atlassian failed or was unreachable.
    """
    if not code:
        raise ValidationError("Authorization code is required")
    _require_client()

    payload = {
        "grant_type": "authorization_code",
        "client_id": settings.atlassian_client_id,
        "client_secret": settings.atlassian_client_secret,
        "code": code,
        "redirect_uri": redirect_uri or settings.atlassian_redirect_uri,
    }
    client = http or httpx.Client(timeout=30.0)
    try:
        response = client.post(TOKEN_URL, json=payload)
    except httpx.HTTPError as exc:
        raise UpstreamError(
            "Failed to exchange authorization code for token", provider="atlassian", details=str(exc)
        ) from exc
    finally:
        if http is None:
            client.close()

    if 400 <= response.status_code < 500:
        logger.warning("OAuth token exchange rejected: %s %s", response.status_code, response.text)
        raise AuthError("Failed to exchange authorization code for token")
    if response.status_code >= 500:
        raise UpstreamError(
            "Failed to exchange authorization code for token",
            provider="atlassian",
            status=response.status_code,
            details=response.text,
        )

    data = response.json()
    return OAuthTokens(
        access_token=data["access_token"],
        refresh_token=data.get("refresh_token"),
        expires_in=data.get("expires_in"),
        scope=data.get("scope"),
    )


def get_accessible_resources(access_token: str, http: httpx.Client | None = None) -> list[dict[str, Any]]:
    """List the Atlassian sites (cloud ids) the token can reach."""
    client = http or httpx.Client(timeout=30.0)
    try:
        response = client.get(
            ACCESSIBLE_RESOURCES_URL,
            headers={"Authorization": f"Bearer {access_token}", "Accept": "application/json"},
        )
    except httpx.HTTPError as exc:
        raise UpstreamError(
            "Could not list Atlassian sites", provider="atlassian", details=str(exc)
        ) from exc
    finally:
        if http is None:
            client.close()

    if response.status_code == 401:
        raise AuthError("Atlassian rejected the access token")
    if response.status_code >= 400:
        raise UpstreamError(
            "Could not list Atlassian sites",
            provider="atlassian",
            status=response.status_code,
            details=response.text,
        )
    return cast(list[dict[str, Any]], response.json())


def resolve_cloud_id(access_token: str, http: httpx.Client | None = None) -> tuple[str, str]:
    """Return ``(cloud_id, site_url)``, preferring configured values.

    Falls back to the first site the token can access.
    """
    if settings.atlassian_cloud_id:
        return settings.atlassian_cloud_id, settings.atlassian_site_url
    resources = get_accessible_resources(access_token, http=http)
    if not resources:
        raise AuthError("The access token has no accessible Atlassian sites")
    site = resources[0]
    logger.info("Using Atlassian site %s (%s)", site.get("url"), site["id"])
    return str(site["id"]), str(site.get("url") or settings.atlassian_site_url)
