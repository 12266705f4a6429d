"""Atlassian OAuth 2.0 (3LO) login flow."""

from __future__ import annotations

import asyncio
import html
import logging
from typing import Annotated

from fastapi import APIRouter, Cookie, Query
from fastapi.responses import HTMLResponse, RedirectResponse

from src.api.deps import TOKEN_COOKIE
from src.api.models import TokenRequest, TokenResponse
from src.atlassian.oauth import build_authorize_url, exchange_code, new_state
from src.config import settings
from src.errors import AuthError

logger = logging.getLogger(__name__)

router = APIRouter()

STATE_COOKIE = "oauth_state"
STATE_MAX_AGE = 600


def _secure_cookies() -> bool:
    return settings.atlassian_redirect_uri.startswith("https://")


@router.get("/oauth/login")
async def login() -> RedirectResponse:
    """Redirect to the Atlassian consent screen."""
    state = new_state()
    response = RedirectResponse(build_authorize_url(state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        state,
        max_age=STATE_MAX_AGE,
        httponly=True,
        secure=_secure_cookies(),
        samesite="lax",
    )
    return response


@router.get("/oauth/callback", response_model=None)
async def callback(
    code: Annotated[str | None, Query()] = None,
    state: Annotated[str | None, Query()] = None,
    error: Annotated[str | None, Query()] = None,
    oauth_state: Annotated[str | None, Cookie()] = None,
) -> RedirectResponse | HTMLResponse:
    """Finish the OAuth dance, store the token in a cookie, return to the UI."""
    if error or not code:
        reason = html.escape(error or "No authorization code provided")
        return HTMLResponse(f"<h1>Authorization failed</h1><p>{reason}</p>", status_code=400)
    if not state or not oauth_state or state != oauth_state:
        raise AuthError("OAuth state mismatch")

    tokens = await asyncio.to_thread(exchange_code, code)
    logger.info("OAuth callback completed; token expires in %s seconds", tokens.expires_in)

    response = RedirectResponse(settings.app_url, status_code=302)
    response.delete_cookie(STATE_COOKIE)
    response.set_cookie(
        TOKEN_COOKIE,
        tokens.access_token,
        max_age=tokens.expires_in,
        httponly=True,
        secure=_secure_cookies(),
        samesite="lax",
    )
    return response


@router.post("/oauth/token", response_model=TokenResponse)
async def token(request: TokenRequest) -> TokenResponse:
    """Exchange a code for tokens without cookies, for non-browser clients."""
    tokens = await asyncio.to_thread(exchange_code, request.code or "")
    return TokenResponse(**tokens.to_dict())


@router.get("/logout")
async def logout() -> RedirectResponse:
    response = RedirectResponse("/", status_code=302)
    response.delete_cookie(TOKEN_COOKIE)
    return response
