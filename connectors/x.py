"""
XConnector — OAuth2 (Authorization Code + PKCE) for the X API.

Builds the authorize URL, exchanges the callback code for tokens and looks
up the connected account.  Holds no per-flow state: the OAuth state and
code verifier travel in short-lived cookies owned by the routes.
"""

from __future__ import annotations

import hmac
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ValidationError

from config.settings import Settings
from connectors.errors import (
    ExchangeFailed,
    InvalidStateOrVerifier,
    ProfileLookupFailed,
)
from connectors.pkce import CODE_CHALLENGE_METHOD

logger = logging.getLogger(__name__)

X_OAUTH_STATE_COOKIE = "x_oauth_state"
X_OAUTH_CODE_VERIFIER_COOKIE = "x_oauth_code_verifier"


class TokenSet(BaseModel):
    """Token endpoint response."""

    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    scope: Optional[str] = None
    token_type: Optional[str] = None


class XProfile(BaseModel):
    id: str
    username: str


class XConnector:
    """OAuth2 connector for X."""

    provider_name = "x"
    display_name = "X"

    def __init__(
        self,
        settings: Settings,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._settings = settings
        self._http_client = http_client

    @property
    def scopes(self) -> str:
        return self._settings.x_scopes

    def is_configured(self) -> bool:
        s = self._settings
        return bool(s.x_client_id and s.x_client_secret and s.x_redirect_uri)

    @asynccontextmanager
    async def _client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._http_client is not None:
            yield self._http_client
            return
        async with httpx.AsyncClient(timeout=self._settings.http_timeout_seconds) as client:
            yield client

    # ── OAuth flow ──────────────────────────────────────────────────────

    def get_auth_url(self, state: str, code_challenge: str) -> str:
        params = {
            "response_type": "code",
            "client_id": self._settings.x_client_id,
            "redirect_uri": self._settings.x_redirect_uri,
            "scope": self.scopes,
            "state": state,
            "code_challenge": code_challenge,
            "code_challenge_method": CODE_CHALLENGE_METHOD,
        }
        return f"{self._settings.x_authorize_url}?{urlencode(params)}"

    async def exchange_code_for_token(self, code: str, code_verifier: str) -> TokenSet:
        """Exchange the callback code (plus PKCE verifier) for tokens."""
        try:
            async with self._client() as client:
                resp = await client.post(
                    self._settings.x_token_url,
                    data={
                        "grant_type": "authorization_code",
                        "code": code,
                        "redirect_uri": self._settings.x_redirect_uri,
                        "code_verifier": code_verifier,
                    },
                    auth=(self._settings.x_client_id, self._settings.x_client_secret),
                )
        except httpx.HTTPError as exc:
            logger.error("X token endpoint unreachable: %s", exc)
            raise ExchangeFailed(None, str(exc)) from exc

        if not resp.is_success:
            logger.error("X token exchange rejected: HTTP %s", resp.status_code)
            raise ExchangeFailed(resp.status_code, resp.text)

        try:
            return TokenSet.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            # 2xx bodies hold live tokens; keep them out of the error
            raise ExchangeFailed(resp.status_code, "invalid token response") from exc

    async def fetch_profile(self, access_token: str) -> XProfile:
        """Look up the account that authorized the app."""
        try:
            async with self._client() as client:
                resp = await client.get(
                    f"{self._settings.x_api_base}/users/me",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
        except httpx.HTTPError as exc:
            raise ProfileLookupFailed(f"Failed user lookup: {exc}") from exc

        if not resp.is_success:
            raise ProfileLookupFailed(
                f"Failed user lookup: {resp.status_code} {resp.text}",
                status_code=resp.status_code,
            )

        try:
            payload: Any = resp.json()
        except ValueError as exc:
            raise ProfileLookupFailed("X user payload is invalid") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, dict):
            raise ProfileLookupFailed("X user payload is invalid")
        user_id, username = data.get("id"), data.get("username")
        if not isinstance(user_id, str) or not user_id or not isinstance(username, str) or not username:
            raise ProfileLookupFailed("X user payload is invalid")
        return XProfile(id=user_id, username=username)


def verify_callback_state(
    returned_state: str,
    stored_state: Optional[str],
    code_verifier: Optional[str],
) -> str:
    """
    Check the callback against the cookies set by ``/oauth/start``.

    Returns the code verifier; raises ``InvalidStateOrVerifier`` otherwise.
    """
    if not stored_state or not code_verifier:
        raise InvalidStateOrVerifier("Missing stored OAuth state or code verifier")
    if not hmac.compare_digest(returned_state.encode(), stored_state.encode()):
        raise InvalidStateOrVerifier("OAuth state mismatch")
    return code_verifier


def oauth_cookie_options(settings: Settings) -> Dict[str, Any]:
    """Keyword arguments for ``Response.set_cookie`` on the OAuth cookies."""
    return {
        "httponly": True,
        "samesite": "lax",
        "secure": settings.is_production,
        "path": "/",
        "max_age": settings.oauth_cookie_max_age,
    }
