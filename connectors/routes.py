"""
X connection API routes — OAuth start/callback, status, disconnect.

Route prefix: /api/x
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from auth.dependencies import db_session, get_current_user_id
from auth.token import get_cookie_value_from_header
from config.settings import config
from connectors.errors import InvalidStateOrVerifier, XOAuthError
from connectors.pkce import generate_pkce_pair, generate_state
from connectors.token_manager import (
    delete_connection,
    get_connection_status,
    store_connection,
)
from connectors.x import (
    X_OAUTH_CODE_VERIFIER_COOKIE,
    X_OAUTH_STATE_COOKIE,
    XConnector,
    oauth_cookie_options,
    verify_callback_state,
)
from crypto.encryption import TokenCipherError
from database.helpers import X_CONNECTED, X_DISCONNECTED, write_audit_log

logger = logging.getLogger(__name__)

router = APIRouter(tags=["x"])


def get_x_connector() -> XConnector:
    """Dependency: the configured X connector (overridden in tests)."""
    connector = XConnector(config)
    if not connector.is_configured():
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="X OAuth is not configured",
        )
    return connector


def _error(status_code: int, error: str, details: Optional[str] = None) -> HTTPException:
    detail: Dict[str, Any] = {"error": error}
    if details:
        detail["details"] = details
    return HTTPException(status_code=status_code, detail=detail)


def _clear_oauth_cookies(response: RedirectResponse) -> None:
    options = oauth_cookie_options(config)
    options.pop("max_age")
    response.delete_cookie(X_OAUTH_STATE_COOKIE, **options)
    response.delete_cookie(X_OAUTH_CODE_VERIFIER_COOKIE, **options)


# ── Routes ─────────────────────────────────────────────────────────────


@router.get("/oauth/start")
async def oauth_start(
    user_id: str = Depends(get_current_user_id),
    connector: XConnector = Depends(get_x_connector),
) -> RedirectResponse:
    """Redirect the browser to X's consent screen."""
    state = generate_state()
    pkce = generate_pkce_pair()

    response = RedirectResponse(connector.get_auth_url(state, pkce.code_challenge))
    options = oauth_cookie_options(config)
    response.set_cookie(X_OAUTH_STATE_COOKIE, state, **options)
    response.set_cookie(X_OAUTH_CODE_VERIFIER_COOKIE, pkce.code_verifier, **options)
    logger.info("X OAuth started for user %s", user_id)
    return response


@router.get("/oauth/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = None,
    state: Optional[str] = None,
    user_id: str = Depends(get_current_user_id),
    connector: XConnector = Depends(get_x_connector),
    session: AsyncSession = Depends(db_session),
) -> RedirectResponse:
    """
    OAuth callback — X redirects here after consent.

    Verifies state against the cookies, exchanges the code, stores the
    encrypted tokens and redirects back to the connection page.
    """
    if not code or not state:
        raise _error(status.HTTP_400_BAD_REQUEST, "Missing code or state")

    cookie_header = request.headers.get("cookie")
    try:
        code_verifier = verify_callback_state(
            state,
            get_cookie_value_from_header(cookie_header, X_OAUTH_STATE_COOKIE),
            get_cookie_value_from_header(cookie_header, X_OAUTH_CODE_VERIFIER_COOKIE),
        )
    except InvalidStateOrVerifier as exc:
        logger.warning("Rejected X OAuth callback for user %s: %s", user_id, exc)
        raise _error(status.HTTP_400_BAD_REQUEST, "Invalid OAuth state")

    try:
        tokens = await connector.exchange_code_for_token(code, code_verifier)
        profile = await connector.fetch_profile(tokens.access_token)
        await store_connection(session, user_id, tokens, profile)
    except (XOAuthError, TokenCipherError) as exc:
        logger.error("X OAuth callback failed for user %s: %s", user_id, exc)
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "X OAuth callback failed", str(exc))
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to save X tokens for user %s: %s", user_id, exc)
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to save X tokens", str(exc))

    try:
        await write_audit_log(session, user_id, X_CONNECTED)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to write audit log for x_connected (user=%s): %s", user_id, exc)
        if config.audit_log_required:
            raise _error(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Connected but failed to write audit log",
                str(exc),
            )

    logger.info("X connected: user=%s account=@%s", user_id, profile.username)
    response = RedirectResponse(config.x_connection_page_path, status_code=status.HTTP_303_SEE_OTHER)
    _clear_oauth_cookies(response)
    return response


@router.get("/status")
async def connection_status(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Whether the user has a connected X account."""
    try:
        data = await get_connection_status(session, user_id)
    except SQLAlchemyError as exc:
        logger.error("Failed to load X status for user %s: %s", user_id, exc)
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to load X connection status", str(exc)
        )
    return {"data": data}


@router.post("/disconnect")
async def disconnect(
    user_id: str = Depends(get_current_user_id),
    session: AsyncSession = Depends(db_session),
) -> Dict[str, Any]:
    """Delete the stored X tokens for the user."""
    try:
        await delete_connection(session, user_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to disconnect X for user %s: %s", user_id, exc)
        raise _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Failed to disconnect X account", str(exc))

    try:
        await write_audit_log(session, user_id, X_DISCONNECTED)
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.error("Failed to write audit log for x_disconnected (user=%s): %s", user_id, exc)
        raise _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Disconnected but failed to write audit log",
            str(exc),
        )

    return {"data": {"disconnected": True}, "message": "Disconnected successfully"}
