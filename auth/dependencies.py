"""
FastAPI dependencies for authentication.

Provides ``db_session`` and ``get_current_user_id`` dependencies that
are used across all protected routes.
"""

from __future__ import annotations

import logging
from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from auth.jwt import InvalidSessionToken, verify_token
from auth.token import extract_access_token_from_cookie_header, extract_bearer_token
from database.session import get_db_session

logger = logging.getLogger(__name__)


async def db_session(
    session: AsyncSession = Depends(get_db_session),
) -> AsyncGenerator[AsyncSession, None]:
    """Yield a DB session for route handlers."""
    yield session


def get_request_access_token(request: Request) -> str | None:
    """Bearer header first, then session cookies."""
    return extract_bearer_token(
        request.headers.get("authorization")
    ) or extract_access_token_from_cookie_header(request.headers.get("cookie"))


async def get_current_user_id(request: Request) -> str:
    """
    Locate and verify the caller's session token, returning the
    authenticated ``user_id``.
    """
    token = get_request_access_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    try:
        return verify_token(token)
    except InvalidSessionToken as exc:
        logger.debug("Rejected session token: %s", exc)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
