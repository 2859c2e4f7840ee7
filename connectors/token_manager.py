"""
Token manager — store / read / delete a user's X connection.

Tokens are encrypted before they reach the session and decrypted only on
explicit read; nothing here ever holds a plaintext token in the database.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from connectors.x import TokenSet, XProfile
from crypto.encryption import decrypt_token, encrypt_token
from database.models import XToken

logger = logging.getLogger(__name__)


def build_token_record(
    user_id: str,
    tokens: TokenSet,
    profile: XProfile,
    *,
    now: Optional[datetime] = None,
) -> Dict[str, Any]:
    """Column values for the ``x_tokens`` row, tokens sealed."""
    now = now or datetime.now(timezone.utc)
    return {
        "user_id": user_id,
        "x_user_id": profile.id,
        "x_username": profile.username,
        "access_token_encrypted": encrypt_token(tokens.access_token),
        "refresh_token_encrypted": (
            encrypt_token(tokens.refresh_token) if tokens.refresh_token else None
        ),
        "expires_at": now + timedelta(seconds=tokens.expires_in),
        "scope": tokens.scope,
        "updated_at": now,
    }


async def store_connection(
    session: AsyncSession,
    user_id: str,
    tokens: TokenSet,
    profile: XProfile,
) -> None:
    """
    Upsert the user's X connection.

    A new authorization replaces any previous row for ``user_id``.
    Encryption errors propagate before anything is written.
    """
    record = build_token_record(user_id, tokens, profile)
    stmt = pg_insert(XToken).values(**record)
    stmt = stmt.on_conflict_do_update(
        index_elements=[XToken.user_id],
        set_={key: stmt.excluded[key] for key in record if key != "user_id"},
    )
    await session.execute(stmt)
    await session.commit()
    logger.info("Stored X connection for user %s (@%s)", user_id, profile.username)


async def get_connection(session: AsyncSession, user_id: str) -> Optional[XToken]:
    result = await session.execute(select(XToken).where(XToken.user_id == user_id))
    return result.scalar_one_or_none()


async def get_connection_status(session: AsyncSession, user_id: str) -> Dict[str, Any]:
    """Connection summary for the UI (no tokens exposed)."""
    row = await get_connection(session, user_id)
    return {
        "connected": row is not None,
        "x_username": row.x_username if row else None,
        "x_user_id": row.x_user_id if row else None,
        "expires_at": row.expires_at.isoformat() if row and row.expires_at else None,
    }


async def get_access_token(session: AsyncSession, user_id: str) -> Optional[str]:
    """
    Decrypted X access token for the user, or None if not connected.

    ``MalformedEnvelope`` / ``AuthenticationFailed`` propagate: a row that
    doesn't decrypt is unusable, never returned as-is.
    """
    row = await get_connection(session, user_id)
    if row is None:
        return None
    return decrypt_token(row.access_token_encrypted)


async def delete_connection(session: AsyncSession, user_id: str) -> bool:
    """Delete the user's X connection. Returns True if a row was removed."""
    result = await session.execute(delete(XToken).where(XToken.user_id == user_id))
    await session.commit()
    deleted = bool(result.rowcount)
    logger.info("Disconnected X for user %s (row removed: %s)", user_id, deleted)
    return deleted
