"""
Database helper functions — audit trail.
"""

from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from database.models import AuditLog

logger = logging.getLogger(__name__)

X_CONNECTED = "x_connected"
X_DISCONNECTED = "x_disconnected"
X_TOKEN_RESOURCE = "x_token"


async def write_audit_log(
    session: AsyncSession,
    user_id: str,
    action: str,
    resource_type: str = X_TOKEN_RESOURCE,
) -> None:
    """Insert one ``audit_logs`` row and commit it.

    Raises ``SQLAlchemyError`` on failure; callers decide whether the
    audit trail is mandatory.
    """
    session.add(AuditLog(user_id=user_id, action=action, resource_type=resource_type))
    await session.commit()
    logger.debug("Audit: user=%s action=%s", user_id, action)
