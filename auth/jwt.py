"""
Session token creation and verification.

Tokens are base64-encoded JSON payloads signed with HMAC-SHA256 by the
identity service that shares ``config.session_secret``
(env var: ``SESSION_SECRET``).  This service only verifies them;
``create_token`` exists for the identity side and for tests.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import time
from base64 import b64decode, b64encode
from typing import Optional

from config.settings import config


class InvalidSessionToken(Exception):
    """The session token is malformed, badly signed, or expired."""


def _sign(raw: bytes, secret: str) -> str:
    return hmac.new(secret.encode(), raw, hashlib.sha256).hexdigest()


def create_token(
    user_id: str,
    *,
    secret: Optional[str] = None,
    expires_in: Optional[int] = None,
) -> str:
    """Create a signed token containing ``user_id`` and expiry."""
    payload = {
        "user_id": user_id,
        "exp": int(time.time()) + (
            config.session_expiry_seconds if expires_in is None else expires_in
        ),
    }
    raw = json.dumps(payload).encode()
    return b64encode(raw).decode() + "." + _sign(raw, secret or config.session_secret)


def verify_token(token: str, *, secret: Optional[str] = None) -> str:
    """
    Verify token and return ``user_id``.

    Raises ``InvalidSessionToken`` on invalid or expired tokens.
    """
    try:
        parts = token.split(".", 1)
        if len(parts) != 2:
            raise ValueError("bad format")
        raw = b64decode(parts[0], validate=True)
        expected_sig = _sign(raw, secret or config.session_secret)
        if not hmac.compare_digest(parts[1], expected_sig):
            raise ValueError("bad signature")
        payload = json.loads(raw)
        if payload.get("exp", 0) < time.time():
            raise ValueError("token expired")
        user_id = payload["user_id"]
        if not isinstance(user_id, str) or not user_id:
            raise ValueError("missing user_id")
        return user_id
    except (ValueError, KeyError, TypeError, AttributeError) as exc:
        raise InvalidSessionToken(str(exc)) from exc
