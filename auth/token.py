"""
Credential extraction — find the caller's session token in request headers.

Looks in, in the order the caller chooses:
  • ``Authorization: Bearer <token>``
  • the ``sb-access-token`` cookie
  • ``sb-<project>-auth-token`` cookies, whose values may be a raw token,
    a JSON string / array / object, or ``base64-`` wrapped JSON

Nothing here raises on malformed cookie content: a best-effort scan over
attacker-controlled input returns ``None`` instead.
"""

from __future__ import annotations

import binascii
import json
import re
from base64 import urlsafe_b64decode
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional
from urllib.parse import unquote

SESSION_TOKEN_COOKIE = "sb-access-token"
AUTH_TOKEN_COOKIE_PATTERN = re.compile(r"^sb-.*-auth-token$")
BASE64_PREFIX = "base64-"


# ── Low-level decoders ──────────────────────────────────────────────────


def decode_cookie_value(value: str) -> str:
    """URL-decode a cookie value, falling back to the raw value."""
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError:
        return value


def decode_base64url(value: str) -> Optional[str]:
    """Decode unpadded base64url to text, or ``None`` if it isn't valid."""
    padded = value + "=" * (-len(value) % 4)
    try:
        return urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, ValueError):
        return None


def parse_cookie_header(cookie_header: Optional[str]) -> Dict[str, str]:
    """
    Split a ``Cookie`` header into ``{name: raw_value}`` in header order.

    Only the first ``=`` separates name from value, so base64 padding
    survives.  Entries with no name or no ``=`` are skipped.
    """
    cookies: Dict[str, str] = {}
    if not cookie_header:
        return cookies
    for pair in cookie_header.split(";"):
        name, sep, value = pair.strip().partition("=")
        if not name or not sep:
            continue
        cookies[name] = value
    return cookies


# ── Auth-token cookie decode chain ──────────────────────────────────────
#
# Each strategy gets the URL-decoded value and returns a token, None to give
# up on this cookie, or _NOT_HANDLED to let the next strategy try.

_NOT_HANDLED = object()


def _from_base64(value: str) -> Any:
    if not value.startswith(BASE64_PREFIX):
        return _NOT_HANDLED
    payload = decode_base64url(value[len(BASE64_PREFIX):])
    if payload is None:
        return None
    return parse_auth_token_cookie(payload)


def _from_json(value: str) -> Any:
    try:
        parsed = json.loads(value)
    except (ValueError, RecursionError):
        return _NOT_HANDLED
    if isinstance(parsed, str):
        return parsed
    if isinstance(parsed, list) and parsed and isinstance(parsed[0], str):
        return parsed[0]
    if isinstance(parsed, dict) and isinstance(parsed.get("access_token"), str):
        return parsed["access_token"]
    return _NOT_HANDLED


def _from_raw(value: str) -> Any:
    return value or None


_DECODE_CHAIN: List[Callable[[str], Any]] = [_from_base64, _from_json, _from_raw]


def parse_auth_token_cookie(value: str) -> Optional[str]:
    """Run one auth-token cookie value through the decode chain."""
    decoded = decode_cookie_value(value)
    for strategy in _DECODE_CHAIN:
        result = strategy(decoded)
        if result is not _NOT_HANDLED:
            return result or None
    return None


# ── Public extractors ───────────────────────────────────────────────────


def extract_bearer_token(authorization_header: Optional[str]) -> Optional[str]:
    """Return the token from ``Bearer <token>``, else ``None``."""
    if not authorization_header:
        return None
    parts = authorization_header.split(" ")
    scheme = parts[0]
    token = parts[1] if len(parts) > 1 else ""
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def get_cookie_value_from_header(cookie_header: Optional[str], name: str) -> Optional[str]:
    """Return the URL-decoded value of cookie *name*, or ``None``."""
    value = parse_cookie_header(cookie_header).get(name)
    return decode_cookie_value(value) if value else None


def _scan_auth_token_cookies(cookies: Iterable[tuple[str, str]]) -> Optional[str]:
    for name, value in cookies:
        if not AUTH_TOKEN_COOKIE_PATTERN.match(name):
            continue
        token = parse_auth_token_cookie(value)
        if token:
            return token
    return None


def extract_access_token_from_cookie_header(cookie_header: Optional[str]) -> Optional[str]:
    """Find the session token in a raw ``Cookie`` header."""
    cookies = parse_cookie_header(cookie_header)
    direct = cookies.get(SESSION_TOKEN_COOKIE)
    if direct:
        return decode_cookie_value(direct)
    return _scan_auth_token_cookies(cookies.items())


def _cookie_value(item: Any) -> Optional[str]:
    if item is None:
        return None
    if isinstance(item, str):
        return item
    if isinstance(item, Mapping):
        return item.get("value")
    return getattr(item, "value", None)


def _cookie_name(item: Any) -> Optional[str]:
    if isinstance(item, Mapping):
        return item.get("name")
    return getattr(item, "name", None)


def extract_access_token_from_cookie_store(cookie_store: Any) -> Optional[str]:
    """
    Find the session token in a cookie-store object.

    Accepts either an object with ``get(name)`` / ``get_all()`` (items
    expose ``name`` and ``value`` as attributes or keys) or a plain
    ``{name: value}`` mapping such as Starlette's ``request.cookies``.
    """
    if isinstance(cookie_store, Mapping):
        direct = cookie_store.get(SESSION_TOKEN_COOKIE)
        if direct:
            return decode_cookie_value(direct)
        return _scan_auth_token_cookies(cookie_store.items())

    if not callable(getattr(cookie_store, "get", None)):
        raise TypeError("cookie_store must be a mapping or expose get() / get_all()")

    direct = _cookie_value(cookie_store.get(SESSION_TOKEN_COOKIE))
    if direct:
        return decode_cookie_value(direct)

    pairs = []
    for item in cookie_store.get_all():
        name, value = _cookie_name(item), _cookie_value(item)
        if name and value is not None:
            pairs.append((name, value))
    return _scan_auth_token_cookies(pairs)
