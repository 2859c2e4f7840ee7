"""
Errors raised by the X OAuth flow.
"""

from __future__ import annotations

from typing import Optional


class XOAuthError(Exception):
    """Base class for X OAuth failures."""


class InvalidStateOrVerifier(XOAuthError):
    """Callback state didn't match, or the stored state / verifier is missing."""


class ExchangeFailed(XOAuthError):
    """X rejected the authorization-code exchange (or couldn't be reached)."""

    def __init__(self, status_code: Optional[int], body: str) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Failed token exchange: {status_code} {body}")


class ProfileLookupFailed(XOAuthError):
    """The ``/users/me`` lookup failed or returned an incomplete profile."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        self.status_code = status_code
        super().__init__(message)
