"""PKCE (Proof Key for Code Exchange) and OAuth state generation"""

import base64
import hashlib
import secrets
from typing import NamedTuple

CODE_CHALLENGE_METHOD = "S256"


class PkcePair(NamedTuple):
    code_verifier: str
    code_challenge: str


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def compute_code_challenge(code_verifier: str) -> str:
    """S256 challenge: unpadded base64url of SHA-256(verifier)."""
    return _b64url(hashlib.sha256(code_verifier.encode("ascii")).digest())


def generate_pkce_pair() -> PkcePair:
    """Generate PKCE code verifier and challenge

    Returns:
        PkcePair of (code_verifier, code_challenge)
    """
    # 32 random bytes -> 43-char verifier
    code_verifier = _b64url(secrets.token_bytes(32))
    return PkcePair(code_verifier, compute_code_challenge(code_verifier))


def generate_state() -> str:
    """Random hex state binding the authorize request to its callback"""
    return secrets.token_hex(16)
