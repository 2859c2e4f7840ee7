"""
Tests for PKCE pair and state generation.
"""

import base64
import hashlib
import re

from connectors.pkce import compute_code_challenge, generate_pkce_pair, generate_state

_URL_SAFE = re.compile(r"^[A-Za-z0-9_-]+$")


def test_challenge_is_unpadded_b64url_sha256_of_verifier():
    for _ in range(20):
        pair = generate_pkce_pair()
        digest = hashlib.sha256(pair.code_verifier.encode()).digest()
        expected = base64.urlsafe_b64encode(digest).decode().rstrip("=")
        assert pair.code_challenge == expected
        assert "=" not in pair.code_challenge


def test_verifier_length_and_charset():
    verifier, challenge = generate_pkce_pair()
    assert 43 <= len(verifier) <= 128
    assert _URL_SAFE.match(verifier)
    assert _URL_SAFE.match(challenge)


def test_rfc7636_example():
    verifier = "dBjftJeZ4CVP-mB92K27uhbUJU1p1r_wW1gFWFOEjXk"
    assert compute_code_challenge(verifier) == "E9Melhoa2OwvFrEMTJguCHaoeK1t8URWbuGJSstw-cM"


def test_pairs_and_states_are_unique():
    assert len({generate_pkce_pair().code_verifier for _ in range(50)}) == 50
    states = {generate_state() for _ in range(50)}
    assert len(states) == 50
    assert all(re.fullmatch(r"[0-9a-f]{32}", s) for s in states)
