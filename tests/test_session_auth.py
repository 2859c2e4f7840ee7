"""
Tests for session-token signing and request credential lookup.
"""

import pytest
from starlette.requests import Request

from auth.dependencies import get_request_access_token
from auth.jwt import InvalidSessionToken, create_token, verify_token


def _request(headers: dict) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in headers.items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


class TestSessionToken:
    def test_round_trip(self):
        assert verify_token(create_token("user-1")) == "user-1"

    def test_wrong_secret(self):
        token = create_token("user-1", secret="a")
        with pytest.raises(InvalidSessionToken):
            verify_token(token, secret="b")

    def test_expired(self):
        with pytest.raises(InvalidSessionToken, match="expired"):
            verify_token(create_token("user-1", expires_in=-10))

    @pytest.mark.parametrize("token", ["", "abc", "!!!.sig", "e30=.sig"])
    def test_malformed(self, token):
        with pytest.raises(InvalidSessionToken):
            verify_token(token)


class TestRequestAccessToken:
    def test_bearer_takes_precedence(self):
        request = _request({"Authorization": "Bearer from-header", "Cookie": "sb-access-token=from-cookie"})
        assert get_request_access_token(request) == "from-header"

    def test_falls_back_to_cookie(self):
        request = _request({"Authorization": "Basic xyz", "Cookie": "sb-access-token=from-cookie"})
        assert get_request_access_token(request) == "from-cookie"

    def test_nothing_found(self):
        assert get_request_access_token(_request({})) is None
