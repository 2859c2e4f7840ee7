"""
Shared fixtures. Environment is set before any app module reads config.
"""

import base64
import os

os.environ.setdefault("ENCRYPTION_KEY", base64.b64encode(bytes([1]) * 32).decode())
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("X_CLIENT_ID", "test-client-id")
os.environ.setdefault("X_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("X_REDIRECT_URI", "http://localhost:8000/api/x/oauth/callback")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest  # noqa: E402

from config.settings import Settings  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    return Settings(
        x_client_id="client-abc",
        x_client_secret="secret-xyz",
        x_redirect_uri="https://app.example.com/api/x/oauth/callback",
    )
