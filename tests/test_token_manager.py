"""
Tests for X connection persistence helpers (no live database).
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from connectors.token_manager import (
    build_token_record,
    delete_connection,
    get_access_token,
    get_connection_status,
    store_connection,
)
from connectors.x import TokenSet, XProfile
from crypto.encryption import AuthenticationFailed, decrypt_token, encrypt_token
from database.models import XToken

NOW = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _session_returning(row):
    result = MagicMock()
    result.scalar_one_or_none.return_value = row
    session = MagicMock()
    session.execute = AsyncMock(return_value=result)
    session.commit = AsyncMock()
    return session


class TestBuildTokenRecord:
    def test_tokens_are_encrypted(self):
        tokens = TokenSet(access_token="at", refresh_token="rt", expires_in=3600, scope="users.read")
        record = build_token_record("u1", tokens, XProfile(id="42", username="jack"), now=NOW)

        assert record["user_id"] == "u1"
        assert record["x_user_id"] == "42"
        assert record["x_username"] == "jack"
        assert record["access_token_encrypted"] != "at"
        assert decrypt_token(record["access_token_encrypted"]) == "at"
        assert decrypt_token(record["refresh_token_encrypted"]) == "rt"
        assert record["expires_at"] == NOW + timedelta(seconds=3600)
        assert record["scope"] == "users.read"

    def test_missing_refresh_token_stays_null(self):
        tokens = TokenSet(access_token="at", expires_in=60)
        record = build_token_record("u1", tokens, XProfile(id="1", username="a"), now=NOW)
        assert record["refresh_token_encrypted"] is None
        assert record["scope"] is None


class TestStoreConnection:
    @pytest.mark.asyncio
    async def test_upserts_on_user_id(self):
        session = _session_returning(None)
        tokens = TokenSet(access_token="at", expires_in=60)

        await store_connection(session, "u1", tokens, XProfile(id="42", username="jack"))

        stmt = session.execute.await_args.args[0]
        sql = str(stmt.compile(dialect=postgresql.dialect()))
        assert "INSERT INTO x_tokens" in sql
        assert "ON CONFLICT (user_id) DO UPDATE" in sql
        assert "access_token_encrypted = excluded.access_token_encrypted" in sql
        session.commit.assert_awaited_once()


class TestReadAndDelete:
    @pytest.mark.asyncio
    async def test_status_when_connected(self):
        row = XToken(user_id="u1", x_user_id="42", x_username="jack", expires_at=NOW)
        status = await get_connection_status(_session_returning(row), "u1")
        assert status == {
            "connected": True,
            "x_username": "jack",
            "x_user_id": "42",
            "expires_at": NOW.isoformat(),
        }

    @pytest.mark.asyncio
    async def test_status_when_not_connected(self):
        status = await get_connection_status(_session_returning(None), "u1")
        assert status == {"connected": False, "x_username": None, "x_user_id": None, "expires_at": None}

    @pytest.mark.asyncio
    async def test_access_token_is_decrypted(self):
        row = XToken(user_id="u1", access_token_encrypted=encrypt_token("at-9"))
        assert await get_access_token(_session_returning(row), "u1") == "at-9"
        assert await get_access_token(_session_returning(None), "u1") is None

    @pytest.mark.asyncio
    async def test_tampered_row_is_not_returned(self):
        iv, tag, ciphertext = encrypt_token("at-9").split(":")
        row = XToken(user_id="u1", access_token_encrypted=f"{iv}:{'00' * 16}:{ciphertext}")
        with pytest.raises(AuthenticationFailed):
            await get_access_token(_session_returning(row), "u1")

    @pytest.mark.asyncio
    async def test_delete(self):
        result = MagicMock(rowcount=1)
        session = MagicMock(execute=AsyncMock(return_value=result), commit=AsyncMock())
        assert await delete_connection(session, "u1") is True
        session.commit.assert_awaited_once()
