"""
SQLAlchemy ORM models mirroring database/schema.sql.
"""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import BigInteger, Column, DateTime, Index, String, Text
from sqlalchemy.orm import DeclarativeBase


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class XToken(Base):
    """One connected X account per user; tokens are AES-GCM envelopes."""

    __tablename__ = "x_tokens"

    user_id = Column(String(64), primary_key=True)
    x_user_id = Column(String(64), nullable=False)
    x_username = Column(String(64), nullable=False)
    access_token_encrypted = Column(Text, nullable=False)
    refresh_token_encrypted = Column(Text)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    scope = Column(Text)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    user_id = Column(String(64), nullable=False)
    action = Column(String(64), nullable=False)
    resource_type = Column(String(64), nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow)

    __table_args__ = (Index("ix_audit_logs_user_id", "user_id"),)
