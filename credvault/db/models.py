"""ORM models for persisted credentials.

One row per ``(user_id, provider_id, scope)``. The primary credential is
stored with ``scope = ''`` so the unique constraint covers it as well.
"""

from sqlalchemy import Column, String, DateTime, JSON, Text, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase
from datetime import datetime, timezone
import uuid


class Base(DeclarativeBase):
    pass


class CredentialModel(Base):
    __tablename__ = "credentials"
    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    user_id = Column(String(255), nullable=False)
    provider_id = Column(String(64), nullable=False)
    scope = Column(String(255), nullable=False, default="")   # "" = primary credential
    ciphertext = Column(Text, nullable=False)                  # AES-256-GCM, hex
    iv = Column(String(24), nullable=False)                    # 12 bytes, hex
    auth_tag = Column(String(32), nullable=False)              # 16 bytes, hex
    meta = Column("metadata", JSON, default=dict)              # non-secret only
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        UniqueConstraint("user_id", "provider_id", "scope", name="uq_credential_user_provider_scope"),
        Index("ix_credential_user", "user_id"),
    )
