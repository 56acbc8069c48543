"""SQLAlchemy storage backend. The only layer that talks to the database."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional
import uuid

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from credvault.db.models import CredentialModel
from credvault.types import CredentialKey, CredentialRecord

logger = logging.getLogger(__name__)


def _aware(value: Optional[datetime]) -> datetime:
    """SQLite drops tzinfo on the way back; everything stored is UTC."""
    if value is None:
        return datetime.now(timezone.utc)
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_record(row: CredentialModel) -> CredentialRecord:
    return CredentialRecord(
        user_id=row.user_id,
        provider_id=row.provider_id,
        scope=row.scope or None,
        ciphertext=row.ciphertext,
        iv=row.iv,
        auth_tag=row.auth_tag,
        metadata=dict(row.meta or {}),
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SQLAlchemyBackend:
    """Credential rows in a relational table via an async session factory.

    Each call opens its own session, so one backend instance is safe to share
    across concurrent requests.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _where(key: CredentialKey):
        return (
            CredentialModel.user_id == key.user_id,
            CredentialModel.provider_id == key.provider_id,
            CredentialModel.scope == (key.scope or ""),
        )

    async def _select(self, session: AsyncSession, key: CredentialKey) -> Optional[CredentialModel]:
        result = await session.execute(select(CredentialModel).where(*self._where(key)))
        return result.scalar_one_or_none()

    async def upsert(self, key: CredentialKey, record: CredentialRecord) -> CredentialRecord:
        """Insert, or overwrite payload + metadata of the existing row.

        A concurrent insert of the same identity surfaces as an IntegrityError
        on commit; the write is then replayed as an update (last write wins).
        """
        async with self._session_factory() as session:
            try:
                row = await self._write(session, key, record)
            except IntegrityError:
                await session.rollback()
                logger.debug("[Repository] Insert race on %s, retrying as update", key.storage_key())
                row = await self._write(session, key, record)
            return _to_record(row)

    async def _write(self, session: AsyncSession, key: CredentialKey, record: CredentialRecord) -> CredentialModel:
        now = datetime.now(timezone.utc)
        row = await self._select(session, key)
        if row is None:
            row = CredentialModel(
                id=str(uuid.uuid4()),
                user_id=key.user_id,
                provider_id=key.provider_id,
                scope=key.scope or "",
                created_at=record.created_at,
            )
            session.add(row)
        row.ciphertext = record.ciphertext
        row.iv = record.iv
        row.auth_tag = record.auth_tag
        row.meta = dict(record.metadata)
        row.updated_at = now
        await session.commit()
        await session.refresh(row)
        return row

    async def select_by_key(self, key: CredentialKey) -> Optional[CredentialRecord]:
        async with self._session_factory() as session:
            row = await self._select(session, key)
            return _to_record(row) if row else None

    async def select_all_by_user(self, user_id: str) -> list[CredentialRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(CredentialModel)
                .where(CredentialModel.user_id == user_id)
                .order_by(CredentialModel.updated_at.desc())
            )
            return [_to_record(row) for row in result.scalars().all()]

    async def delete_by_key(self, key: CredentialKey) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(delete(CredentialModel).where(*self._where(key)))
            await session.commit()
            return (result.rowcount or 0) > 0
