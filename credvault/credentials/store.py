"""EncryptedStore: the only component that handles plaintext at rest.

Plaintext goes in through ``store`` and comes out through ``get``. Every
other method works on metadata. Backend failures are wrapped in
:class:`StorageError` and never retried here; the caller owns retry policy.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from credvault.credentials.encryption import CredentialEncryption
from credvault.db.backend import StorageBackend
from credvault.exceptions import StorageError, VaultError
from credvault.types import (
    Credential, CredentialKey, CredentialRecord, CredentialSummary, VaultStatus,
)

logger = logging.getLogger(__name__)


class EncryptedStore:
    """Encrypts on write, authenticates and decrypts on read.

    Args:
        backend: Any :class:`StorageBackend`.
        encryption: A configured :class:`CredentialEncryption`.
    """

    def __init__(self, backend: StorageBackend, encryption: CredentialEncryption) -> None:
        self._backend = backend
        self._enc = encryption

    async def _call(self, op: str, key_text: str, coro):
        try:
            return await coro
        except VaultError:
            raise
        except Exception as exc:
            logger.error("[Store] %s failed for %s: %s", op, key_text, type(exc).__name__)
            raise StorageError(
                f"Storage {op} failed: {type(exc).__name__}",
                details={"operation": op, "key": key_text},
            ) from exc

    # ------------------------------------------------------------------
    # Plaintext in / out
    # ------------------------------------------------------------------

    async def store(
        self,
        provider_id: str,
        plaintext: str,
        user_id: str,
        scope: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Credential:
        """Encrypt *plaintext* and upsert it at ``(user_id, provider_id, scope)``.

        Returns the stored credential without payload.
        """
        key = CredentialKey(user_id=user_id, provider_id=provider_id, scope=scope or None)
        payload = self._enc.encrypt(plaintext, key.associated_data())
        record = CredentialRecord(
            user_id=user_id,
            provider_id=provider_id,
            scope=key.scope,
            ciphertext=payload.ciphertext,
            iv=payload.iv,
            auth_tag=payload.auth_tag,
            metadata=dict(metadata or {}),
        )
        stored = await self._call("upsert", key.storage_key(), self._backend.upsert(key, record))
        logger.debug("[Store] Stored credential %s", key.storage_key())
        return self._public(stored)

    async def get(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> Optional[str]:
        """Decrypt the credential at the identity, or None.

        Raises:
            DecryptionError: stored payload failed authentication
            StorageError: backend failure
        """
        key = CredentialKey(user_id=user_id, provider_id=provider_id, scope=scope or None)
        record = await self._call("select", key.storage_key(), self._backend.select_by_key(key))
        if record is None:
            return None
        try:
            return self._enc.decrypt(record.payload, key.associated_data())
        except VaultError as exc:
            exc.details.setdefault("key", key.storage_key())
            logger.error("[Store] Decryption failed for %s", key.storage_key())
            raise

    # ------------------------------------------------------------------
    # Metadata only
    # ------------------------------------------------------------------

    async def get_record(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> Optional[Credential]:
        key = CredentialKey(user_id=user_id, provider_id=provider_id, scope=scope or None)
        record = await self._call("select", key.storage_key(), self._backend.select_by_key(key))
        return self._public(record) if record else None

    async def delete(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> bool:
        """Hard delete. True iff a row existed and was removed."""
        key = CredentialKey(user_id=user_id, provider_id=provider_id, scope=scope or None)
        removed = await self._call("delete", key.storage_key(), self._backend.delete_by_key(key))
        if removed:
            logger.debug("[Store] Deleted credential %s", key.storage_key())
        return bool(removed)

    async def list(self, user_id: str) -> list[CredentialSummary]:
        """All credentials for *user_id*, most recently updated first."""
        records = await self._call("list", user_id, self._backend.select_all_by_user(user_id))
        summaries = [
            CredentialSummary(
                provider_id=r.provider_id,
                scope=r.scope,
                metadata=dict(r.metadata),
                created_at=r.created_at,
                updated_at=r.updated_at,
            )
            for r in records
        ]
        summaries.sort(key=lambda s: s.updated_at, reverse=True)
        return summaries

    async def status(self, user_id: str) -> VaultStatus:
        """Aggregate counts built from :meth:`list`."""
        by_provider: dict[str, int] = {}
        for summary in await self.list(user_id):
            by_provider[summary.provider_id] = by_provider.get(summary.provider_id, 0) + 1
        return VaultStatus(
            total_credentials=sum(by_provider.values()),
            providers=sorted(by_provider),
            by_provider=by_provider,
        )

    @staticmethod
    def _public(record: CredentialRecord) -> Credential:
        return Credential(
            user_id=record.user_id,
            provider_id=record.provider_id,
            scope=record.scope,
            metadata=dict(record.metadata),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
