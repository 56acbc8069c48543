"""Storage contract consumed by the encrypted store, plus an in-memory backend.

The vault needs exactly four operations from persistence. Uniqueness of
``(user_id, provider_id, scope)`` is the backend's job: ``upsert`` on an
existing identity overwrites payload and metadata, keeps ``created_at`` and
bumps ``updated_at``.
"""

from typing import Optional, Protocol, runtime_checkable

from credvault.types import CredentialKey, CredentialRecord, utcnow


@runtime_checkable
class StorageBackend(Protocol):
    """Interface every persistence backend implements."""

    async def upsert(self, key: CredentialKey, record: CredentialRecord) -> CredentialRecord:
        """Insert or overwrite the row at *key*. Returns the row as stored."""
        ...

    async def select_by_key(self, key: CredentialKey) -> Optional[CredentialRecord]:
        ...

    async def select_all_by_user(self, user_id: str) -> list[CredentialRecord]:
        ...

    async def delete_by_key(self, key: CredentialKey) -> bool:
        """Hard delete. True iff a row existed."""
        ...


def _identity(key: CredentialKey) -> tuple[str, str, str]:
    return (key.user_id, key.provider_id, key.scope or "")


class InMemoryBackend:
    """Dict-backed backend for tests and throwaway vaults. Lost on restart."""

    def __init__(self):
        self._rows: dict[tuple[str, str, str], CredentialRecord] = {}

    async def upsert(self, key: CredentialKey, record: CredentialRecord) -> CredentialRecord:
        identity = _identity(key)
        existing = self._rows.get(identity)
        now = utcnow()
        stored = record.model_copy(update={
            "user_id": key.user_id,
            "provider_id": key.provider_id,
            "scope": key.scope or None,
            "created_at": existing.created_at if existing else record.created_at,
            "updated_at": now,
        })
        self._rows[identity] = stored
        return stored

    async def select_by_key(self, key: CredentialKey) -> Optional[CredentialRecord]:
        return self._rows.get(_identity(key))

    async def select_all_by_user(self, user_id: str) -> list[CredentialRecord]:
        return [r for (uid, _, _), r in self._rows.items() if uid == user_id]

    async def delete_by_key(self, key: CredentialKey) -> bool:
        return self._rows.pop(_identity(key), None) is not None

    def __len__(self) -> int:
        return len(self._rows)
