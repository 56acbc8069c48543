"""Storage backends satisfying the vault's upsert/select/delete contract."""

from credvault.db.backend import InMemoryBackend, StorageBackend
from credvault.db.repository import SQLAlchemyBackend

__all__ = ["InMemoryBackend", "SQLAlchemyBackend", "StorageBackend"]
