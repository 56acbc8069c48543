"""Factory functions wiring a VaultController from configuration.

This is the only place that picks concrete collaborators. Tests build a
controller directly with in-memory parts instead.

Usage:
    vault = create_vault()                              # in-memory storage
    vault, engine = await create_persistent_vault()     # SQL storage from CREDVAULT_DATABASE_URL
"""

import logging
from typing import Optional

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine

from credvault.auth.rate_limiter import RateLimiter
from credvault.callbacks.logging import LoggingCallback
from credvault.config import VaultConfig
from credvault.core.analytics import CredentialAnalytics
from credvault.core.vault import VaultController
from credvault.credentials.encryption import CredentialEncryption
from credvault.credentials.store import EncryptedStore
from credvault.credentials.validation_cache import ValidationCache
from credvault.db.backend import InMemoryBackend, StorageBackend
from credvault.db.database import init_db, make_engine, make_session_factory
from credvault.db.repository import SQLAlchemyBackend
from credvault.providers.registry import ProviderRegistry, default_registry

logger = logging.getLogger(__name__)


def create_encryption(cfg: VaultConfig) -> CredentialEncryption:
    return CredentialEncryption(
        master_key=cfg.master_key,
        salt=cfg.encryption_salt,
        iterations=cfg.kdf_iterations,
        production=cfg.is_production,
    )


def create_vault(
    cfg: Optional[VaultConfig] = None,
    backend: Optional[StorageBackend] = None,
    registry: Optional[ProviderRegistry] = None,
    callbacks: list = None,
    http_client: Optional[httpx.AsyncClient] = None,
) -> VaultController:
    """Build a VaultController.

    Args:
        cfg: Settings; a fresh :class:`VaultConfig` from the environment when None.
        backend: Storage backend; in-memory when None.
        registry: Providers; the built-in five when None.
        callbacks: Defaults to a single :class:`LoggingCallback` audit logger.
        http_client: Shared client for liveness checks.
    """
    cfg = cfg or VaultConfig()
    if backend is None:
        logger.info("[Factory] No storage backend given, using in-memory storage")
        backend = InMemoryBackend()

    return VaultController(
        registry=registry or default_registry(),
        store=EncryptedStore(backend, create_encryption(cfg)),
        rate_limiter=RateLimiter(
            max_attempts=cfg.rate_limit_max_attempts,
            window_seconds=cfg.rate_limit_window_seconds,
        ),
        validation_cache=ValidationCache(
            ttl_seconds=cfg.validation_cache_ttl_seconds,
            prefix_length=cfg.validation_cache_prefix_length,
            max_entries=cfg.validation_cache_max_entries,
        ),
        analytics=CredentialAnalytics(),
        callbacks=[LoggingCallback()] if callbacks is None else callbacks,
        http_client=http_client,
        live_timeout=cfg.live_validation_timeout_seconds,
        mask_visible_chars=cfg.mask_visible_chars,
        user_agent=cfg.user_agent,
        rotation_days=cfg.credential_rotation_days,
        recommended_providers=tuple(cfg.recommended_providers),
    )


async def create_persistent_vault(
    cfg: Optional[VaultConfig] = None,
    callbacks: list = None,
) -> tuple[VaultController, AsyncEngine]:
    """SQL-backed vault. Creates the schema if missing.

    The caller owns the returned engine and should ``await engine.dispose()``.
    """
    cfg = cfg or VaultConfig()
    engine = make_engine(cfg.database_url, echo=cfg.debug)
    await init_db(engine)
    backend = SQLAlchemyBackend(make_session_factory(engine))
    return create_vault(cfg, backend=backend, callbacks=callbacks), engine
