"""Test fixtures: deterministic encryption, in-memory storage, fake clock.

All tests should use these fixtures for consistency.
"""

import pytest

from credvault.auth.rate_limiter import RateLimiter
from credvault.core.analytics import CredentialAnalytics
from credvault.core.vault import VaultController
from credvault.credentials.encryption import CredentialEncryption
from credvault.credentials.store import EncryptedStore
from credvault.credentials.validation_cache import ValidationCache
from credvault.db.backend import InMemoryBackend
from credvault.providers.registry import default_registry

MASTER_KEY = "test-master-key-0123456789abcdefghijklmnop"

GITHUB_TOKEN = "ghp_" + "a1B2c3D4e5" * 4           # 44 chars
GITHUB_TOKEN_2 = "ghp_" + "Z9y8X7w6V5" * 4
GITLAB_TOKEN = "glpat-" + "x" * 20
OPENAI_KEY = "sk-" + "proj" * 10
ANTHROPIC_KEY = "sk-ant-" + "api03" * 6
BITBUCKET_TOKEN = "ATBB" + "q" * 28

GITHUB_USER_URL = "https://api.github.com/user"
GITLAB_USER_URL = "https://gitlab.com/api/v4/user"


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def encryption():
    """Session-scoped so PBKDF2 runs once."""
    return CredentialEncryption(master_key=MASTER_KEY)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend():
    return InMemoryBackend()


@pytest.fixture
def store(backend, encryption):
    return EncryptedStore(backend, encryption)


@pytest.fixture
def registry():
    return default_registry()


@pytest.fixture
def limiter(clock):
    return RateLimiter(max_attempts=5, window_seconds=60, clock=clock)


@pytest.fixture
def validation_cache(clock):
    return ValidationCache(ttl_seconds=300, prefix_length=10, max_entries=100, clock=clock)


@pytest.fixture
def analytics():
    return CredentialAnalytics()


class RecordingCallback:
    """Captures every hook call as (hook, kwargs)."""

    def __init__(self):
        self.events: list[tuple[str, dict]] = []

    async def on_credential_stored(self, **kwargs):
        self.events.append(("on_credential_stored", kwargs))

    async def on_credential_deleted(self, **kwargs):
        self.events.append(("on_credential_deleted", kwargs))

    async def on_credential_cloned(self, **kwargs):
        self.events.append(("on_credential_cloned", kwargs))

    async def on_error(self, **kwargs):
        self.events.append(("on_error", kwargs))


@pytest.fixture
def recorder():
    return RecordingCallback()


@pytest.fixture
def vault(registry, store, limiter, validation_cache, analytics, recorder):
    """Controller wired with in-memory parts and a fake clock."""
    return VaultController(
        registry=registry,
        store=store,
        rate_limiter=limiter,
        validation_cache=validation_cache,
        analytics=analytics,
        callbacks=[recorder],
        live_timeout=2.0,
    )
