"""Vault configuration. All env vars defined here with defaults."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class VaultConfig(BaseSettings):
    # ── App ──
    app_name: str = "credvault"
    environment: str = "development"           # "production" refuses an ephemeral master key
    debug: bool = False
    log_level: str = "INFO"

    # ── Encryption ──
    master_key: Optional[str] = None           # >= 32 chars; ephemeral key generated when unset
    encryption_salt: Optional[str] = None      # derived from master_key when unset
    kdf_iterations: int = Field(default=100_000, ge=100_000)

    # ── Database ──
    database_url: str = "sqlite+aiosqlite:///./credvault.db"

    # ── Rate Limits ──
    rate_limit_max_attempts: int = 5
    rate_limit_window_seconds: int = 60

    # ── Live Validation ──
    live_validation_timeout_seconds: float = 10.0
    validation_cache_ttl_seconds: int = 300
    validation_cache_prefix_length: int = 10
    validation_cache_max_entries: int = 100
    user_agent: str = "credvault/0.1.0"

    # ── Display & Hygiene ──
    mask_visible_chars: int = 4
    credential_rotation_days: int = 90
    recommended_providers: list[str] = ["github", "openai"]

    model_config = {"env_prefix": "CREDVAULT_", "env_file": ".env", "extra": "ignore"}

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"


config = VaultConfig()
