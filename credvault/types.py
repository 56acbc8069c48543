"""All shared types, enums, and result shapes. Everything imports from here."""

from enum import Enum
from typing import Any, Optional
from datetime import datetime, timezone
from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Enums ──────────────────────────────────────────────────────────────

class CredentialType(str, Enum):
    OAUTH_TOKEN = "oauth_token"         # GitHub, GitLab personal access tokens
    API_KEY = "api_key"                 # OpenAI, Anthropic
    SSH_KEY = "ssh_key"
    BASIC_AUTH = "basic_auth"
    BEARER_TOKEN = "bearer_token"
    SESSION_COOKIE = "session_cookie"

class LivenessStatus(str, Enum):
    VALID = "valid"                     # provider accepted the token
    INVALID = "invalid"                 # 401/403, hard failure
    UNREACHABLE = "unreachable"         # timeout, network error, 5xx

class RecommendationContext(str, Enum):
    GENERAL = "general"
    CLONE_REPO = "clone_repo"           # can private repositories be cloned
    AI_FEATURES = "ai_features"         # is any AI provider configured

class OperationClass(str, Enum):
    SET = "set"
    GET = "get"
    DELETE = "delete"
    STATUS = "status"
    LIST = "list"
    CLONE = "clone"


# ── Storage Shapes ─────────────────────────────────────────────────────

class CredentialKey(BaseModel):
    """Unique identity of a stored credential. ``scope=None`` is the primary credential."""
    model_config = {"frozen": True}

    user_id: str
    provider_id: str
    scope: Optional[str] = None

    def storage_key(self) -> str:
        parts = [self.user_id, self.provider_id]
        if self.scope:
            parts.append(self.scope)
        return ":".join(parts)

    def associated_data(self) -> bytes:
        """Bytes bound into the AEAD tag so a payload only decrypts under its own identity."""
        return self.storage_key().encode()

class EncryptedPayload(BaseModel):
    ciphertext: str                     # hex
    iv: str                             # hex, 12 bytes
    auth_tag: str                       # hex, 16 bytes

class CredentialRecord(BaseModel):
    """Row shape exchanged with storage backends. Never leaves the store."""
    user_id: str
    provider_id: str
    scope: Optional[str] = None
    ciphertext: str
    iv: str
    auth_tag: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def key(self) -> CredentialKey:
        return CredentialKey(user_id=self.user_id, provider_id=self.provider_id, scope=self.scope)

    @property
    def payload(self) -> EncryptedPayload:
        return EncryptedPayload(ciphertext=self.ciphertext, iv=self.iv, auth_tag=self.auth_tag)

class Credential(BaseModel):
    """Stored credential as seen outside the store: identity, metadata, timestamps."""
    user_id: str
    provider_id: str
    scope: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

class CredentialSummary(BaseModel):
    """One entry of a listing. No plaintext, no ciphertext."""
    provider_id: str
    scope: Optional[str] = None
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
    updated_at: datetime

class VaultStatus(BaseModel):
    total_credentials: int = 0
    providers: list[str] = Field(default_factory=list)
    by_provider: dict[str, int] = Field(default_factory=dict)


# ── Validation Shapes ──────────────────────────────────────────────────

class FormatCheck(BaseModel):
    valid: bool
    reason: Optional[str] = None

class LivenessResult(BaseModel):
    status: LivenessStatus
    provider_user: Optional[str] = None
    scopes: list[str] = Field(default_factory=list)
    reason: Optional[str] = None
    checked_at: datetime = Field(default_factory=utcnow)

class RateLimitDecision(BaseModel):
    allowed: bool
    retry_after_seconds: Optional[int] = None  # set only when denied
    remaining: int = 0


# ── Operation Results ──────────────────────────────────────────────────

class SetCredentialResult(BaseModel):
    success: bool = True
    provider_id: str
    scope: Optional[str] = None
    masked_value: str
    validated: bool = False             # True only after a successful liveness check
    provider_user: Optional[str] = None
    warning: Optional[str] = None

class GetCredentialResult(BaseModel):
    success: bool
    provider_id: str
    scope: Optional[str] = None
    masked_value: Optional[str] = None
    reason: Optional[str] = None        # "not_found" on miss
    raw_available: bool = False         # raw channel exists for internal collaborators
    metadata: dict[str, Any] = Field(default_factory=dict)
    updated_at: Optional[datetime] = None

class DeleteCredentialResult(BaseModel):
    success: bool
    removed: bool = False
    needs_confirmation: bool = False
    message: str = ""

class ListCredentialsResult(BaseModel):
    credentials: list[CredentialSummary] = Field(default_factory=list)
    total: int = 0

class StatusResult(BaseModel):
    configured_providers: list[str] = Field(default_factory=list)
    total_credentials: int = 0
    by_provider: dict[str, int] = Field(default_factory=dict)
    available_providers: list[str] = Field(default_factory=list)

class ValidateCredentialResult(BaseModel):
    valid: bool
    provider_id: str
    reason: Optional[str] = None
    hint: Optional[str] = None
    provider_user: Optional[str] = None
    validated: bool = False             # liveness confirmed upstream
    warning: Optional[str] = None


# ── Projects & Analytics ───────────────────────────────────────────────

class ProjectCredentialEntry(BaseModel):
    provider_id: str
    environment: str = "default"
    scope: str
    created_at: datetime
    updated_at: datetime

class ProjectSummary(BaseModel):
    name: str
    environments: list[str] = Field(default_factory=list)
    providers: list[str] = Field(default_factory=list)
    credential_count: int = 0

class CloneEntryResult(BaseModel):
    provider_id: str
    environment: str = "default"
    source_scope: Optional[str] = None
    target_scope: Optional[str] = None
    success: bool
    error: Optional[str] = None

class CloneProjectResult(BaseModel):
    source_project: str
    target_project: str
    cloned: list[CloneEntryResult] = Field(default_factory=list)
    failed: list[CloneEntryResult] = Field(default_factory=list)

class ProjectCredentials(BaseModel):
    project: str
    user_id: str
    credentials: dict[str, dict[str, ProjectCredentialEntry]] = Field(default_factory=dict)  # provider -> env -> entry
    total_credentials: int = 0

class DeleteProjectResult(BaseModel):
    success: bool
    project: str
    needs_confirmation: bool = False
    deleted_count: int = 0
    message: str = ""

class UsageEvent(BaseModel):
    user_id: str
    provider_id: str
    scope: Optional[str] = None
    operation: str
    success: bool = True
    at: datetime = Field(default_factory=utcnow)

class UsageStats(BaseModel):
    user_id: str
    period_days: int
    total_operations: int = 0
    successful_operations: int = 0
    failed_operations: int = 0
    by_provider: dict[str, int] = Field(default_factory=dict)
    by_operation: dict[str, int] = Field(default_factory=dict)
    last_used: dict[str, datetime] = Field(default_factory=dict)

class MostUsedEntry(BaseModel):
    provider_id: str
    scope: Optional[str] = None
    usage_count: int
    last_used: datetime

class CredentialHealth(BaseModel):
    provider_id: str
    scope: Optional[str] = None
    age_days: int
    health: str                         # "healthy" | "warning"
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

class HealthRecommendation(BaseModel):
    priority: str                       # "critical" | "high" | "medium" | "low"
    action: str
    reason: str
    scope: Optional[str] = None
    command: Optional[str] = None       # follow-up the caller can run, e.g. "credvault help github"

class CredentialHealthReport(BaseModel):
    user_id: str
    total_credentials: int = 0
    healthy: list[CredentialHealth] = Field(default_factory=list)
    warning: list[CredentialHealth] = Field(default_factory=list)
    recommendations: list[HealthRecommendation] = Field(default_factory=list)

class RecommendationReport(BaseModel):
    user_id: str
    context: RecommendationContext = RecommendationContext.GENERAL
    recommendations: list[HealthRecommendation] = Field(default_factory=list)
    ready: Optional[bool] = None        # only set for task contexts
    summary: str = ""

class NextActions(BaseModel):
    user_id: str
    quick_actions: list[HealthRecommendation] = Field(default_factory=list)
    tips: list[str] = Field(default_factory=list)
