"""VaultController: the request pipeline in front of the encrypted store.

Write path:
    RATE_CHECK -> PROVIDER_LOOKUP -> FORMAT_VALIDATE -> [LIVE_VALIDATE]
    -> ENCRYPT_AND_STORE -> RESPOND_MASKED -> RESET_RATE_LIMIT -> AUDIT

Rate limiting runs before any format or liveness check, so a denied caller
learns nothing about the credential. Liveness failures other than an explicit
401/403 from the provider never block a write: the credential is stored with
``validated=False`` and a warning.

Plaintext leaves this class only through :meth:`VaultController.get_raw_credential`
and :meth:`VaultController.get_auth_headers`. Every other result carries a
masked value or metadata.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Optional

import httpx

from credvault.auth.rate_limiter import RateLimiter, rate_limit_key
from credvault.core.analytics import (
    CredentialAnalytics, DEFAULT_RECOMMENDED_PROVIDERS, DEFAULT_ROTATION_DAYS, get_recommendations,
    suggest_next_actions,
)
from credvault.credentials.masking import mask_secret
from credvault.credentials.store import EncryptedStore
from credvault.credentials.validation_cache import ValidationCache
from credvault.exceptions import NotFoundError, ValidationError, VaultError
from credvault.providers.base import CredentialProvider
from credvault.providers.registry import ProviderRegistry
from credvault.types import (
    CredentialHealthReport, CredentialSummary, DeleteCredentialResult, GetCredentialResult,
    ListCredentialsResult, LivenessResult, LivenessStatus, NextActions, OperationClass,
    RecommendationContext, RecommendationReport, SetCredentialResult, StatusResult, UsageStats,
    ValidateCredentialResult,
)

logger = logging.getLogger(__name__)

_USER_ID_PATTERN = re.compile(r"[a-zA-Z0-9_.-]{1,255}")
MAX_SCOPE_LENGTH = 255
LIVENESS_WARNING = "Could not reach {name} to confirm the credential"


class VaultController:
    """Orchestrates rate limiting, validation, encryption and masking.

    Every collaborator is injected; see :func:`credvault.factory.create_vault`
    for the standard wiring.

    Args:
        registry: Provider definitions.
        store: Encrypted persistence.
        rate_limiter: Per ``user:operation`` attempt counter.
        validation_cache: Recent successful liveness checks. None disables caching.
        analytics: Usage tracking and credential health. Optional.
        callbacks: Objects implementing :class:`~credvault.callbacks.base.VaultCallback`.
        http_client: Shared client for liveness checks. When None a short-lived
            client is opened per check.
        live_timeout: Upper bound in seconds for one liveness check.
        mask_visible_chars: Characters kept at each end of a masked value.
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        store: EncryptedStore,
        rate_limiter: RateLimiter,
        validation_cache: Optional[ValidationCache] = None,
        analytics: Optional[CredentialAnalytics] = None,
        callbacks: list = None,
        http_client: Optional[httpx.AsyncClient] = None,
        live_timeout: float = 10.0,
        mask_visible_chars: int = 4,
        user_agent: str = "credvault",
        rotation_days: int = DEFAULT_ROTATION_DAYS,
        recommended_providers: tuple[str, ...] = DEFAULT_RECOMMENDED_PROVIDERS,
    ) -> None:
        self.registry = registry
        self._store = store
        self._limiter = rate_limiter
        self._cache = validation_cache
        self._analytics = analytics
        self.callbacks = callbacks or []
        self._http = http_client
        self._live_timeout = live_timeout
        self._visible = mask_visible_chars
        self._user_agent = user_agent
        self._rotation_days = rotation_days
        self._recommended = tuple(recommended_providers)

    # ------------------------------------------------------------------
    # Input hygiene
    # ------------------------------------------------------------------

    @staticmethod
    def _check_user_id(user_id: Any) -> str:
        if not isinstance(user_id, str) or not _USER_ID_PATTERN.fullmatch(user_id):
            raise ValidationError(
                "Invalid user id: use 1-255 characters from letters, digits, '_', '.', '-'",
                hint="User ids are opaque identifiers such as 'alice' or 'team-ci.bot'",
            )
        return user_id

    @staticmethod
    def _normalize_scope(scope: Optional[str]) -> Optional[str]:
        if scope is None:
            return None
        if not isinstance(scope, str):
            raise ValidationError("Scope must be a string")
        scope = scope.strip()
        if not scope:
            return None
        if len(scope) > MAX_SCOPE_LENGTH:
            raise ValidationError(f"Scope exceeds maximum length ({MAX_SCOPE_LENGTH} characters)")
        return scope

    def _mask(self, value: str) -> str:
        return mask_secret(value, self._visible)

    def _enforce(self, user_id: str, operation: OperationClass) -> str:
        key = rate_limit_key(user_id, operation.value)
        self._limiter.enforce(key, operation.value)
        return key

    def _format_error(self, provider: CredentialProvider, reason: str) -> ValidationError:
        return ValidationError(
            f"Invalid {provider.display_name} credential: {reason}",
            reason=reason,
            hint=provider.remediation_hint,
            provider_id=provider.provider_id,
        )

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------

    async def _verify(self, provider: CredentialProvider, value: str) -> LivenessResult:
        if self._http is not None:
            return await provider.verify(value, self._http)
        async with httpx.AsyncClient(
            timeout=self._live_timeout,
            headers={"User-Agent": self._user_agent},
        ) as client:
            return await provider.verify(value, client)

    async def _check_liveness(self, provider: CredentialProvider, value: str) -> LivenessResult:
        """Live-validate *value*, consulting and feeding the cache.

        Bounded by ``live_timeout``; a timeout becomes UNREACHABLE. Caller
        cancellation propagates and leaves the cache untouched.
        """
        if self._cache is not None:
            cached = self._cache.get(provider.provider_id, value)
            if cached is not None:
                logger.debug("[Vault] Liveness cache hit for %s", provider.provider_id)
                return cached

        try:
            result = await asyncio.wait_for(self._verify(provider, value), timeout=self._live_timeout)
        except asyncio.TimeoutError:
            logger.warning("[Vault] %s liveness check exceeded %ss", provider.provider_id, self._live_timeout)
            return LivenessResult(status=LivenessStatus.UNREACHABLE, reason="Provider API timed out")

        if self._cache is not None:
            self._cache.put(provider.provider_id, value, result)
        return result

    # ------------------------------------------------------------------
    # Side effects
    # ------------------------------------------------------------------

    async def _emit(self, hook: str, **kwargs: Any) -> None:
        for cb in self.callbacks:
            method = getattr(cb, hook, None)
            if method is None:
                continue
            try:
                await method(**kwargs)
            except Exception as cb_exc:
                logger.warning("[Vault] Callback error on '%s': %s", hook, cb_exc)

    def _record(self, user_id: str, provider_id: str, operation: str, scope: Optional[str], success: bool = True) -> None:
        if self._analytics is not None:
            self._analytics.record_usage(user_id, provider_id, operation, scope=scope, success=success)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def set_credential(
        self,
        provider_id: str,
        value: str,
        user_id: str,
        scope: Optional[str] = None,
        skip_live_validation: bool = False,
        metadata: Optional[dict[str, Any]] = None,
    ) -> SetCredentialResult:
        """Validate, encrypt and store *value*.

        Raises:
            RateLimitError: too many ``set`` attempts in the window
            ProviderUnknownError: *provider_id* not registered
            ValidationError: bad user id or scope, bad format, or rejected by the provider
            StorageError: backend failure
        """
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.SET)
        provider = self.registry.get(provider_id)
        scope = self._normalize_scope(scope)

        check = provider.validate_credential(value)
        if not check.valid:
            raise self._format_error(provider, check.reason)

        validated = False
        provider_user = None
        warning = None
        live_scopes: list[str] = []
        if not skip_live_validation and provider.supports_live_validation:
            live = await self._check_liveness(provider, value)
            if live.status == LivenessStatus.INVALID:
                raise self._format_error(provider, live.reason or "Rejected by provider")
            if live.status == LivenessStatus.VALID:
                validated = True
                provider_user = live.provider_user
                live_scopes = live.scopes
            else:
                warning = LIVENESS_WARNING.format(name=provider.display_name) + "; stored unverified"
                logger.warning("[Vault] Storing unverified %s credential for %s: %s",
                               provider_id, user_id, live.reason)

        stored_meta = dict(metadata or {})
        stored_meta.update(provider.get_metadata(value))
        stored_meta["validated"] = validated
        if provider_user:
            stored_meta["username"] = provider_user
        if live_scopes:
            stored_meta["scopes"] = live_scopes

        try:
            await self._store.store(provider_id, value, user_id, scope, stored_meta)
        except VaultError as exc:
            self._record(user_id, provider_id, OperationClass.SET.value, scope, success=False)
            await self._emit("on_error", error=exc, context={"operation": "set", "provider": provider_id, "user": user_id})
            raise

        self._limiter.reset(rate_key)
        self._record(user_id, provider_id, OperationClass.SET.value, scope)
        await self._emit("on_credential_stored", provider_id=provider_id, user_id=user_id,
                         scope=scope, validated=validated)
        logger.info("[Vault] Stored %s", provider.get_storage_key(user_id, scope))

        return SetCredentialResult(
            provider_id=provider_id,
            scope=scope,
            masked_value=self._mask(value),
            validated=validated,
            provider_user=provider_user,
            warning=warning,
        )

    async def get_credential(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> GetCredentialResult:
        """Masked view of a stored credential, or ``reason="not_found"``.

        Raises:
            DecryptionError: stored payload failed authentication
        """
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.GET)
        self.registry.get(provider_id)
        scope = self._normalize_scope(scope)

        plaintext = await self._store.get(provider_id, user_id, scope)
        if plaintext is None:
            return GetCredentialResult(success=False, provider_id=provider_id, scope=scope, reason="not_found")

        record = await self._store.get_record(provider_id, user_id, scope)
        self._limiter.reset(rate_key)
        self._record(user_id, provider_id, OperationClass.GET.value, scope)
        return GetCredentialResult(
            success=True,
            provider_id=provider_id,
            scope=scope,
            masked_value=self._mask(plaintext),
            raw_available=True,
            metadata=record.metadata if record else {},
            updated_at=record.updated_at if record else None,
        )

    async def get_raw_credential(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> str:
        """Plaintext for collaborators that must act on the secret.

        Not rate limited; never expose the result to an external caller.

        Raises:
            NotFoundError: nothing stored at the identity
            DecryptionError: stored payload failed authentication
        """
        user_id = self._check_user_id(user_id)
        provider = self.registry.get(provider_id)
        scope = self._normalize_scope(scope)
        plaintext = await self._store.get(provider_id, user_id, scope)
        if plaintext is None:
            storage_key = provider.get_storage_key(user_id, scope)
            raise NotFoundError(f"No {provider.display_name} credential at '{storage_key}'", storage_key=storage_key)
        self._record(user_id, provider_id, "raw_access", scope)
        return plaintext

    async def get_auth_headers(self, provider_id: str, user_id: str, scope: Optional[str] = None) -> dict[str, str]:
        """Outbound request headers built from the stored credential."""
        value = await self.get_raw_credential(provider_id, user_id, scope)
        return self.registry.get(provider_id).get_auth_headers(value)

    async def delete_credential(
        self,
        provider_id: str,
        user_id: str,
        scope: Optional[str] = None,
        confirm: bool = False,
    ) -> DeleteCredentialResult:
        """Hard delete, but only with ``confirm=True``.

        Without confirmation nothing is touched and a non-error
        ``needs_confirmation`` result comes back.
        """
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.DELETE)
        provider = self.registry.get(provider_id)
        scope = self._normalize_scope(scope)
        storage_key = provider.get_storage_key(user_id, scope)

        if not confirm:
            return DeleteCredentialResult(
                success=False,
                needs_confirmation=True,
                message=f"Deleting '{storage_key}' is permanent. Repeat with confirm=True to proceed.",
            )

        removed = await self._store.delete(provider_id, user_id, scope)
        if not removed:
            return DeleteCredentialResult(success=False, message=f"No credential found at '{storage_key}'")

        self._limiter.reset(rate_key)
        self._record(user_id, provider_id, OperationClass.DELETE.value, scope)
        await self._emit("on_credential_deleted", provider_id=provider_id, user_id=user_id, scope=scope)
        logger.info("[Vault] Deleted %s", storage_key)
        return DeleteCredentialResult(success=True, removed=True, message=f"Deleted '{storage_key}'")

    async def list_credentials(self, user_id: str) -> ListCredentialsResult:
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.LIST)
        credentials = await self._store.list(user_id)
        self._limiter.reset(rate_key)
        return ListCredentialsResult(credentials=credentials, total=len(credentials))

    async def get_status(self, user_id: str) -> StatusResult:
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.STATUS)
        status = await self._store.status(user_id)
        self._limiter.reset(rate_key)
        return StatusResult(
            configured_providers=status.providers,
            total_credentials=status.total_credentials,
            by_provider=status.by_provider,
            available_providers=self.registry.get_provider_ids(),
        )

    async def validate_credential(self, provider_id: str, value: str, live: bool = True) -> ValidateCredentialResult:
        """Format (and optionally liveness) check with no persistence.

        Raises:
            ProviderUnknownError: *provider_id* not registered
        """
        provider = self.registry.get(provider_id)
        check = provider.validate_credential(value)
        if not check.valid:
            return ValidateCredentialResult(
                valid=False, provider_id=provider_id, reason=check.reason, hint=provider.remediation_hint,
            )

        if not live or not provider.supports_live_validation:
            return ValidateCredentialResult(valid=True, provider_id=provider_id)

        result = await self._check_liveness(provider, value)
        if result.status == LivenessStatus.INVALID:
            return ValidateCredentialResult(
                valid=False, provider_id=provider_id, reason=result.reason, hint=provider.remediation_hint,
            )
        if result.status == LivenessStatus.VALID:
            return ValidateCredentialResult(
                valid=True, provider_id=provider_id, validated=True, provider_user=result.provider_user,
            )
        return ValidateCredentialResult(
            valid=True, provider_id=provider_id,
            warning=LIVENESS_WARNING.format(name=provider.display_name),
        )

    async def clone_credential(
        self,
        provider_id: str,
        user_id: str,
        source_scope: Optional[str],
        target_scope: Optional[str],
        metadata: Optional[dict[str, Any]] = None,
    ) -> SetCredentialResult:
        """Copy the plaintext at *source_scope* into an independent record at *target_scope*.

        Raises:
            ValidationError: source and target are the same scope
            NotFoundError: nothing stored at the source
        """
        user_id = self._check_user_id(user_id)
        rate_key = self._enforce(user_id, OperationClass.CLONE)
        provider = self.registry.get(provider_id)
        source_scope = self._normalize_scope(source_scope)
        target_scope = self._normalize_scope(target_scope)
        if source_scope == target_scope:
            raise ValidationError("Source and target scope must differ", provider_id=provider_id)

        value = await self._store.get(provider_id, user_id, source_scope)
        if value is None:
            storage_key = provider.get_storage_key(user_id, source_scope)
            raise NotFoundError(f"No {provider.display_name} credential at '{storage_key}'", storage_key=storage_key)
        source = await self._store.get_record(provider_id, user_id, source_scope)

        cloned_meta = dict(source.metadata if source else {})
        cloned_meta.update(metadata or {})
        cloned_meta["cloned_from"] = source_scope or "primary"
        await self._store.store(provider_id, value, user_id, target_scope, cloned_meta)

        self._limiter.reset(rate_key)
        self._record(user_id, provider_id, OperationClass.CLONE.value, target_scope)
        await self._emit("on_credential_cloned", provider_id=provider_id, user_id=user_id,
                         source_scope=source_scope, target_scope=target_scope)
        logger.info("[Vault] Cloned %s -> %s", provider.get_storage_key(user_id, source_scope),
                    provider.get_storage_key(user_id, target_scope))

        return SetCredentialResult(
            provider_id=provider_id,
            scope=target_scope,
            masked_value=self._mask(value),
            validated=bool(cloned_meta.get("validated", False)),
            provider_user=cloned_meta.get("username"),
        )

    # ------------------------------------------------------------------
    # Help, health, usage
    # ------------------------------------------------------------------

    def get_credential_help(self, provider_id: Optional[str] = None) -> dict[str, Any]:
        """Where to get a credential and what it must look like.

        Raises:
            ProviderUnknownError: *provider_id* given but not registered
        """
        if provider_id:
            return _provider_help(self.registry.get(provider_id))
        return {
            "introduction": "Multi-provider credential management",
            "features": [
                "AES-256-GCM encryption at rest with a PBKDF2-derived key",
                "Provider-specific format validation",
                "Optional live validation against the provider API",
                "Per-user, per-operation rate limiting",
                "Project and environment scoped credentials",
            ],
            "providers": [_provider_help(p) for p in self.registry.get_all()],
            "security": [
                "Stored values are never returned unmasked to callers",
                "Deleting a credential requires explicit confirmation",
                "Audit logs record provider, user and scope only",
            ],
        }

    async def get_credential_health(self, user_id: str) -> CredentialHealthReport:
        """Rotation warnings and missing-provider recommendations."""
        user_id = self._check_user_id(user_id)
        credentials = await self._list_for_guidance(user_id)
        analytics = self._analytics or CredentialAnalytics()
        return analytics.get_credential_health(
            user_id, credentials, rotation_days=self._rotation_days,
            recommended_providers=self._recommended,
        )

    async def get_recommendations(
        self, user_id: str, context: Optional[str] = None,
    ) -> RecommendationReport:
        """Next steps for *context* (``clone_repo``, ``ai_features``) or in general.

        Raises:
            ValidationError: unknown context
        """
        user_id = self._check_user_id(user_id)
        try:
            ctx = RecommendationContext(context or RecommendationContext.GENERAL)
        except ValueError:
            known = ", ".join(c.value for c in RecommendationContext)
            raise ValidationError(f"Unknown recommendation context '{context}' (expected one of: {known})") from None
        credentials = await self._list_for_guidance(user_id)
        return get_recommendations(user_id, credentials, ctx)

    async def suggest_next_actions(self, user_id: str) -> NextActions:
        user_id = self._check_user_id(user_id)
        return suggest_next_actions(user_id, await self._list_for_guidance(user_id))

    async def _list_for_guidance(self, user_id: str) -> list[CredentialSummary]:
        rate_key = self._enforce(user_id, OperationClass.STATUS)
        credentials = await self._store.list(user_id)
        self._limiter.reset(rate_key)
        return credentials

    def get_usage_stats(self, user_id: str, days: int = 30) -> Optional[UsageStats]:
        if self._analytics is None:
            return None
        return self._analytics.get_usage_stats(self._check_user_id(user_id), days=days)

    def clear_validation_cache(self) -> None:
        if self._cache is not None:
            self._cache.clear()


def _provider_help(provider: CredentialProvider) -> dict[str, Any]:
    return {
        "provider_id": provider.provider_id,
        "name": provider.display_name,
        "token_prefixes": list(provider.token_prefixes),
        "min_length": provider.min_length,
        "max_length": provider.max_length,
        "token_url": provider.docs_url,
        "recommended_scopes": list(provider.recommended_scopes),
        "live_validation": provider.supports_live_validation,
        "hint": provider.remediation_hint,
    }
