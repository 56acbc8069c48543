"""Shared capability interface for credential providers.

A provider knows three things about its secrets: what a well-formed one looks
like (``validate_credential``), how to present one to its API
(``get_auth_headers``), and which non-secret facts are worth keeping next to
it (``get_metadata``). Providers with a public "who am I" endpoint also
implement ``verify`` for optional liveness checks.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from credvault.types import CredentialType, FormatCheck, LivenessResult, LivenessStatus

logger = logging.getLogger(__name__)

MAX_CREDENTIAL_LENGTH = 255
METADATA_VERSION = "1.0.0"

_ALPHANUMERIC = re.compile(r"[a-zA-Z0-9]+")


class CredentialProvider(ABC):
    """Base class for every provider variant.

    Subclasses set the class attributes and override ``validate_credential``.
    Everything else has a sensible default built on those attributes.
    """

    provider_id: str = ""
    display_name: str = ""
    supported_types: tuple[CredentialType, ...] = ()
    required_scopes: tuple[str, ...] = ()
    recommended_scopes: tuple[str, ...] = ()
    token_prefixes: tuple[str, ...] = ()
    min_length: int = 20
    max_length: int = MAX_CREDENTIAL_LENGTH
    docs_url: str = ""                  # where a user creates a new credential
    auth_url: Optional[str] = None      # OAuth endpoints, informational only
    token_url: Optional[str] = None
    user_url: Optional[str] = None      # liveness endpoint, None = no live validation
    value_label: str = "Token"

    # ── Format ──

    @abstractmethod
    def validate_credential(self, value: Any) -> FormatCheck:
        """Pure format check. Never touches the network."""

    def _check_non_empty(self, value: Any) -> Optional[FormatCheck]:
        if not value or not isinstance(value, str):
            return FormatCheck(valid=False, reason=f"{self.value_label} must be a non-empty string")
        return None

    def _check_length(self, value: str) -> Optional[FormatCheck]:
        if len(value) < self.min_length:
            return FormatCheck(
                valid=False,
                reason=f"{self.value_label} is too short (minimum {self.min_length} characters)",
            )
        if len(value) > self.max_length:
            return FormatCheck(
                valid=False,
                reason=f"{self.value_label} exceeds maximum length ({self.max_length} characters)",
            )
        return None

    def _has_prefix(self, value: str) -> bool:
        return not self.token_prefixes or value.startswith(self.token_prefixes)

    @staticmethod
    def _is_alphanumeric(segment: str) -> bool:
        return bool(segment) and bool(_ALPHANUMERIC.fullmatch(segment))

    @property
    def remediation_hint(self) -> str:
        """Caller-facing advice attached to format failures."""
        parts = [f"{self.display_name} credentials"]
        if self.token_prefixes:
            parts.append("must start with " + ", ".join(self.token_prefixes) + " and")
        parts.append(f"must be at least {self.min_length} characters.")
        hint = " ".join(parts)
        if self.docs_url:
            hint += f" Get one at {self.docs_url}"
        return hint

    # ── Presentation ──

    def get_auth_headers(self, value: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {value}"}

    def get_metadata(self, value: str) -> dict[str, Any]:
        """Non-secret facts stored alongside the ciphertext."""
        meta: dict[str, Any] = {"provider": self.provider_id, "version": METADATA_VERSION}
        prefix = self.token_prefix(value)
        if prefix:
            meta["token_prefix"] = prefix
        return meta

    def token_prefix(self, value: str) -> Optional[str]:
        for prefix in self.token_prefixes:
            if value.startswith(prefix):
                return prefix
        return None

    def get_storage_key(self, user_id: str, scope: Optional[str] = None) -> str:
        parts = [user_id, self.provider_id]
        if scope:
            parts.append(scope)
        return ":".join(parts)

    def is_type_supported(self, credential_type: CredentialType) -> bool:
        return credential_type in self.supported_types

    # ── Liveness ──

    @property
    def supports_live_validation(self) -> bool:
        return self.user_url is not None

    def _parse_user(self, response: httpx.Response) -> LivenessResult:
        """Turn a 2xx ``user_url`` response into a VALID result."""
        return LivenessResult(status=LivenessStatus.VALID)

    @staticmethod
    def _user_field(response: httpx.Response, field: str) -> Optional[str]:
        """String *field* of a JSON object body, or None for any other body."""
        try:
            body = response.json()
        except ValueError:
            return None
        if not isinstance(body, dict):
            return None
        value = body.get(field)
        return value if isinstance(value, str) else None

    async def verify(self, value: str, client: httpx.AsyncClient) -> LivenessResult:
        """Ask the provider whether *value* is live.

        401 and 403 are definitive rejections. Anything else that is not a
        2xx (timeouts, transport errors, 5xx) is reported as UNREACHABLE so the
        caller can decide to proceed. Timeouts come from *client*.
        """
        if not self.supports_live_validation:
            return LivenessResult(status=LivenessStatus.UNREACHABLE, reason="Live validation not supported")

        try:
            response = await client.get(self.user_url, headers=self.get_auth_headers(value))
        except httpx.TimeoutException:
            logger.warning("[Provider] %s liveness check timed out", self.provider_id)
            return LivenessResult(status=LivenessStatus.UNREACHABLE, reason="Provider API timed out")
        except httpx.HTTPError as exc:
            logger.warning("[Provider] %s liveness check failed: %s", self.provider_id, type(exc).__name__)
            return LivenessResult(status=LivenessStatus.UNREACHABLE, reason="Provider API unreachable")

        if response.status_code == 401:
            return LivenessResult(status=LivenessStatus.INVALID, reason=f"{self.value_label} is invalid or expired")
        if response.status_code == 403:
            return LivenessResult(status=LivenessStatus.INVALID, reason=f"{self.value_label} lacks required permissions")
        if response.is_success:
            return self._parse_user(response)

        logger.warning("[Provider] %s liveness check returned HTTP %d", self.provider_id, response.status_code)
        return LivenessResult(
            status=LivenessStatus.UNREACHABLE,
            reason=f"Provider API returned HTTP {response.status_code}",
        )

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.provider_id!r}>"
