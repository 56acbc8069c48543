"""Structured JSON audit logging for vault events."""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Optional

from credvault.callbacks.base import BaseCallback

logger = logging.getLogger("credvault.audit")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class LoggingCallback(BaseCallback):
    """Emits one JSON log line per successful vault mutation.

    Each line carries ``event``, ``ts``, ``provider``, ``user`` and ``scope``.
    Secrets, ciphertext and masked values are never included.

    Log level: INFO for mutations, ERROR for errors.
    Logger name: credvault.audit (configure in your logging setup)
    """

    async def on_credential_stored(
        self, provider_id: str, user_id: str, scope: Optional[str], validated: bool, **kwargs: Any
    ) -> None:
        logger.info(json.dumps({
            "event": "credential_stored",
            "ts": _now(),
            "provider": provider_id,
            "user": user_id,
            "scope": scope,
            "validated": validated,
        }))

    async def on_credential_deleted(
        self, provider_id: str, user_id: str, scope: Optional[str], **kwargs: Any
    ) -> None:
        logger.info(json.dumps({
            "event": "credential_deleted",
            "ts": _now(),
            "provider": provider_id,
            "user": user_id,
            "scope": scope,
        }))

    async def on_credential_cloned(
        self,
        provider_id: str,
        user_id: str,
        source_scope: Optional[str],
        target_scope: Optional[str],
        **kwargs: Any,
    ) -> None:
        logger.info(json.dumps({
            "event": "credential_cloned",
            "ts": _now(),
            "provider": provider_id,
            "user": user_id,
            "source_scope": source_scope,
            "target_scope": target_scope,
        }))

    async def on_error(
        self, error: Exception, context: dict[str, Any], **kwargs: Any
    ) -> None:
        logger.error(json.dumps({
            "event": "error",
            "ts": _now(),
            "error_type": type(error).__name__,
            "error": str(error),
            "context": {k: str(v)[:200] for k, v in context.items()},
        }))
