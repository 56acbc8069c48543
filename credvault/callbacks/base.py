"""Base callback protocol for vault lifecycle hooks.

The controller awaits every registered callback after a successful mutation.
Callbacks receive identities and non-secret metadata only; plaintext and
ciphertext are never passed to them.

Usage:
    class MyCallback(BaseCallback):
        async def on_credential_stored(self, provider_id, user_id, scope, **kw):
            print(f"stored {provider_id} for {user_id}")

    vault = create_vault(callbacks=[MyCallback()])
"""

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class VaultCallback(Protocol):
    """Protocol defining hooks for vault events.

    All methods are async; the controller awaits each registered callback in
    order. A failing callback is logged and does not fail the operation.
    """

    async def on_credential_stored(
        self,
        provider_id: str,
        user_id: str,
        scope: Optional[str],
        validated: bool,
        **kwargs: Any,
    ) -> None:
        """Called after a credential is written (new or overwritten)."""
        ...

    async def on_credential_deleted(
        self,
        provider_id: str,
        user_id: str,
        scope: Optional[str],
        **kwargs: Any,
    ) -> None:
        ...

    async def on_credential_cloned(
        self,
        provider_id: str,
        user_id: str,
        source_scope: Optional[str],
        target_scope: Optional[str],
        **kwargs: Any,
    ) -> None:
        ...

    async def on_error(
        self,
        error: Exception,
        context: dict[str, Any],
        **kwargs: Any,
    ) -> None:
        """Called when an operation fails after passing input checks."""
        ...


class BaseCallback:
    """Concrete base with no-op implementations of all hooks.

    Subclass this instead of implementing the Protocol directly.
    """

    async def on_credential_stored(
        self, provider_id: str, user_id: str, scope: Optional[str], validated: bool, **kwargs: Any
    ) -> None:
        pass

    async def on_credential_deleted(
        self, provider_id: str, user_id: str, scope: Optional[str], **kwargs: Any
    ) -> None:
        pass

    async def on_credential_cloned(
        self,
        provider_id: str,
        user_id: str,
        source_scope: Optional[str],
        target_scope: Optional[str],
        **kwargs: Any,
    ) -> None:
        pass

    async def on_error(
        self, error: Exception, context: dict[str, Any], **kwargs: Any
    ) -> None:
        pass
